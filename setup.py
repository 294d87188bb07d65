"""Install the identity service."""

from setuptools import setup, find_packages

setup(
    name='identity-service',
    version='0.1.0',
    packages=find_packages(exclude=['*tests*']),
    package_data={'identity': ['templates/mail/*.html']},
    include_package_data=True,
    install_requires=[
        "argon2-cffi",
        "arxiv-base",
        "click",
        "email-validator",
        "flask<2.3",
        "flask-sqlalchemy",
        "jinja2<3.1",
        "pyjwt>=2",
        "python-dateutil",
        "pytz",
        "redis",
        "retry",
        "sqlalchemy>=1.4",
        "werkzeug<2.3",
        "wtforms>=3",
    ],
    extras_require={
        'test': [
            "fakeredis",
            "pytest",
        ]
    },
    zip_safe=False
)
