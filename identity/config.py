"""Flask configuration."""
import secrets
import os


#################### General config for app ####################
API_PREFIX = os.environ.get('API_PREFIX', '')
"""Prefix for all routes, e.g. ``/v1``. The auth routes live under
``{API_PREFIX}/auth``."""

SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key. Not directly used by the identity service."""

DEBUG = bool(int(os.environ.get('DEBUG', '0')))
"""When set, error responses carry a traceback in ``error.details``."""

LOGLEVEL = os.environ.get('LOGLEVEL', 20)


#################### Tokens ####################
JWT_SECRET = os.environ.get('JWT_SECRET', secrets.token_urlsafe(32))
"""Secret used to sign access and refresh tokens."""

JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')

ACCESS_TOKEN_TTL = int(os.environ.get('ACCESS_TOKEN_TTL', '900'))
"""Lifetime of an access token, in seconds. Access tokens are not stored, so
keep this short."""

REFRESH_TOKEN_TTL = int(os.environ.get('REFRESH_TOKEN_TTL',
                                       str(7 * 24 * 3600)))
"""Lifetime of a refresh token, in seconds."""

REVOKED_TOKEN_RETENTION = int(os.environ.get('REVOKED_TOKEN_RETENTION',
                                             str(30 * 24 * 3600)))
"""Revoked refresh tokens older than this (seconds) are purged by cleanup."""


#################### One-time codes ####################
OTP_LENGTH = int(os.environ.get('OTP_LENGTH', '6'))
OTP_EXPIRY = int(os.environ.get('OTP_EXPIRY', '600'))
"""Seconds until an issued code expires."""

OTP_USED_RETENTION = int(os.environ.get('OTP_USED_RETENTION', '86400'))
"""Used codes older than this (seconds) are purged by cleanup."""


#################### Passwords ####################
ARGON2_TIME_COST = int(os.environ.get('ARGON2_TIME_COST', '3'))
ARGON2_MEMORY_COST = int(os.environ.get('ARGON2_MEMORY_COST', '65536'))
"""Memory cost in KiB."""
ARGON2_PARALLELISM = int(os.environ.get('ARGON2_PARALLELISM', '4'))


#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL',
                                         'sqlite:///identity.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))
"""Create all tables when the application starts."""


#################### Redis (rate limit counters) ####################
REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TOKEN = os.environ.get('REDIS_TOKEN', None)
"""Password used in the Redis AUTH procedure."""

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the FakeRedis library instead of a redis service.

Useful for testing and dev."""

RATE_LIMIT_ENABLED = bool(int(os.environ.get('RATE_LIMIT_ENABLED', '1')))

RATE_LIMIT_DEFAULT = (int(os.environ.get('RATE_LIMIT_DEFAULT', '10')), 60)
"""(requests, window seconds) applied to every route without its own limit."""

RATE_LIMITS = {
    '/auth/login': (5, 60),
    '/auth/forgot-password': (3, 60),
    '/auth/send-otp': (3, 60),
}
"""Per-route limits, keyed by path suffix."""

PROXY_FIX_X_FOR = int(os.environ.get('PROXY_FIX_X_FOR', '0'))
"""Number of trusted proxies in front of the service. Clients are rate
limited by ``REMOTE_ADDR``; when this is set, ``X-Forwarded-For`` entries
added by that many proxies are trusted to rewrite it. Leave at 0 when the
service is reached directly, or the header can be forged."""


#################### Mail ####################
SMTP_HOST = os.environ.get('SMTP_HOST', 'localhost')
SMTP_PORT = int(os.environ.get('SMTP_PORT', '587'))
SMTP_USER = os.environ.get('SMTP_USER', None)
SMTP_PASS = os.environ.get('SMTP_PASS', None)
SMTP_USE_TLS = bool(int(os.environ.get('SMTP_USE_TLS', '1')))
SMTP_FROM = os.environ.get('SMTP_FROM', 'noreply@example.com')

MAIL_SUPPRESS_SEND = bool(int(os.environ.get('MAIL_SUPPRESS_SEND', '0')))
"""Log outbound mail instead of sending it. For development and testing."""
