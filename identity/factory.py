"""Application factory for the identity service."""

import traceback
from http import HTTPStatus
from typing import Mapping, Optional

import click
from flask import Flask, Response, current_app
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from arxiv.base import logging
from arxiv.base.middleware import wrap

from . import domain, responses
from .controllers.util import ValidationFailed
from .middleware import AuthMiddleware, RateLimitMiddleware
from .routes import api
from .services import get_identity_service, store
from .services.exceptions import Conflict, Unavailable

logger = logging.getLogger(__name__)

SEED_USERS = (
    ('admin@example.com', 'Admin@123', 'Admin', 'User', domain.Role.ADMIN),
    ('customer@example.com', 'Customer@123', 'Customer', 'User',
     domain.Role.CUSTOMER),
)


def create_web_app(config: Optional[Mapping] = None) -> Flask:
    """Initialize and configure the identity application."""
    app = Flask('identity')
    app.config.from_object('identity.config')
    if config:
        app.config.update(config)

    store.init_app(app)
    app.extensions['identity'] = get_identity_service(app.config)

    app.register_blueprint(api.blueprint,
                           url_prefix=f"{app.config['API_PREFIX']}/auth")

    middleware = [RateLimitMiddleware, AuthMiddleware]
    wrap(app, middleware)
    if app.config['PROXY_FIX_X_FOR']:
        # Outside the rate limiter, which keys on REMOTE_ADDR.
        app.wsgi_app = ProxyFix(app.wsgi_app,
                                x_for=app.config['PROXY_FIX_X_FOR'])

    register_error_handlers(app)
    register_commands(app)

    if app.config['CREATE_DB']:
        with app.app_context():
            store.create_all()

    return app


def register_error_handlers(app: Flask) -> None:
    """Render every error as an envelope."""
    app.register_error_handler(HTTPException, jsonify_exception)
    app.register_error_handler(Unavailable, handle_unavailable)
    app.register_error_handler(Exception, handle_unexpected)


def jsonify_exception(error: HTTPException) -> Response:
    """Render HTTP exceptions as JSON."""
    details = getattr(error, 'details', None)
    if isinstance(error, ValidationFailed):
        message = 'Validation failed'
    else:
        message = error.description or error.name
    body = responses.error(message, error.code or 500, details)
    return responses.json_response(body, error.code or 500)


def handle_unavailable(error: Unavailable) -> Response:
    logger.error('Credential store unavailable: %s', error)
    body = responses.error('Service temporarily unavailable',
                           HTTPStatus.INTERNAL_SERVER_ERROR)
    return responses.json_response(body, HTTPStatus.INTERNAL_SERVER_ERROR)


def handle_unexpected(error: Exception) -> Response:
    """Log and conceal anything that escaped the controllers."""
    logger.exception('Unhandled exception: %s', error)
    details = None
    if current_app.config.get('DEBUG'):
        details = {'stack': traceback.format_exc()}
    body = responses.error('Internal server error',
                           HTTPStatus.INTERNAL_SERVER_ERROR, details)
    return responses.json_response(body, HTTPStatus.INTERNAL_SERVER_ERROR)


def register_commands(app: Flask) -> None:
    """Attach maintenance commands to ``flask``."""

    @app.cli.command('create-db')
    def create_db() -> None:
        """Create all tables."""
        store.create_all()
        click.echo('Created tables')

    @app.cli.command('seed')
    def seed() -> None:
        """Create verified admin and customer accounts. Dev/test only."""
        store.create_all()
        service = app.extensions['identity']
        for email, password, first_name, last_name, role in SEED_USERS:
            try:
                store.users.create(email, service.passwords.hash(password),
                                   first_name=first_name,
                                   last_name=last_name, role=role,
                                   is_email_verified=True)
            except Conflict:
                click.echo(f'{email} already exists')
                continue
            click.echo(f'Created {role.value} {email}')

    @app.cli.command('cleanup')
    def cleanup() -> None:
        """Purge expired one-time codes and stale refresh tokens."""
        otps, tokens = app.extensions['identity'].cleanup()
        click.echo(f'Deleted {otps} one-time codes and {tokens} refresh '
                   f'tokens')
