"""Provides the JSON API for the identity service."""

from functools import wraps
from typing import Any, Callable

from flask import Blueprint, Response, current_app, request
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import Unauthorized

from arxiv.base import logging

from .. import domain, responses
from ..controllers import authentication, passwords, registration
from ..controllers.util import ResponseData
from ..services import IdentityService

logger = logging.getLogger(__name__)

blueprint = Blueprint('auth', __name__)


def get_service() -> IdentityService:
    """Get the :class:`.IdentityService` attached to the current app."""
    return current_app.extensions['identity']


def get_params() -> MultiDict:
    """Get the request body as a :class:`.MultiDict` of strings."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = request.form.to_dict()
    return MultiDict({key: str(value) for key, value in body.items()
                      if value is not None})


def get_device() -> domain.DeviceInfo:
    return domain.DeviceInfo(user_agent=request.headers.get('User-Agent'),
                             ip_address=request.remote_addr)


def authenticated(func: Callable) -> Callable:
    """
    Require a valid bearer access token.

    The decoded :class:`.domain.AccessClaims` are passed to the view as
    ``claims``.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        auth = request.environ.get('auth')
        if isinstance(auth, Exception):
            raise auth
        if auth is None:
            raise Unauthorized('Authentication required')
        return func(*args, claims=auth, **kwargs)
    return wrapper


def respond(response_data: ResponseData) -> Response:
    data, code, headers = response_data
    body = responses.success(data.get('data'), data['message'],
                             data.get('meta'))
    return responses.json_response(body, code, headers)


@blueprint.route('/register', methods=['POST'])
def register() -> Response:
    return respond(registration.register(get_params(), get_service()))


@blueprint.route('/verify-email', methods=['POST'])
def verify_email() -> Response:
    return respond(registration.verify_email(get_params(), get_service()))


@blueprint.route('/resend-verification', methods=['POST'])
def resend_verification() -> Response:
    return respond(registration.resend_verification(get_params(),
                                                    get_service()))


@blueprint.route('/login', methods=['POST'])
def login() -> Response:
    return respond(authentication.login(get_params(), get_service(),
                                        get_device()))


@blueprint.route('/send-otp', methods=['POST'])
def send_otp() -> Response:
    return respond(authentication.send_otp(get_params(), get_service()))


@blueprint.route('/verify-otp', methods=['POST'])
def verify_otp() -> Response:
    return respond(authentication.verify_otp(get_params(), get_service(),
                                             get_device()))


@blueprint.route('/forgot-password', methods=['POST'])
def forgot_password() -> Response:
    return respond(passwords.forgot_password(get_params(), get_service()))


@blueprint.route('/reset-password', methods=['POST'])
def reset_password() -> Response:
    return respond(passwords.reset_password(get_params(), get_service()))


@blueprint.route('/change-password', methods=['PATCH'])
@authenticated
def change_password(claims: domain.AccessClaims) -> Response:
    return respond(passwords.change_password(claims.sub, get_params(),
                                             get_service()))


@blueprint.route('/profile', methods=['GET'])
@authenticated
def profile(claims: domain.AccessClaims) -> Response:
    return respond(authentication.profile(claims.sub, get_service()))


@blueprint.route('/refresh-token', methods=['POST'])
def refresh_token() -> Response:
    return respond(authentication.refresh_token(get_params(), get_service(),
                                                get_device()))


@blueprint.route('/logout', methods=['POST'])
def logout() -> Response:
    return respond(authentication.logout(get_params(), get_service()))


@blueprint.route('/logout-all', methods=['POST'])
@authenticated
def logout_all(claims: domain.AccessClaims) -> Response:
    return respond(authentication.logout_all(claims.sub, get_service()))


@blueprint.route('/status', methods=['GET'])
def status() -> Response:
    """Health check."""
    return respond(authentication.status())
