"""
Controllers for logging in and out, and for session tokens.

Users log in with their password, or with a one-time code sent to their
e-mail address. Either way they get an access token and a refresh token.
The refresh token can be traded in for a new pair exactly once; logging out
revokes it.
"""

from http import HTTPStatus
from typing import Optional

from retry import retry
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, InternalServerError, NotFound, \
    ServiceUnavailable, Unauthorized

from arxiv.base import logging

from .. import domain
from ..services import IdentityService, store
from ..services.exceptions import AuthenticationFailed, \
    InvalidOrExpiredCode, NoSuchUser, NotificationFailed, TokenError, \
    TokenNotFound, Unavailable
from .forms import EmailForm, LoginForm, OtpForm, RefreshTokenForm
from .util import ResponseData, session_to_json, user_to_json, validate

logger = logging.getLogger(__name__)


def login(params: MultiDict, service: IdentityService,
          device: Optional[domain.DeviceInfo] = None) -> ResponseData:
    """Log in with e-mail and password."""
    form = LoginForm(params)
    validate(form)
    try:
        pair, user = service.login(form.email.data, form.password.data,
                                   device)
    except AuthenticationFailed as e:
        logger.debug('Login failed: %s', e)
        raise Unauthorized('Invalid credentials') from e
    data = dict(session_to_json(pair), user=user_to_json(user))
    return {'message': 'Login successful', 'data': data}, HTTPStatus.OK, {}


def send_otp(params: MultiDict, service: IdentityService) -> ResponseData:
    """Send a login code to a registered address."""
    form = EmailForm(params)
    validate(form)
    try:
        service.send_login_otp(form.email.data)
    except NoSuchUser as e:
        raise NotFound('User not found') from e
    except AuthenticationFailed as e:
        raise Unauthorized('Invalid credentials') from e
    except NotificationFailed as e:
        raise InternalServerError('Failed to send OTP email') from e
    return {'message': 'OTP sent successfully', 'data': None}, \
        HTTPStatus.OK, {}


def verify_otp(params: MultiDict, service: IdentityService,
               device: Optional[domain.DeviceInfo] = None) -> ResponseData:
    """Log in with a login code."""
    form = OtpForm(params)
    validate(form)
    try:
        pair, user = service.verify_login_otp(form.email.data,
                                              form.otp_code.data, device)
    except NoSuchUser as e:
        raise NotFound('User not found') from e
    except AuthenticationFailed as e:
        raise Unauthorized('Invalid credentials') from e
    except InvalidOrExpiredCode as e:
        raise BadRequest('Invalid or expired OTP') from e
    data = dict(session_to_json(pair), user=user_to_json(user))
    return {'message': 'Login successful', 'data': data}, HTTPStatus.OK, {}


def refresh_token(params: MultiDict, service: IdentityService,
                  device: Optional[domain.DeviceInfo] = None) \
        -> ResponseData:
    """Trade a refresh token for a new pair."""
    form = RefreshTokenForm(params)
    validate(form)
    try:
        pair, _ = service.refresh(form.refresh_token.data, device)
    except (TokenError, AuthenticationFailed, NoSuchUser) as e:
        logger.debug('Refresh rejected: %s', type(e).__name__)
        raise Unauthorized('Invalid or expired refresh token') from e
    return {'message': 'Token refreshed successfully',
            'data': session_to_json(pair)}, HTTPStatus.OK, {}


def logout(params: MultiDict, service: IdentityService) -> ResponseData:
    """Revoke a single refresh token."""
    form = RefreshTokenForm(params)
    validate(form)
    try:
        service.logout(form.refresh_token.data)
    except TokenNotFound as e:
        raise NotFound('Refresh token not found') from e
    return {'message': 'Logged out successfully', 'data': None}, \
        HTTPStatus.OK, {}


def logout_all(user_id: str, service: IdentityService) -> ResponseData:
    """Revoke every refresh token of the authenticated user."""
    count = service.logout_all(user_id)
    return {'message': 'Logged out from all devices',
            'data': {'revoked': count}}, HTTPStatus.OK, {}


def profile(user_id: str, service: IdentityService) -> ResponseData:
    """Get the profile of the authenticated user."""
    try:
        user = _load_profile(service, user_id)
    except (NoSuchUser, AuthenticationFailed) as e:
        raise Unauthorized('User not found') from e
    except Unavailable as e:
        raise InternalServerError('Service temporarily unavailable') from e
    return {'message': 'Profile retrieved successfully',
            'data': user_to_json(user)}, HTTPStatus.OK, {}


def status() -> ResponseData:
    """Report whether the credential store is reachable."""
    if not store.is_available():
        raise ServiceUnavailable('Database unavailable')
    return {'message': 'OK', 'data': {'database': True}}, HTTPStatus.OK, {}


# This is broken out to add retry logic.
@retry(Unavailable, tries=3, delay=0.5, backoff=2)
def _load_profile(service: IdentityService, user_id: str) -> domain.User:
    return service.get_profile(user_id)