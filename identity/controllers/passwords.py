"""Controllers for forgotten, reset and changed passwords."""

from http import HTTPStatus

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, InternalServerError, \
    Unauthorized

from arxiv.base import logging

from ..services import IdentityService
from ..services.exceptions import InvalidCredentials, InvalidOrExpiredCode, \
    NoSuchUser, NotificationFailed
from .forms import ChangePasswordForm, EmailForm, ResetPasswordForm
from .util import ResponseData, validate

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = 'If an account with that email exists, we have ' \
    'sent a password reset code.'


def forgot_password(params: MultiDict, service: IdentityService) \
        -> ResponseData:
    """
    Request a password reset code.

    The response is the same whether or not the account exists.
    """
    form = EmailForm(params)
    validate(form)
    try:
        service.forgot_password(form.email.data)
    except NotificationFailed as e:
        raise InternalServerError('Failed to send password reset email') \
            from e
    return {'message': FORGOT_PASSWORD_MESSAGE, 'data': None}, \
        HTTPStatus.OK, {}


def reset_password(params: MultiDict, service: IdentityService) \
        -> ResponseData:
    form = ResetPasswordForm(params)
    validate(form)
    try:
        service.reset_password(form.email.data, form.otp_code.data,
                               form.new_password.data)
    except InvalidOrExpiredCode as e:
        raise BadRequest('Invalid or expired reset code') from e
    return {'message': 'Password reset successfully', 'data': None}, \
        HTTPStatus.OK, {}


def change_password(user_id: str, params: MultiDict,
                    service: IdentityService) -> ResponseData:
    """Change the password of the authenticated user."""
    form = ChangePasswordForm(params)
    validate(form)
    try:
        service.change_password(user_id, form.current_password.data,
                                form.new_password.data)
    except InvalidCredentials as e:
        raise BadRequest('Current password is incorrect') from e
    except NoSuchUser as e:
        raise Unauthorized('User not found') from e
    return {'message': 'Password changed successfully', 'data': None}, \
        HTTPStatus.OK, {}
