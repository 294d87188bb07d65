"""Controllers for registration and e-mail verification."""

from http import HTTPStatus

from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, Conflict as ConflictError, \
    InternalServerError, NotFound

from arxiv.base import logging

from ..services import IdentityService
from ..services.exceptions import AlreadyVerified, Conflict, \
    InvalidOrExpiredCode, NoSuchUser, NotificationFailed
from .forms import EmailForm, OtpForm, RegistrationForm
from .util import ResponseData, user_to_json, validate

logger = logging.getLogger(__name__)


def register(params: MultiDict, service: IdentityService) -> ResponseData:
    """Create an unverified account and send a verification code."""
    form = RegistrationForm(params)
    validate(form)
    try:
        user = service.register(form.email.data, form.password.data,
                                first_name=form.first_name.data or None,
                                last_name=form.last_name.data or None)
    except Conflict as e:
        raise ConflictError('User already exists') from e
    except NotificationFailed as e:
        raise InternalServerError('Account created, but the verification '
                                  'code could not be sent') from e
    data = {
        'message': 'User registered successfully. Please check your email '
                   'for the verification code.',
        'data': user_to_json(user)
    }
    return data, HTTPStatus.CREATED, {}


def verify_email(params: MultiDict, service: IdentityService) \
        -> ResponseData:
    form = OtpForm(params)
    validate(form)
    try:
        service.verify_email(form.email.data, form.otp_code.data)
    except NoSuchUser as e:
        raise NotFound('User not found') from e
    except AlreadyVerified as e:
        raise BadRequest('Email is already verified') from e
    except InvalidOrExpiredCode as e:
        raise BadRequest('Invalid or expired verification code') from e
    return {'message': 'Email verified successfully', 'data': None}, \
        HTTPStatus.OK, {}


def resend_verification(params: MultiDict, service: IdentityService) \
        -> ResponseData:
    form = EmailForm(params)
    validate(form)
    try:
        service.resend_verification(form.email.data)
    except NoSuchUser as e:
        raise NotFound('User not found') from e
    except AlreadyVerified as e:
        raise BadRequest('Email is already verified') from e
    except NotificationFailed as e:
        raise InternalServerError('Failed to send verification email') from e
    return {'message': 'Verification code sent successfully', 'data': None}, \
        HTTPStatus.OK, {}
