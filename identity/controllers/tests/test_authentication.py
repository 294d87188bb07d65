"""Tests for :mod:`identity.controllers`."""

from datetime import datetime
from http import HTTPStatus
from unittest import TestCase, mock

from pytz import UTC
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import BadRequest, Conflict as ConflictError, \
    InternalServerError, NotFound, Unauthorized

from ... import domain
from ...services import IdentityService
from ...services import exceptions
from .. import authentication, passwords, registration
from ..util import ValidationFailed


def raise_authentication_failed(*args, **kwargs):
    """Simulate a failed login attempt at the backend service."""
    raise exceptions.AuthenticationFailed('nope')


USER = domain.User(user_id='u1', email='jane@example.com', first_name='Jane',
                   last_name='Doe', role=domain.Role.CUSTOMER,
                   created_at=datetime(2024, 1, 1, tzinfo=UTC))
PAIR = domain.TokenPair(access_token='access', refresh_token='refresh',
                        expires_in=900)


class ControllerTestCase(TestCase):
    def setUp(self):
        self.service = mock.MagicMock(spec=IdentityService)


class TestLogin(ControllerTestCase):
    """Tests for :func:`.authentication.login`."""

    def test_missing_fields(self):
        with self.assertRaises(ValidationFailed) as ctx:
            authentication.login(MultiDict({'email': 'not-an-email'}),
                                 self.service)
        self.assertIn('email', ctx.exception.details)
        self.assertIn('password', ctx.exception.details)
        self.assertEqual(ctx.exception.code, HTTPStatus.BAD_REQUEST)
        self.service.login.assert_not_called()

    def test_bad_credentials(self):
        self.service.login.side_effect = raise_authentication_failed
        with self.assertRaises(Unauthorized) as ctx:
            authentication.login(MultiDict({'email': 'jane@example.com',
                                            'password': 'wrong'}),
                                 self.service)
        self.assertEqual(ctx.exception.description, 'Invalid credentials')

    def test_disabled_account(self):
        """Looks the same as bad credentials."""
        self.service.login.side_effect = \
            exceptions.AccountDisabled('Invalid credentials')
        with self.assertRaises(Unauthorized) as ctx:
            authentication.login(MultiDict({'email': 'jane@example.com',
                                            'password': 'right'}),
                                 self.service)
        self.assertEqual(ctx.exception.description, 'Invalid credentials')

    def test_login(self):
        self.service.login.return_value = (PAIR, USER)
        device = domain.DeviceInfo(user_agent='ua', ip_address='10.1.2.3')
        data, code, headers = authentication.login(
            MultiDict({'email': 'jane@example.com', 'password': 'right'}),
            self.service, device
        )
        self.assertEqual(code, HTTPStatus.OK)
        self.assertEqual(data['message'], 'Login successful')
        self.assertEqual(data['data']['access_token'], 'access')
        self.assertEqual(data['data']['refresh_token'], 'refresh')
        self.assertEqual(data['data']['user']['id'], 'u1')
        self.assertEqual(data['data']['user']['firstName'], 'Jane')
        self.assertNotIn('password', data['data']['user'])
        self.service.login.assert_called_once_with('jane@example.com',
                                                   'right', device)


class TestOtpLogin(ControllerTestCase):
    """Tests for :func:`.authentication.send_otp` and ``verify_otp``."""

    def test_send_unknown(self):
        self.service.send_login_otp.side_effect = \
            exceptions.NoSuchUser('nope')
        with self.assertRaises(NotFound):
            authentication.send_otp(MultiDict({'email': 'x@example.com'}),
                                    self.service)

    def test_verify_field_names(self):
        """Errors are reported under the public field names."""
        with self.assertRaises(ValidationFailed) as ctx:
            authentication.verify_otp(
                MultiDict({'email': 'jane@example.com', 'otpCode': 'abc'}),
                self.service
            )
        self.assertEqual(list(ctx.exception.details), ['otpCode'])

    def test_verify_bad_code(self):
        self.service.verify_login_otp.side_effect = \
            exceptions.InvalidOrExpiredCode('nope')
        with self.assertRaises(BadRequest) as ctx:
            authentication.verify_otp(
                MultiDict({'email': 'jane@example.com', 'otpCode': '123456'}),
                self.service
            )
        self.assertEqual(ctx.exception.description, 'Invalid or expired OTP')

    def test_verify(self):
        self.service.verify_login_otp.return_value = (PAIR, USER)
        data, code, _ = authentication.verify_otp(
            MultiDict({'email': 'jane@example.com', 'otpCode': '012345'}),
            self.service
        )
        self.assertEqual(code, HTTPStatus.OK)
        self.service.verify_login_otp.assert_called_once_with(
            'jane@example.com', '012345', None
        )


class TestSessions(ControllerTestCase):
    """Refresh and logout."""

    def test_refresh_errors(self):
        """Every refresh failure is a 401."""
        for exc in (exceptions.TokenNotFound, exceptions.TokenRevoked,
                    exceptions.TokenExpired, exceptions.InvalidToken,
                    exceptions.AccountDisabled):
            self.service.refresh.side_effect = exc('nope')
            with self.assertRaises(Unauthorized):
                authentication.refresh_token(
                    MultiDict({'refresh_token': 'foo'}), self.service
                )

    def test_refresh(self):
        self.service.refresh.return_value = (PAIR, USER)
        data, code, _ = authentication.refresh_token(
            MultiDict({'refresh_token': 'foo'}), self.service
        )
        self.assertEqual(data['message'], 'Token refreshed successfully')
        self.assertEqual(data['data']['refresh_token'], 'refresh')

    def test_logout_unknown(self):
        self.service.logout.side_effect = exceptions.TokenNotFound('nope')
        with self.assertRaises(NotFound):
            authentication.logout(MultiDict({'refresh_token': 'foo'}),
                                  self.service)

    def test_logout_all(self):
        self.service.logout_all.return_value = 3
        data, _, _ = authentication.logout_all('u1', self.service)
        self.assertEqual(data['data'], {'revoked': 3})

    def test_profile_retries(self):
        """Transient store failures are retried."""
        self.service.get_profile.side_effect = [
            exceptions.Unavailable('blip'), USER
        ]
        with mock.patch('retry.api.time.sleep'):
            data, _, _ = authentication.profile('u1', self.service)
        self.assertEqual(data['data']['email'], 'jane@example.com')
        self.assertEqual(self.service.get_profile.call_count, 2)


class TestRegistration(ControllerTestCase):
    """Tests for :mod:`.registration`."""

    def test_register(self):
        self.service.register.return_value = USER
        data, code, _ = registration.register(
            MultiDict({'email': 'jane@example.com', 'password': 'longenough',
                       'firstName': 'Jane', 'lastName': 'Doe'}),
            self.service
        )
        self.assertEqual(code, HTTPStatus.CREATED)
        self.assertEqual(data['data']['email'], 'jane@example.com')
        self.service.register.assert_called_once_with(
            'jane@example.com', 'longenough', first_name='Jane',
            last_name='Doe'
        )

    def test_short_password(self):
        with self.assertRaises(ValidationFailed) as ctx:
            registration.register(
                MultiDict({'email': 'jane@example.com', 'password': 'short'}),
                self.service
            )
        self.assertIn('password', ctx.exception.details)

    def test_conflict(self):
        self.service.register.side_effect = exceptions.Conflict('taken')
        with self.assertRaises(ConflictError):
            registration.register(
                MultiDict({'email': 'jane@example.com',
                           'password': 'longenough'}),
                self.service
            )

    def test_mail_failure(self):
        self.service.register.side_effect = \
            exceptions.NotificationFailed('smtp')
        with self.assertRaises(InternalServerError):
            registration.register(
                MultiDict({'email': 'jane@example.com',
                           'password': 'longenough'}),
                self.service
            )

    def test_verify_email(self):
        for exc, expected, message in [
                (exceptions.NoSuchUser, NotFound, 'User not found'),
                (exceptions.AlreadyVerified, BadRequest,
                 'Email is already verified'),
                (exceptions.InvalidOrExpiredCode, BadRequest,
                 'Invalid or expired verification code')]:
            self.service.verify_email.side_effect = exc('nope')
            with self.assertRaises(expected) as ctx:
                registration.verify_email(
                    MultiDict({'email': 'jane@example.com',
                               'otpCode': '123456'}),
                    self.service
                )
            self.assertEqual(ctx.exception.description, message)


class TestPasswords(ControllerTestCase):
    """Tests for :mod:`.passwords`."""

    def test_forgot_password(self):
        data, code, _ = passwords.forgot_password(
            MultiDict({'email': 'anyone@example.com'}), self.service
        )
        self.assertEqual(data['message'], passwords.FORGOT_PASSWORD_MESSAGE)
        self.assertEqual(code, HTTPStatus.OK)

    def test_reset_password_bad_code(self):
        self.service.reset_password.side_effect = \
            exceptions.InvalidOrExpiredCode('nope')
        with self.assertRaises(BadRequest) as ctx:
            passwords.reset_password(
                MultiDict({'email': 'jane@example.com', 'otpCode': '123456',
                           'newPassword': 'longenough'}),
                self.service
            )
        self.assertEqual(ctx.exception.description,
                         'Invalid or expired reset code')

    def test_change_password(self):
        self.service.change_password.side_effect = \
            exceptions.InvalidCredentials('nope')
        with self.assertRaises(BadRequest) as ctx:
            passwords.change_password(
                'u1', MultiDict({'currentPassword': 'wrong',
                                 'newPassword': 'longenough'}),
                self.service
            )
        self.assertEqual(ctx.exception.description,
                         'Current password is incorrect')

    def test_change_password_same(self):
        with self.assertRaises(ValidationFailed) as ctx:
            passwords.change_password(
                'u1', MultiDict({'currentPassword': 'longenough',
                                 'newPassword': 'longenough'}),
                self.service
            )
        self.assertIn('newPassword', ctx.exception.details)
