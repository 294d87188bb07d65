"""
Request validation for the JSON API.

Field names follow the public API (``otpCode``, ``newPassword``), so forms
can be fed the decoded request body directly as a :class:`.MultiDict`.
"""

from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional, \
    Regexp, ValidationError

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


def _password(label: str, name: str) -> PasswordField:
    return PasswordField(label, name=name, validators=[
        DataRequired(),
        Length(min=PASSWORD_MIN_LENGTH, max=PASSWORD_MAX_LENGTH)
    ])


def _email() -> StringField:
    return StringField('Email', validators=[
        DataRequired(), Email(), Length(max=255)
    ])


def _otp_code() -> StringField:
    return StringField('OTP code', name='otpCode', validators=[
        DataRequired(),
        Regexp(r'^\d+$', message='OTP code must contain only digits'),
        Length(max=16)
    ])


class EmailForm(Form):
    """Requests that carry only an e-mail address."""

    email = _email()


class RegistrationForm(Form):
    """Create an account."""

    email = _email()
    password = _password('Password', 'password')
    first_name = StringField('First name', name='firstName',
                             validators=[Optional(), Length(max=100)])
    last_name = StringField('Last name', name='lastName',
                            validators=[Optional(), Length(max=100)])


class LoginForm(Form):
    """Log in with a password."""

    email = _email()
    password = PasswordField('Password', validators=[DataRequired()])


class OtpForm(Form):
    """An e-mail address and a one-time code."""

    email = _email()
    otp_code = _otp_code()


class ResetPasswordForm(Form):
    """Consume a reset code and set a new password."""

    email = _email()
    otp_code = _otp_code()
    new_password = _password('New password', 'newPassword')


class ChangePasswordForm(Form):
    """Change the password of the logged-in user."""

    current_password = PasswordField('Current password',
                                     name='currentPassword',
                                     validators=[DataRequired()])
    new_password = _password('New password', 'newPassword')

    def validate_new_password(self, field: PasswordField) -> None:
        if field.data and field.data == self.current_password.data:
            raise ValidationError('New password must differ from the '
                                  'current password')


class RefreshTokenForm(Form):
    """A refresh token, for rotation or logout."""

    refresh_token = StringField('Refresh token', validators=[DataRequired()])
