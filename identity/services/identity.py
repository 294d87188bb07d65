"""
Orchestrates the credential store, one-time codes, tokens and mail into the
account use cases.

:class:`IdentityService` is the only caller of the OTP and token engines,
the notifier and the credential store. Each use case runs its store
operations in a single :func:`.store.transaction`, so consuming a code and
the state change that it unlocks commit (or roll back) together. Mail goes
out only after the transaction has committed.
"""

from typing import Optional, Tuple

from arxiv.base import logging

from .. import domain
from . import store
from .exceptions import AccountDisabled, AlreadyVerified, \
    AuthenticationFailed, Conflict, InvalidCredentials, InvalidOrExpiredCode, \
    NoSuchUser
from .mail import Notifier
from .otp import OTPEngine
from .passwords import PasswordHasher
from .tokens import TokenEngine

logger = logging.getLogger(__name__)

Session = Tuple[domain.TokenPair, domain.User]


class IdentityService:
    """Account registration, verification, login and session management."""

    def __init__(self, otps: OTPEngine, tokens: TokenEngine,
                 notifier: Notifier, passwords: PasswordHasher) -> None:
        self.otps = otps
        self.tokens = tokens
        self.notifier = notifier
        self.passwords = passwords

    # Registration and verification.

    def register(self, email: str, password: str,
                 first_name: Optional[str] = None,
                 last_name: Optional[str] = None) -> domain.User:
        """
        Create an unverified account and send it a verification code.

        Raises
        ------
        :class:`.Conflict`
            An account with ``email`` already exists.
        :class:`.NotificationFailed`
            The account exists, but the code could not be sent. The user can
            ask for another with :meth:`resend_verification`.

        """
        if store.users.email_exists(email):
            raise Conflict('User already exists')
        password_hash = self.passwords.hash(password)
        with store.transaction():
            user = store.users.create(email, password_hash,
                                      first_name=first_name,
                                      last_name=last_name)
            code = self.otps.issue(user.user_id,
                                   domain.OtpType.VERIFICATION)
        logger.info('Registered user %s', user.user_id)
        self.notifier.send_verification_otp(user.email, code)
        return user

    def verify_email(self, email: str, code: str) -> domain.User:
        """Consume a verification code and mark the address verified."""
        with store.transaction():
            user = store.users.get_user_by_email(email)
            if user.is_email_verified:
                raise AlreadyVerified('Email is already verified')
            self.otps.validate(user.user_id, code,
                               domain.OtpType.VERIFICATION)
            user = store.users.mark_email_verified(user.user_id)
        logger.info('Verified e-mail for user %s', user.user_id)
        return user

    def resend_verification(self, email: str) -> None:
        """Issue a fresh verification code, replacing any earlier one."""
        with store.transaction():
            user = store.users.get_user_by_email(email)
            if user.is_email_verified:
                raise AlreadyVerified('Email is already verified')
            code = self.otps.issue(user.user_id,
                                   domain.OtpType.VERIFICATION)
        self.notifier.send_verification_otp(user.email, code)

    # Login.

    def login(self, email: str, password: str,
              device: Optional[domain.DeviceInfo] = None) -> Session:
        """
        Log in with e-mail and password.

        Unknown addresses, wrong passwords and disabled accounts all raise
        :class:`.AuthenticationFailed` (or its subclass
        :class:`.AccountDisabled`), and take about the same time.
        """
        try:
            user, password_hash = store.users.get_credentials(email)
        except NoSuchUser as e:
            self.passwords.verify_dummy(password)
            raise AuthenticationFailed('Invalid credentials') from e

        if not self.passwords.verify(password, password_hash):
            raise AuthenticationFailed('Invalid credentials')
        if not user.is_active:
            raise AccountDisabled('Invalid credentials')

        with store.transaction():
            if self.passwords.needs_rehash(password_hash):
                logger.debug('Rehashing password for user %s', user.user_id)
                store.users.set_password(user.user_id,
                                         self.passwords.hash(password))
            user = store.users.touch_last_login(user.user_id)
            pair = self.tokens.issue_session(user, device)
        logger.info('User %s logged in with password', user.user_id)
        return pair, user

    def send_login_otp(self, email: str) -> None:
        """
        Send a login code.

        Only earlier login codes are invalidated; pending verification and
        password reset codes are untouched.
        """
        with store.transaction():
            user = store.users.get_user_by_email(email)
            if not user.is_active:
                raise AccountDisabled('Account is disabled')
            code = self.otps.issue(user.user_id, domain.OtpType.LOGIN)
        self.notifier.send_login_otp(user.email, code)

    def verify_login_otp(self, email: str, code: str,
                         device: Optional[domain.DeviceInfo] = None) \
            -> Session:
        """Log in with a login code."""
        with store.transaction():
            user = store.users.get_user_by_email(email)
            if not user.is_active:
                raise AccountDisabled('Account is disabled')
            self.otps.validate(user.user_id, code, domain.OtpType.LOGIN)
            user = store.users.touch_last_login(user.user_id)
            pair = self.tokens.issue_session(user, device)
        logger.info('User %s logged in with a one-time code', user.user_id)
        return pair, user

    # Passwords.

    def forgot_password(self, email: str) -> None:
        """
        Send a password reset code, if the account exists.

        Returns the same way whether or not it does.
        """
        try:
            with store.transaction():
                user = store.users.get_user_by_email(email)
                code = self.otps.issue(user.user_id,
                                       domain.OtpType.PASSWORD_RESET)
        except NoSuchUser:
            logger.debug('Password reset requested for unknown address')
            return
        self.notifier.send_password_reset_otp(user.email, code)

    def reset_password(self, email: str, code: str,
                       new_password: str) -> None:
        """
        Consume a reset code, set the new password and end all sessions.

        An unknown address fails exactly like a wrong code.
        """
        password_hash = self.passwords.hash(new_password)
        with store.transaction():
            try:
                user = store.users.get_user_by_email(email)
            except NoSuchUser as e:
                raise InvalidOrExpiredCode('Invalid or expired code') from e
            self.otps.validate(user.user_id, code,
                               domain.OtpType.PASSWORD_RESET)
            store.users.set_password(user.user_id, password_hash)
            revoked = self.tokens.revoke_all(user.user_id)
        logger.info('Reset password for user %s; revoked %i sessions',
                    user.user_id, revoked)

    def change_password(self, user_id: str, current_password: str,
                        new_password: str) -> None:
        """
        Change the password of a logged-in user and end all sessions.

        Raises
        ------
        :class:`.InvalidCredentials`
            ``current_password`` is wrong.

        """
        with store.transaction():
            password_hash = store.users.get_password_hash(user_id)
            if not self.passwords.verify(current_password, password_hash):
                raise InvalidCredentials('Current password is incorrect')
            store.users.set_password(user_id,
                                     self.passwords.hash(new_password))
            revoked = self.tokens.revoke_all(user_id)
        logger.info('Changed password for user %s; revoked %i sessions',
                    user_id, revoked)

    # Sessions.

    def refresh(self, refresh_token: str,
                device: Optional[domain.DeviceInfo] = None) -> Session:
        """Rotate a refresh token into a new pair."""
        return self.tokens.refresh(refresh_token, device)

    def logout(self, refresh_token: str) -> None:
        """Revoke one refresh token."""
        self.tokens.revoke(refresh_token)

    def logout_all(self, user_id: str) -> int:
        """Revoke every refresh token of a user."""
        return self.tokens.revoke_all(user_id)

    def get_profile(self, user_id: str) -> domain.User:
        """Load the current user; disabled accounts are refused."""
        user = store.users.get_user_by_id(user_id)
        if not user.is_active:
            raise AccountDisabled('Account is disabled')
        return user

    def cleanup(self) -> Tuple[int, int]:
        """Purge stale codes and tokens. Returns both counts."""
        return self.otps.cleanup_expired(), self.tokens.cleanup()
