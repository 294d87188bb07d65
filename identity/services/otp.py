"""
One-time codes for login, e-mail verification and password reset.

A user holds at most one valid code per purpose: issuing a code invalidates
every earlier unused code of the same type for that user. A code is consumed
exactly once. Validation never says why a code was rejected; wrong, expired
and already-used codes all raise :class:`.InvalidOrExpiredCode`.
"""

import hmac
import secrets
from datetime import timedelta
from typing import Mapping

from arxiv.base import logging

from .. import domain
from . import store
from .exceptions import InvalidOrExpiredCode

logger = logging.getLogger(__name__)


def generate_code(length: int) -> str:
    """Generate a uniformly distributed numeric code of ``length`` digits."""
    return str(secrets.randbelow(10 ** length)).zfill(length)


class OTPEngine:
    """Issues, validates and purges one-time codes."""

    def __init__(self, length: int = 6, expiry: int = 600,
                 used_retention: int = 86400) -> None:
        self.length = length
        self.expiry = expiry
        self.used_retention = used_retention

    @classmethod
    def from_config(cls, config: Mapping) -> 'OTPEngine':
        return cls(length=config.get('OTP_LENGTH', 6),
                   expiry=config.get('OTP_EXPIRY', 600),
                   used_retention=config.get('OTP_USED_RETENTION', 86400))

    def issue(self, user_id: str, otp_type: domain.OtpType) -> str:
        """
        Generate and persist a new code, returning it for delivery.

        Earlier unused codes of the same type are marked used in the same
        transaction.
        """
        code = generate_code(self.length)
        expires_at = store.now() + timedelta(seconds=self.expiry)
        with store.transaction():
            invalidated = store.otps.invalidate_unused(user_id, otp_type)
            store.otps.create(user_id, code, otp_type, expires_at)
        logger.debug('Issued %s code for user %s; invalidated %i',
                     otp_type.value, user_id, invalidated)
        return code

    def validate(self, user_id: str, code: str,
                 otp_type: domain.OtpType) -> domain.Otp:
        """
        Consume a code.

        Call this inside the caller's :func:`.store.transaction` so that the
        consumption commits together with whatever the code unlocks.

        Raises
        ------
        :class:`.InvalidOrExpiredCode`
            No unused, unexpired code of ``otp_type`` matched, or another
            request consumed it first.

        """
        if not code:
            raise InvalidOrExpiredCode('Invalid or expired code')
        with store.transaction():
            match = None
            for candidate in store.otps.get_unused(user_id, otp_type):
                # Compare against every candidate so timing does not depend
                # on which one matched.
                if hmac.compare_digest(candidate.code.encode('utf-8'),
                                       code.encode('utf-8')):
                    match = match or candidate
            if match is None or not store.otps.consume(match.otp_id):
                logger.debug('Rejected %s code for user %s',
                             otp_type.value, user_id)
                raise InvalidOrExpiredCode('Invalid or expired code')
        return match._replace(is_used=True)

    def cleanup_expired(self) -> int:
        """Delete expired codes and stale used codes. Idempotent."""
        count = store.otps.delete_stale(self.used_retention)
        logger.info('Deleted %i stale one-time codes', count)
        return count
