"""Password hashing with Argon2id."""

from typing import Mapping

from argon2 import PasswordHasher as _Argon2, Type
from argon2.exceptions import InvalidHashError, VerificationError, \
    VerifyMismatchError

from arxiv.base import logging

logger = logging.getLogger(__name__)


class PasswordHasher:
    """
    One-way adaptive hash and verify for stored credentials.

    Each hash string carries its own algorithm parameters and salt, so
    changing the cost settings does not invalidate existing hashes;
    :meth:`needs_rehash` reports hashes made with outdated settings.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536,
                 parallelism: int = 4) -> None:
        self._hasher = _Argon2(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
            type=Type.ID,
        )
        # Verified against when the user does not exist, so that a login
        # attempt for an unknown address costs the same as a wrong password.
        self._dummy = self._hasher.hash('not-a-real-password')

    @classmethod
    def from_config(cls, config: Mapping) -> 'PasswordHasher':
        """Build a hasher from the ``ARGON2_*`` application settings."""
        return cls(time_cost=config.get('ARGON2_TIME_COST', 3),
                   memory_cost=config.get('ARGON2_MEMORY_COST', 65536),
                   parallelism=config.get('ARGON2_PARALLELISM', 4))

    def hash(self, password: str) -> str:
        """Generate a salted hash of ``password``."""
        if not password:
            raise ValueError('Password cannot be empty')
        return self._hasher.hash(password)

    def verify(self, password: str, encrypted: str) -> bool:
        """Check a password against a stored hash."""
        if not password or not encrypted:
            return False
        try:
            return self._hasher.verify(encrypted, password)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError) as e:
            logger.warning('Could not verify password hash: %s', e)
            return False

    def verify_dummy(self, password: str) -> bool:
        """Burn the same time as :meth:`verify`. Always ``False``."""
        self.verify(password or 'x', self._dummy)
        return False

    def needs_rehash(self, encrypted: str) -> bool:
        """Whether ``encrypted`` was made with other parameters than ours."""
        try:
            return self._hasher.check_needs_rehash(encrypted)
        except InvalidHashError:
            return True
