"""
Access and refresh tokens.

Access tokens are short-lived, signed, and never stored: anyone holding the
signing secret can verify them. Refresh tokens are signed too, but a valid
signature is not enough to use one. The token must also be present in the
credential store, unrevoked and unexpired. Every refresh revokes the presented
token and issues a new pair (rotation).
"""

import secrets
from datetime import timedelta
from typing import Mapping, Optional, Tuple

import jwt

from arxiv.base import logging

from .. import domain
from . import store
from .exceptions import AccountDisabled, InvalidToken, TokenExpired, \
    TokenRevoked

logger = logging.getLogger(__name__)

ACCESS = 'access'
REFRESH = 'refresh'


class TokenEngine:
    """Issues, rotates and revokes token pairs."""

    def __init__(self, secret: str, algorithm: str = 'HS256',
                 access_ttl: int = 900, refresh_ttl: int = 7 * 24 * 3600,
                 revoked_retention: int = 30 * 24 * 3600) -> None:
        if not secret:
            raise ValueError('A signing secret is required')
        self._secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.revoked_retention = revoked_retention

    @classmethod
    def from_config(cls, config: Mapping) -> 'TokenEngine':
        return cls(config['JWT_SECRET'],
                   algorithm=config.get('JWT_ALGORITHM', 'HS256'),
                   access_ttl=config.get('ACCESS_TOKEN_TTL', 900),
                   refresh_ttl=config.get('REFRESH_TOKEN_TTL', 7 * 24 * 3600),
                   revoked_retention=config.get('REVOKED_TOKEN_RETENTION',
                                                30 * 24 * 3600))

    def issue_session(self, user: domain.User,
                      device: Optional[domain.DeviceInfo] = None) \
            -> domain.TokenPair:
        """Mint an access/refresh pair and persist the refresh token."""
        issued_at = store.now()
        iat = int(issued_at.timestamp())
        access_token = self._encode({
            'sub': user.user_id,
            'email': user.email,
            'role': domain.Role(user.role).value,
            'type': ACCESS,
            'iat': iat,
            'exp': iat + self.access_ttl
        })
        refresh_token = self._encode({
            'sub': user.user_id,
            'type': REFRESH,
            'jti': secrets.token_hex(16),
            'iat': iat,
            'exp': iat + self.refresh_ttl
        })
        expires_at = issued_at + timedelta(seconds=self.refresh_ttl)
        store.refresh_tokens.create(user.user_id, refresh_token, expires_at,
                                    device)
        return domain.TokenPair(access_token=access_token,
                                refresh_token=refresh_token,
                                expires_in=self.access_ttl)

    def refresh(self, token: str,
                device: Optional[domain.DeviceInfo] = None) \
            -> Tuple[domain.TokenPair, domain.User]:
        """
        Rotate a refresh token.

        The presented token is revoked and the new pair persisted in one
        transaction. Of two concurrent refreshes with the same token, only
        one gets a new pair.

        Raises
        ------
        :class:`.InvalidToken`
            Bad signature, malformed, or not a refresh token.
        :class:`.TokenNotFound`
            Validly signed, but not in the store.
        :class:`.TokenRevoked`
            Already revoked, by logout or an earlier rotation.
        :class:`.TokenExpired`
            Past its expiry.
        :class:`.AccountDisabled`
            The owner has been deactivated.

        """
        claims = self._decode(token, REFRESH)
        with store.transaction():
            stored = store.refresh_tokens.load(token)
            if stored.is_revoked:
                raise TokenRevoked('Refresh token has been revoked')
            if stored.expired:
                raise TokenExpired('Refresh token has expired')
            if stored.user_id != claims.get('sub'):
                raise InvalidToken('Token subject does not match')
            user = store.users.get_user_by_id(stored.user_id)
            if not user.is_active:
                raise AccountDisabled('Account is disabled')
            if not store.refresh_tokens.revoke_if_active(stored.token_id):
                raise TokenRevoked('Refresh token has been revoked')
            pair = self.issue_session(user, device)
        logger.debug('Rotated refresh token for user %s', user.user_id)
        return pair, user

    def revoke(self, token: str) -> None:
        """Revoke a single refresh token. Raises :class:`.TokenNotFound`."""
        store.refresh_tokens.revoke(token)

    def revoke_all(self, user_id: str) -> int:
        """Revoke every active refresh token of a user. Idempotent."""
        count = store.refresh_tokens.revoke_all(user_id)
        logger.debug('Revoked %i refresh tokens for user %s', count, user_id)
        return count

    def cleanup(self) -> int:
        """Delete expired tokens and long-revoked tokens."""
        count = store.refresh_tokens.delete_stale(self.revoked_retention)
        logger.info('Deleted %i stale refresh tokens', count)
        return count

    def decode_access(self, token: str) -> domain.AccessClaims:
        """Verify an access token and return its claims."""
        return domain.from_dict(domain.AccessClaims,
                                self._decode(token, ACCESS))

    def _encode(self, claims: dict) -> str:
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def _decode(self, token: str, expected_type: str) -> dict:
        if not token:
            raise InvalidToken('Token is required')
        try:
            claims: dict = jwt.decode(token, self._secret,
                                      algorithms=[self.algorithm],
                                      options={'require': ['exp', 'sub']})
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired('Token has expired') from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken('Not a valid token') from e
        if claims.get('type') != expected_type:
            raise InvalidToken(f'Expected a token of type {expected_type}')
        return claims
