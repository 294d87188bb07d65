"""Persistence for refresh tokens."""

from typing import Optional
from datetime import datetime, timedelta

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from ... import domain
from ..exceptions import Conflict, TokenNotFound
from . import util
from .models import DBRefreshToken


def create(user_id: str, token: str, expires_at: datetime,
           device: Optional[domain.DeviceInfo] = None) -> domain.RefreshToken:
    """
    Persist a newly minted refresh token.

    Raises
    ------
    :class:`.Conflict`
        A token with the same value already exists.

    """
    device = device or domain.DeviceInfo()
    try:
        with util.transaction() as session:
            db_token = DBRefreshToken(
                user_id=user_id,
                token=token,
                expires_at=expires_at,
                is_revoked=False,
                user_agent=device.user_agent,
                ip_address=device.ip_address
            )
            session.add(db_token)
            session.flush()
            return _to_domain(db_token)
    except IntegrityError as e:
        raise Conflict('Refresh token already exists') from e


def load(token: str) -> domain.RefreshToken:
    """Load a refresh token by value."""
    with util.transaction() as session:
        db_token = session.query(DBRefreshToken) \
            .filter(DBRefreshToken.token == token) \
            .first()
        if db_token is None:
            raise TokenNotFound('No such refresh token')
        return _to_domain(db_token)


def revoke_if_active(token_id: str) -> bool:
    """
    Revoke a token unless it is already revoked.

    Returns ``False`` if the token was revoked in the meantime.
    """
    with util.transaction() as session:
        count = session.query(DBRefreshToken) \
            .filter(DBRefreshToken.id == token_id) \
            .filter(DBRefreshToken.is_revoked.is_(False)) \
            .update({DBRefreshToken.is_revoked: True},
                    synchronize_session=False)
        return count == 1


def revoke(token: str) -> None:
    """Revoke a token by value."""
    with util.transaction() as session:
        count = session.query(DBRefreshToken) \
            .filter(DBRefreshToken.token == token) \
            .update({DBRefreshToken.is_revoked: True},
                    synchronize_session=False)
        if count == 0:
            raise TokenNotFound('No such refresh token')


def revoke_all(user_id: str) -> int:
    """Revoke every active refresh token of a user."""
    with util.transaction() as session:
        return session.query(DBRefreshToken) \
            .filter(DBRefreshToken.user_id == user_id) \
            .filter(DBRefreshToken.is_revoked.is_(False)) \
            .update({DBRefreshToken.is_revoked: True},
                    synchronize_session=False)


def delete_stale(revoked_retention: int) -> int:
    """Delete expired tokens, and revoked tokens older than the retention."""
    now = util.now()
    with util.transaction() as session:
        return session.query(DBRefreshToken) \
            .filter(or_(
                DBRefreshToken.expires_at < now,
                and_(DBRefreshToken.is_revoked.is_(True),
                     DBRefreshToken.created_at < now - timedelta(
                         seconds=revoked_retention))
            )) \
            .delete(synchronize_session=False)


def _to_domain(db_token: DBRefreshToken) -> domain.RefreshToken:
    return domain.RefreshToken(
        token_id=str(db_token.id),
        user_id=str(db_token.user_id),
        token=db_token.token,
        expires_at=util.as_utc(db_token.expires_at),
        is_revoked=bool(db_token.is_revoked),
        user_agent=db_token.user_agent,
        ip_address=db_token.ip_address,
        created_at=util.as_utc(db_token.created_at)
    )
