"""Provide methods for working with user accounts."""

from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError

from arxiv.base import logging

from ... import domain
from ..exceptions import Conflict, NoSuchUser
from . import util
from .models import DBUser

logger = logging.getLogger(__name__)


def email_exists(email: str) -> bool:
    """Determine whether a user with a particular address already exists."""
    with util.transaction() as session:
        data = session.query(DBUser.id).filter(DBUser.email == email).first()
        return data is not None


def create(email: str, password_hash: str, first_name: Optional[str] = None,
           last_name: Optional[str] = None,
           role: domain.Role = domain.Role.CUSTOMER,
           is_email_verified: bool = False) -> domain.User:
    """
    Create a new user.

    Raises
    ------
    :class:`.Conflict`
        The e-mail address is taken. The unique constraint is the final word,
        even if a caller checked :func:`email_exists` first.

    """
    try:
        with util.transaction() as session:
            db_user = DBUser(
                email=email,
                password=password_hash,
                first_name=first_name,
                last_name=last_name,
                role=role,
                is_email_verified=is_email_verified
            )
            session.add(db_user)
            session.flush()
            return _to_domain(db_user)
    except IntegrityError as e:
        raise Conflict('User already exists') from e


def get_user_by_id(user_id: str) -> domain.User:
    """Load user data from the database."""
    return _to_domain(_load(user_id))


def get_user_by_email(email: str) -> domain.User:
    """Load user data by e-mail address."""
    with util.transaction() as session:
        db_user = session.query(DBUser).filter(DBUser.email == email).first()
        if db_user is None:
            raise NoSuchUser('User does not exist')
        return _to_domain(db_user)


def get_credentials(email: str) -> Tuple[domain.User, str]:
    """
    Load a user along with their password hash.

    Only the identity service calls this, to verify a password; the hash must
    not be passed any further.
    """
    with util.transaction() as session:
        db_user = session.query(DBUser).filter(DBUser.email == email).first()
        if db_user is None:
            raise NoSuchUser('User does not exist')
        return _to_domain(db_user), db_user.password


def get_password_hash(user_id: str) -> str:
    """Load the password hash of a user by id."""
    return _load(user_id).password


def set_password(user_id: str, password_hash: str) -> None:
    """Replace a user's password hash."""
    with util.transaction() as session:
        db_user = _load(user_id)
        db_user.password = password_hash
        session.add(db_user)


def mark_email_verified(user_id: str) -> domain.User:
    """Flag the user's e-mail address as verified."""
    with util.transaction() as session:
        db_user = _load(user_id)
        db_user.is_email_verified = True
        session.add(db_user)
        session.flush()
        return _to_domain(db_user)


def touch_last_login(user_id: str) -> domain.User:
    """Record a successful login."""
    with util.transaction() as session:
        db_user = _load(user_id)
        db_user.last_login_at = util.now()
        session.add(db_user)
        session.flush()
        return _to_domain(db_user)


def delete(user_id: str) -> None:
    """Delete a user, along with their one-time codes and refresh tokens."""
    with util.transaction() as session:
        session.delete(_load(user_id))


def _load(user_id: str) -> DBUser:
    with util.transaction() as session:
        db_user: Optional[DBUser] = session.get(DBUser, user_id)
        if db_user is None:
            raise NoSuchUser('User does not exist')
        return db_user


def _to_domain(db_user: DBUser) -> domain.User:
    return domain.User(
        user_id=str(db_user.id),
        email=db_user.email,
        first_name=db_user.first_name,
        last_name=db_user.last_name,
        avatar=db_user.avatar,
        role=domain.Role(db_user.role),
        is_active=bool(db_user.is_active),
        is_email_verified=bool(db_user.is_email_verified),
        last_login_at=util.as_utc(db_user.last_login_at),
        created_at=util.as_utc(db_user.created_at),
        updated_at=util.as_utc(db_user.updated_at)
    )
