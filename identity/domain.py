"""Defines identity concepts used throughout the service."""

from typing import Any, Optional, NamedTuple, Callable, Union, \
    get_type_hints, get_origin, get_args
from datetime import datetime
from enum import Enum
import dateutil.parser
from pytz import UTC


class Role(str, Enum):
    """Roles a :class:`.User` may hold."""

    ADMIN = 'ADMIN'
    CUSTOMER = 'CUSTOMER'


class OtpType(str, Enum):
    """The purpose for which a one-time code was issued."""

    LOGIN = 'LOGIN'
    VERIFICATION = 'VERIFICATION'
    PASSWORD_RESET = 'PASSWORD_RESET'


class User(NamedTuple):
    """
    Represents a user account.

    There is deliberately no password field: the password hash never leaves
    :mod:`identity.services.store`.
    """

    user_id: str
    """Opaque unique identifier."""

    email: str
    """Unique e-mail address, case-sensitive as stored."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None

    role: Role = Role.CUSTOMER

    is_active: bool = True
    """Inactive accounts cannot log in or refresh sessions."""

    is_email_verified: bool = False
    """Whether or not the user's e-mail address has been verified."""

    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Otp(NamedTuple):
    """A one-time verification code."""

    otp_id: str
    user_id: str
    code: str
    type: OtpType
    expires_at: datetime
    is_used: bool = False
    created_at: Optional[datetime] = None

    @property
    def expired(self) -> bool:
        """Expired if the current time is later than :attr:`.expires_at`."""
        return datetime.now(tz=UTC) >= self.expires_at


class RefreshToken(NamedTuple):
    """A persisted refresh token."""

    token_id: str
    user_id: str
    token: str
    expires_at: datetime
    is_revoked: bool = False
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def expired(self) -> bool:
        """Expired is derived from :attr:`.expires_at`, never stored."""
        return datetime.now(tz=UTC) >= self.expires_at

    @property
    def active(self) -> bool:
        """Neither revoked nor expired."""
        return not self.is_revoked and not self.expired


class DeviceInfo(NamedTuple):
    """Client metadata recorded with a refresh token."""

    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class TokenPair(NamedTuple):
    """Credentials handed to a client at login and on every refresh."""

    access_token: str
    refresh_token: str
    expires_in: int
    """Seconds until the access token expires."""

    token_type: str = 'bearer'


class AccessClaims(NamedTuple):
    """Claims carried by an access token."""

    sub: str
    email: str
    role: Role
    exp: int
    iat: int
    type: str = 'access'


# Helpers and private functions.


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    This just uses the built-in ``_asdict`` method on the intance, but also
    calls this on any child NamedTuple instances (recursively) so that the
    entire tree is cast to ``dict``. Datetimes become ISO-8601 strings and
    enums their values, so the result is JSON-ready.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}


def from_dict(cls: type, data: dict) -> Any:
    """
    Generate a NamedTuple instance from a dict, with recursion.

    This is the inverse of :func:`to_dict`. Keys that are not fields of
    ``cls`` are ignored, so this can be used directly on decoded JWT claims.
    """
    _data = {}
    for field, field_type in get_type_hints(cls).items():
        if field not in data:
            continue
        value = data[field]
        target_type = _get_cast_type(field_type, value)
        if target_type:
            value = target_type(value)
        _data[field] = value
    return cls(**_data)


def _candidate_types(field_type: Any) -> tuple:
    """Unpack ``Optional[X]`` and friends into their member types."""
    if get_origin(field_type) is Union:
        return get_args(field_type)
    return (field_type,)


def _get_cast_type(field_type: Any, value: Any) -> Optional[Callable]:
    """Get a casting callable for a field type/value."""
    for candidate in _candidate_types(field_type):
        if isinstance(value, dict) and hasattr(candidate, '_fields'):
            return lambda v, c=candidate: from_dict(c, v)
        if isinstance(value, str) and candidate is datetime:
            return dateutil.parser.parse
        if isinstance(candidate, type) and issubclass(candidate, Enum) \
                and not isinstance(value, candidate):
            return candidate
    return None
