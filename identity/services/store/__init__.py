"""
Credential store: users, one-time codes and refresh tokens.

Password hashes are read and written here, but every function that hands a
user back to a caller returns a :class:`identity.domain.User`, which has no
password field.
"""

from . import otps, refresh_tokens, users
from .models import db
from .util import transaction, init_app, current_session, create_all, \
    drop_all, is_available, now

__all__ = (
    'otps', 'refresh_tokens', 'users', 'db', 'transaction', 'init_app',
    'current_session', 'create_all', 'drop_all', 'is_available', 'now',
)
