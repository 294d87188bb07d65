"""Testing helpers."""

from contextlib import contextmanager
from typing import Generator, List, Tuple
from unittest import mock

from flask import Flask
from sqlalchemy.orm.session import Session

from ... import domain
from .. import store
from ..identity import IdentityService
from ..mail import Notifier
from ..otp import OTPEngine
from ..passwords import PasswordHasher
from ..tokens import TokenEngine

SECRET = 'test-secret-that-is-long-enough-for-hs256'


@contextmanager
def temporary_db(database_url: str = 'sqlite:///:memory:',
                 create: bool = True, drop: bool = True) \
        -> Generator[Session, None, None]:
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    with app.app_context():
        store.init_app(app)
        if create:
            store.create_all()
        try:
            yield store.current_session()
        finally:
            if drop:
                store.current_session().rollback()
                store.drop_all()


def fast_hasher() -> PasswordHasher:
    """A hasher with the cheapest parameters Argon2 accepts."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


class MailSpy(object):
    """Records codes instead of sending them."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.notifier = mock.MagicMock(spec=Notifier)
        for kind in ('verification', 'password_reset', 'login'):
            method = getattr(self.notifier, f'send_{kind}_otp')
            method.side_effect = self._recorder(kind)

    def _recorder(self, kind: str):
        def record(email: str, code: str) -> None:
            self.sent.append((kind, email, code))
        return record

    def last_code(self, kind: str) -> str:
        return [code for k, _, code in self.sent if k == kind][-1]


def make_service(spy: MailSpy, **token_params) -> IdentityService:
    """Build an :class:`.IdentityService` with test-friendly collaborators."""
    return IdentityService(otps=OTPEngine(),
                           tokens=TokenEngine(SECRET, **token_params),
                           notifier=spy.notifier,
                           passwords=fast_hasher())


def create_user(email: str = 'jane@example.com',
                password: str = 'correct horse', verified: bool = True,
                role: domain.Role = domain.Role.CUSTOMER) -> domain.User:
    return store.users.create(email, fast_hasher().hash(password),
                              first_name='Jane', last_name='Doe', role=role,
                              is_email_verified=verified)


def deactivate(user_id: str) -> None:
    with store.transaction() as session:
        db_user = session.get(store.models.DBUser, user_id)
        db_user.is_active = False


def count_active(user_id: str) -> int:
    """Number of unrevoked, unexpired refresh tokens held by a user."""
    with store.transaction() as session:
        rows = session.query(store.models.DBRefreshToken) \
            .filter_by(user_id=user_id, is_revoked=False) \
            .all()
        return len([row for row in rows
                    if store.util.as_utc(row.expires_at) > store.now()])
