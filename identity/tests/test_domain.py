"""Tests for :mod:`identity.domain`."""

from datetime import datetime, timedelta
from unittest import TestCase

from pytz import UTC

from .. import domain


class TestDomain(TestCase):
    """Serialization of domain objects."""

    def test_to_dict(self):
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        user = domain.User(user_id='u1', email='jane@example.com',
                           role=domain.Role.ADMIN, created_at=created)
        data = domain.to_dict(user)
        self.assertEqual(data['role'], 'ADMIN')
        self.assertEqual(data['created_at'], '2024-01-02T03:04:05+00:00')
        self.assertIsNone(data['last_login_at'])
        self.assertNotIn('password', data)

    def test_from_dict(self):
        """Enums and datetimes are cast back; unknown keys are ignored."""
        claims = domain.from_dict(domain.AccessClaims, {
            'sub': 'u1', 'email': 'jane@example.com', 'role': 'CUSTOMER',
            'type': 'access', 'iat': 1, 'exp': 2, 'jti': 'ignored'
        })
        self.assertEqual(claims.role, domain.Role.CUSTOMER)
        self.assertEqual(claims.exp, 2)

        user = domain.from_dict(domain.User, {
            'user_id': 'u1', 'email': 'jane@example.com',
            'created_at': '2024-01-02T03:04:05+00:00'
        })
        self.assertEqual(user.created_at,
                         datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC))

    def test_round_trip(self):
        otp = domain.Otp(otp_id='o1', user_id='u1', code='012345',
                         type=domain.OtpType.PASSWORD_RESET,
                         expires_at=datetime(2024, 1, 1, tzinfo=UTC))
        self.assertEqual(domain.from_dict(domain.Otp, domain.to_dict(otp)),
                         otp)

    def test_expiry(self):
        now = datetime.now(tz=UTC)
        token = domain.RefreshToken(token_id='t1', user_id='u1', token='x',
                                    expires_at=now + timedelta(minutes=1))
        self.assertTrue(token.active)
        self.assertFalse(token._replace(is_revoked=True).active)
        expired = token._replace(expires_at=now - timedelta(seconds=1))
        self.assertTrue(expired.expired)
        self.assertFalse(expired.active)
