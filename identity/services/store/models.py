"""SQLAlchemy models for the credential store."""

import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from pytz import UTC
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, \
    String, Text
from sqlalchemy.orm import relationship

from ... import domain

db: SQLAlchemy = SQLAlchemy()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(tz=UTC)


class DBUser(db.Model):  # type: ignore
    """
    User accounts.

    +-------------------+--------------+------+-----+----------+
    | Field             | Type         | Null | Key | Default  |
    +-------------------+--------------+------+-----+----------+
    | id                | varchar(36)  | NO   | PRI |          |
    | email             | varchar(255) | NO   | UNI |          |
    | password          | text         | NO   |     |          |
    | first_name        | varchar(100) | YES  |     | NULL     |
    | last_name         | varchar(100) | YES  |     | NULL     |
    | avatar            | text         | YES  |     | NULL     |
    | role              | enum         | NO   |     | CUSTOMER |
    | is_active         | bool         | NO   |     | 1        |
    | is_email_verified | bool         | NO   |     | 0        |
    | last_login_at     | datetime     | YES  |     | NULL     |
    | created_at        | datetime     | NO   |     | now      |
    | updated_at        | datetime     | NO   |     | now      |
    +-------------------+--------------+------+-----+----------+
    """

    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True)
    password = Column(Text, nullable=False)
    """Argon2 hash. Never leaves the store."""
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    avatar = Column(Text, nullable=True)
    role = Column(Enum(domain.Role, name='user_role'), nullable=False,
                  default=domain.Role.CUSTOMER)
    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now,
                        onupdate=_now)

    otps = relationship('DBOtp', back_populates='user',
                        cascade='all, delete-orphan', passive_deletes=True)
    refresh_tokens = relationship('DBRefreshToken', back_populates='user',
                                  cascade='all, delete-orphan',
                                  passive_deletes=True)


class DBOtp(db.Model):  # type: ignore
    """One-time codes for login, e-mail verification and password reset."""

    __tablename__ = 'otps'
    __table_args__ = (
        Index('otps_user_type_idx', 'user_id', 'type', 'is_used'),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    code = Column(String(16), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_used = Column(Boolean, nullable=False, default=False)
    type = Column(Enum(domain.OtpType, name='otp_type'), nullable=False,
                  default=domain.OtpType.LOGIN)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'),
                     nullable=False, index=True)

    user = relationship('DBUser', back_populates='otps')


class DBRefreshToken(db.Model):  # type: ignore
    """Refresh tokens issued at login and on every rotation."""

    __tablename__ = 'refresh_tokens'

    id = Column(String(36), primary_key=True, default=_uuid)
    token = Column(String(512), nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_revoked = Column(Boolean, nullable=False, default=False)
    user_agent = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'),
                     nullable=False, index=True)

    user = relationship('DBUser', back_populates='refresh_tokens')
