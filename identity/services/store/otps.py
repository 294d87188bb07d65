"""Persistence for one-time codes."""

from typing import List
from datetime import datetime, timedelta

from sqlalchemy import and_, or_

from ... import domain
from . import util
from .models import DBOtp


def invalidate_unused(user_id: str, otp_type: domain.OtpType) -> int:
    """Mark every unused code of ``otp_type`` for a user as used."""
    with util.transaction() as session:
        return session.query(DBOtp) \
            .filter(DBOtp.user_id == user_id) \
            .filter(DBOtp.type == otp_type) \
            .filter(DBOtp.is_used.is_(False)) \
            .update({DBOtp.is_used: True}, synchronize_session=False)


def create(user_id: str, code: str, otp_type: domain.OtpType,
           expires_at: datetime) -> domain.Otp:
    """Persist a new one-time code."""
    with util.transaction() as session:
        db_otp = DBOtp(user_id=user_id, code=code, type=otp_type,
                       expires_at=expires_at, is_used=False)
        session.add(db_otp)
        session.flush()
        return _to_domain(db_otp)


def get_unused(user_id: str, otp_type: domain.OtpType) -> List[domain.Otp]:
    """
    Load the unused, unexpired codes of ``otp_type`` for a user.

    Newest first. Expiry is checked here rather than in the query, since
    some backends hand timestamps back without a zone.
    """
    with util.transaction() as session:
        rows = session.query(DBOtp) \
            .filter(DBOtp.user_id == user_id) \
            .filter(DBOtp.type == otp_type) \
            .filter(DBOtp.is_used.is_(False)) \
            .order_by(DBOtp.created_at.desc()) \
            .all()
        return [otp for otp in map(_to_domain, rows) if not otp.expired]


def consume(otp_id: str) -> bool:
    """
    Mark a code used, if nobody else has.

    Returns ``False`` when the code was already used, i.e. a concurrent
    request consumed it first.
    """
    with util.transaction() as session:
        count = session.query(DBOtp) \
            .filter(DBOtp.id == otp_id) \
            .filter(DBOtp.is_used.is_(False)) \
            .update({DBOtp.is_used: True}, synchronize_session=False)
        return count == 1


def delete_stale(used_retention: int) -> int:
    """Delete expired codes, and used codes older than ``used_retention``."""
    now = util.now()
    with util.transaction() as session:
        return session.query(DBOtp) \
            .filter(or_(
                DBOtp.expires_at < now,
                and_(DBOtp.is_used.is_(True),
                     DBOtp.created_at < now - timedelta(
                         seconds=used_retention))
            )) \
            .delete(synchronize_session=False)


def _to_domain(db_otp: DBOtp) -> domain.Otp:
    return domain.Otp(
        otp_id=str(db_otp.id),
        user_id=str(db_otp.user_id),
        code=db_otp.code,
        type=domain.OtpType(db_otp.type),
        expires_at=util.as_utc(db_otp.expires_at),
        is_used=bool(db_otp.is_used),
        created_at=util.as_utc(db_otp.created_at)
    )
