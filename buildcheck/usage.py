import logging
from collections import namedtuple
from datetime import datetime, timezone

from buildcheck import db
from buildcheck.errors import QuotaExceeded

logger = logging.getLogger(__name__)

FREE_MONTHLY_LIMIT = 2

QuotaDecision = namedtuple("QuotaDecision", ["allowed", "reason"])


def check_quota(account):
    """Pure predicate over loaded account state; pro accounts are never denied."""
    if account.is_pro:
        return QuotaDecision(True, "")
    if account.validations_this_month >= FREE_MONTHLY_LIMIT:
        return QuotaDecision(False, QuotaExceeded.message)
    return QuotaDecision(True, "")


def enforce_quota(account):
    decision = check_quota(account)
    if not decision.allowed:
        logger.info(f"🚫 Quota reached for account {account.id} ({account.validations_this_month} this month)")
        raise QuotaExceeded(decision.reason)
    return decision


def _month_key(moment):
    return (moment.year, moment.month)


def needs_reset(account, now):
    """True when the last reset happened in an earlier calendar month (UTC)."""
    try:
        last = datetime.strptime(account.last_reset_date[:19], db.TIMESTAMP_FORMAT)
    except (TypeError, ValueError):
        return True
    last = last.replace(tzinfo=timezone.utc)
    return _month_key(last) < _month_key(now)


def refresh_monthly_usage(conn, account, now=None):
    """Zero the counter once per calendar month; returns the current account row."""
    now = now or db.utcnow()
    if not needs_reset(account, now):
        return account
    if db.reset_usage(conn, account.id, now, account.last_reset_date):
        logger.info(f"🔄 Monthly usage reset for account {account.id}")
    return db.get_account(conn, account.id)
