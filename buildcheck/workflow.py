import logging

from buildcheck import db, usage
from buildcheck.errors import NotFound, QuotaExceeded, Unauthorized

logger = logging.getLogger(__name__)


def submit(conn, analyzer, account_id, fields, now=None):
    """Quota check, AI analysis, then record + usage committed together."""
    # 1. reload current account state
    account = db.get_account(conn, account_id)
    if account is None:
        raise Unauthorized()
    account = usage.refresh_monthly_usage(conn, account, now)

    # 2. fail before spending an AI call
    usage.enforce_quota(account)

    # 3. external analysis
    logger.info(f"🧠 Analysing idea {fields.idea_name!r} for account {account.id}")
    report, ai_output = analyzer.analyze(fields)

    # 4. conditional increment + insert in one unit
    with db.transaction(conn):
        if not db.increment_usage_if_allowed(conn, account.id, usage.FREE_MONTHLY_LIMIT):
            logger.info(f"🚫 Quota taken by a concurrent submission for account {account.id}")
            raise QuotaExceeded()
        record_id = db.insert_validation(conn, account.id, fields, ai_output, now)

    logger.info(f"✅ Validation {record_id} stored for account {account.id} ({report['verdict']})")
    return db.get_validation(conn, record_id, account.id)


def list_for_account(conn, account_id):
    return db.list_validations(conn, account_id)


def get_for_account(conn, account_id, record_id):
    record = db.get_validation(conn, record_id, account_id)
    if record is None:
        raise NotFound()
    return record
