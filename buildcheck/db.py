import os
import json
import sqlite3
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from buildcheck.errors import DuplicateEmail

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

PLAN_FREE = "free"
PLAN_PRO = "pro"


def utcnow():
    return datetime.now(timezone.utc)


def format_timestamp(moment):
    return moment.strftime(TIMESTAMP_FORMAT)


# ---------- Rows ----------
@dataclass
class Account:
    id: int
    email: str
    password: str
    plan: str = PLAN_FREE
    validations_this_month: int = 0
    last_reset_date: str = ""
    created_at: str = ""

    @property
    def is_pro(self):
        return self.plan == PLAN_PRO

    def to_dict(self, include_usage=False):
        data = {"id": self.id, "email": self.email, "plan": self.plan}
        if include_usage:
            data["validations_this_month"] = self.validations_this_month
        return data

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row["id"],
            email=row["email"],
            password=row["password"],
            plan=row["plan"],
            validations_this_month=row["validations_this_month"],
            last_reset_date=row["last_reset_date"],
            created_at=row["created_at"],
        )


@dataclass
class ValidationRecord:
    id: int
    user_id: int
    idea_name: str
    idea_description: str
    target_audience: str
    product_format: str
    expected_price: str
    target_country: str
    ai_output: str
    created_at: str
    report: dict = field(default=None, repr=False)

    def __post_init__(self):
        if self.report is None:
            self.report = json.loads(self.ai_output)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "idea_name": self.idea_name,
            "idea_description": self.idea_description,
            "target_audience": self.target_audience,
            "product_format": self.product_format,
            "expected_price": self.expected_price,
            "target_country": self.target_country,
            "ai_output": self.report,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row):
        return cls(**{k: row[k] for k in VALIDATION_COLUMNS})


VALIDATION_COLUMNS = (
    "id", "user_id", "idea_name", "idea_description", "target_audience",
    "product_format", "expected_price", "target_country", "ai_output", "created_at",
)


# ---------- Connection ----------
class Store:
    """Opens connections to the sqlite database and owns its schema."""

    def __init__(self, path):
        self.path = path

    def connect(self):
        if self.path != ":memory:":
            folder = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(folder, exist_ok=True)
        # autocommit; multi-statement writes go through transaction()
        conn = sqlite3.connect(self.path, isolation_level=None, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_schema(self):
        conn = self.connect()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            init_db(conn)
            auto_migrate_accounts(conn)
        finally:
            conn.close()


@contextmanager
def transaction(conn):
    """Run the enclosed statements as one write transaction."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


# ---------- Schema + migrations ----------
def init_db(conn):
    """Create the accounts and validations tables if missing."""
    conn.execute('''CREATE TABLE IF NOT EXISTS accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        password TEXT NOT NULL,
        plan TEXT NOT NULL DEFAULT 'free',
        validations_this_month INTEGER NOT NULL DEFAULT 0,
        last_reset_date TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )''')
    conn.execute('''CREATE TABLE IF NOT EXISTS validations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        idea_name TEXT,
        idea_description TEXT,
        target_audience TEXT,
        product_format TEXT,
        expected_price TEXT,
        target_country TEXT,
        ai_output TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY(user_id) REFERENCES accounts(id)
    )''')
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_validations_user ON validations (user_id, created_at)"
    )


def auto_migrate_accounts(conn):
    """Add missing columns to accounts without deleting data."""
    existing = [r[1] for r in conn.execute("PRAGMA table_info(accounts)").fetchall()]
    expected = [
        ("plan", "TEXT NOT NULL DEFAULT 'free'"),
        ("validations_this_month", "INTEGER NOT NULL DEFAULT 0"),
        ("last_reset_date", "TEXT NOT NULL DEFAULT '1970-01-01 00:00:00'"),
    ]
    for col, typ in expected:
        if col not in existing:
            conn.execute(f"ALTER TABLE accounts ADD COLUMN {col} {typ}")
            logger.info(f"✅ Added missing column to accounts: {col}")


# ---------- Accounts ----------
def create_account(conn, email, password_hash, now=None):
    stamp = format_timestamp(now or utcnow())
    try:
        cur = conn.execute(
            "INSERT INTO accounts (email, password, plan, validations_this_month, last_reset_date, created_at) "
            "VALUES (?, ?, ?, 0, ?, ?)",
            (email, password_hash, PLAN_FREE, stamp, stamp),
        )
    except sqlite3.IntegrityError:
        raise DuplicateEmail()
    return get_account(conn, cur.lastrowid)


def get_account(conn, account_id):
    row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
    return Account.from_row(row) if row else None


def get_account_by_email(conn, email):
    row = conn.execute("SELECT * FROM accounts WHERE email = ?", (email,)).fetchone()
    return Account.from_row(row) if row else None


def count_accounts(conn):
    return conn.execute("SELECT COUNT(*) FROM accounts").fetchone()[0]


def reset_usage(conn, account_id, now, previous_reset):
    """Zero the counter only if nobody reset it since previous_reset was read.

    Returns True when this call performed the reset.
    """
    cur = conn.execute(
        "UPDATE accounts SET validations_this_month = 0, last_reset_date = ? "
        "WHERE id = ? AND last_reset_date = ?",
        (format_timestamp(now), account_id, previous_reset),
    )
    return cur.rowcount == 1


def increment_usage_if_allowed(conn, account_id, free_limit):
    """Count one validation unless a free account is already at its limit.

    Returns True when the counter was incremented.
    """
    cur = conn.execute(
        "UPDATE accounts SET validations_this_month = validations_this_month + 1 "
        "WHERE id = ? AND (plan = ? OR validations_this_month < ?)",
        (account_id, PLAN_PRO, free_limit),
    )
    return cur.rowcount == 1


def set_plan(conn, account_id, plan):
    """Returns True when a matching account exists."""
    cur = conn.execute("UPDATE accounts SET plan = ? WHERE id = ?", (plan, account_id))
    return cur.rowcount == 1


# ---------- Validations ----------
def insert_validation(conn, account_id, fields, ai_output, now=None):
    created_at = format_timestamp(now or utcnow())
    cur = conn.execute('''INSERT INTO validations (
        user_id, idea_name, idea_description, target_audience,
        product_format, expected_price, target_country, ai_output, created_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)''', (
        account_id,
        fields.idea_name,
        fields.idea_description,
        fields.target_audience,
        fields.product_format,
        fields.expected_price,
        fields.target_country,
        ai_output,
        created_at,
    ))
    return cur.lastrowid


def get_validation(conn, validation_id, account_id):
    row = conn.execute(
        "SELECT * FROM validations WHERE id = ? AND user_id = ?",
        (validation_id, account_id),
    ).fetchone()
    return ValidationRecord.from_row(row) if row else None


def list_validations(conn, account_id):
    rows = conn.execute(
        "SELECT * FROM validations WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (account_id,),
    ).fetchall()
    return [ValidationRecord.from_row(r) for r in rows]


def count_validations(conn, account_id):
    return conn.execute(
        "SELECT COUNT(*) FROM validations WHERE user_id = ?", (account_id,)
    ).fetchone()[0]
