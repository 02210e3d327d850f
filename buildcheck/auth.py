import logging
from functools import wraps

from flask import g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from buildcheck import db, usage
from buildcheck.context import get_conn, get_context
from buildcheck.errors import BadRequest, Forbidden, InvalidCredentials, Unauthorized

logger = logging.getLogger(__name__)

COOKIE_NAME = "token"
TOKEN_SALT = "session"


# ---------- Credentials ----------
def _normalise_email(email):
    return email.strip().lower()


def register(conn, email, password):
    if not isinstance(email, str) or not isinstance(password, str):
        raise BadRequest("Email and password are required.")
    email = _normalise_email(email)
    if not email or not password:
        raise BadRequest("Email and password are required.")
    account = db.create_account(conn, email, generate_password_hash(password))
    logger.info(f"✅ Account created: {account.id}")
    return account


def authenticate(conn, email, password):
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidCredentials()
    account = db.get_account_by_email(conn, _normalise_email(email))
    if not account or not password or not check_password_hash(account.password, password):
        logger.info("⚠️ Failed login attempt")
        raise InvalidCredentials()
    return account


# ---------- Session tokens ----------
def _serializer(secret_key):
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)


def issue_token(secret_key, account):
    return _serializer(secret_key).dumps({"id": account.id, "email": account.email})


def verify_token(secret_key, token, max_age):
    """Return the token payload; raises Forbidden on a bad or expired signature."""
    try:
        payload = _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired:
        logger.info("⚠️ Session token expired")
        raise Forbidden()
    except BadSignature:
        logger.warning("⚠️ Session token signature invalid")
        raise Forbidden()
    if not isinstance(payload, dict) or "id" not in payload:
        raise Forbidden()
    return payload


def set_session_cookie(response, account):
    settings = get_context().settings
    secure = settings.session_cookie_secure
    response.set_cookie(
        COOKIE_NAME,
        issue_token(settings.secret_key, account),
        max_age=settings.session_max_age,
        httponly=True,
        secure=secure,
        samesite="None" if secure else "Lax",
    )
    return response


def clear_session_cookie(response):
    settings = get_context().settings
    secure = settings.session_cookie_secure
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        secure=secure,
        samesite="None" if secure else "Lax",
    )
    return response


def load_account_from_request():
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise Unauthorized()

    settings = get_context().settings
    payload = verify_token(settings.secret_key, token, settings.session_max_age)

    conn = get_conn()
    account = db.get_account(conn, payload["id"])
    if account is None or account.email != payload.get("email"):
        logger.warning(f"⚠️ Token for missing account {payload.get('id')}")
        raise Forbidden()
    return usage.refresh_monthly_usage(conn, account)


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        g.account = load_account_from_request()
        return f(*args, **kwargs)
    return wrapper
