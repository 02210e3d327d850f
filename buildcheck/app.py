import io
import logging

from flask import Blueprint, Flask, g, jsonify, request, send_file
from werkzeug.exceptions import HTTPException

from buildcheck import auth, billing, workflow
from buildcheck.config import Settings
from buildcheck.context import EXTENSION_KEY, AppContext, close_conn, get_conn, get_context
from buildcheck.db import Store
from buildcheck.errors import AppError, BadRequest, Forbidden
from buildcheck.gemini_api import GeminiAnalyzer
from buildcheck.pdf_generator import generate_pdf, report_filename
from buildcheck.validation import parse_idea_fields

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")


def _json_body():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest("Expected a JSON object.")
    return payload


# ---------- Auth ----------
@api.route("/auth/signup", methods=["POST"])
def signup():
    payload = _json_body()
    account = auth.register(get_conn(), payload.get("email"), payload.get("password"))
    return auth.set_session_cookie(jsonify(account.to_dict()), account)


@api.route("/auth/login", methods=["POST"])
def login():
    payload = _json_body()
    account = auth.authenticate(get_conn(), payload.get("email"), payload.get("password"))
    return auth.set_session_cookie(jsonify(account.to_dict()), account)


@api.route("/auth/me")
@auth.login_required
def me():
    return jsonify(g.account.to_dict(include_usage=True))


@api.route("/auth/logout", methods=["POST"])
def logout():
    return auth.clear_session_cookie(jsonify({"success": True}))


# ---------- Validations ----------
@api.route("/validations", methods=["POST"])
@auth.login_required
def create_validation():
    fields = parse_idea_fields(request.get_json(silent=True))
    record = workflow.submit(get_conn(), get_context().analyzer, g.account.id, fields)
    return jsonify({"id": record.id, "ai_output": record.report})


@api.route("/validations")
@auth.login_required
def list_validations():
    records = workflow.list_for_account(get_conn(), g.account.id)
    return jsonify([r.to_dict() for r in records])


@api.route("/validations/<int:record_id>")
@auth.login_required
def get_validation(record_id):
    record = workflow.get_for_account(get_conn(), g.account.id, record_id)
    return jsonify(record.to_dict())


@api.route("/validations/<int:record_id>/pdf")
@auth.login_required
def download_validation_pdf(record_id):
    record = workflow.get_for_account(get_conn(), g.account.id, record_id)
    if not g.account.is_pro:
        raise Forbidden("PDF export is available on the Pro plan.")
    return send_file(
        io.BytesIO(generate_pdf(record)),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report_filename(record),
    )


# ---------- Billing ----------
@api.route("/billing/create-checkout", methods=["POST"])
@auth.login_required
def create_checkout():
    url = billing.create_checkout(get_context().settings, g.account)
    return jsonify({"url": url})


@api.route("/billing/webhook", methods=["POST"])
def stripe_webhook():
    billing.handle_event(
        get_conn(),
        get_context().settings,
        request.get_data(),
        request.headers.get("Stripe-Signature"),
    )
    return jsonify({"received": True})


# ---------- Error handlers ----------
def handle_app_error(e):
    return jsonify(e.to_dict()), e.status_code


def handle_http_error(e):
    return jsonify({"error": e.description}), e.code


def handle_unexpected_error(e):
    logger.exception("❌ Unhandled error")
    return jsonify({"error": "Internal server error"}), 500


def refresh_session_cookie(response):
    """Sliding expiry: every successful authenticated call renews the token."""
    account = g.get("account")
    if account is not None and response.status_code < 400:
        auth.set_session_cookie(response, account)
    return response


# ---------- App factory ----------
def create_app(settings=None, analyzer=None):
    settings = settings or Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    store = Store(settings.database_path)
    store.init_schema()

    if analyzer is None:
        analyzer = GeminiAnalyzer(
            settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_ms=settings.gemini_timeout_ms,
        )
        if not settings.gemini_api_key:
            logger.warning("⚠️ GEMINI_API_KEY not set - validations will fail.")
    if not settings.billing_enabled:
        logger.warning("⚠️ STRIPE_SECRET_KEY not set - checkout disabled.")

    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.extensions[EXTENSION_KEY] = AppContext(settings=settings, store=store, analyzer=analyzer)

    app.register_blueprint(api)
    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    app.after_request(refresh_session_cookie)
    app.teardown_appcontext(close_conn)

    @app.route("/ping")
    def ping():
        return {"status": "ok", "message": "Validate Before You Build API is live"}

    logger.info(f"✅ App ready (database: {settings.database_path})")
    return app
