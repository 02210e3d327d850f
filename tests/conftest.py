import copy
import hashlib
import hmac
import json
import time

import pytest

from buildcheck import create_app
from buildcheck.config import Settings
from buildcheck.db import Store
from buildcheck.errors import AnalysisError

WEBHOOK_SECRET = "whsec_test_secret"

SAMPLE_REPORT = {
    "demand_score": 7,
    "demand_reason": "Freelancers already pay for planning tools.",
    "competition_intensity": 8,
    "competition_reason": "Crowded space with Notion and Todoist.",
    "differentiation_potential": 6,
    "monetization_difficulty": 4,
    "scalability_score": 9,
    "verdict": "BUILD WITH REFINEMENT",
    "niche_narrowing": "Focus on freelance video editors juggling client deadlines.",
    "unique_positioning_angles": ["Deadline-first planning", "Client-facing timelines"],
    "first_100_customer_strategy": "Post weekly templates in editor communities.",
    "suggested_price_range": "$12-$19/mo",
}

IDEA = {
    "ideaName": "Planner",
    "ideaDescription": "A planner for freelancers that schedules work around client deadlines.",
    "targetAudience": "Freelancers",
    "productFormat": "SaaS",
    "expectedPrice": "$19/mo",
    "targetCountry": "USA",
}


class FakeAnalyzer:
    def __init__(self, report=None):
        self.report = copy.deepcopy(report or SAMPLE_REPORT)
        self.calls = []
        self.fail = False

    def analyze(self, fields):
        self.calls.append(fields)
        if self.fail:
            raise AnalysisError()
        return copy.deepcopy(self.report), json.dumps(self.report)


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_event(account_id, event_type="checkout.session.completed"):
    return json.dumps({
        "id": "evt_test_1",
        "type": event_type,
        "data": {"object": {"id": "cs_test_1", "client_reference_id": str(account_id)}},
    }).encode("utf-8")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key="test-secret",
        database_path=str(tmp_path / "test.sqlite3"),
        stripe_webhook_secret=WEBHOOK_SECRET,
        session_cookie_secure=False,
    )


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def app(settings, analyzer):
    app = create_app(settings=settings, analyzer=analyzer)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def conn(app, settings):
    conn = Store(settings.database_path).connect()
    yield conn
    conn.close()


@pytest.fixture
def signup(client):
    def _signup(email="founder@example.com", password="s3cret-pass", test_client=None):
        response = (test_client or client).post(
            "/api/auth/signup", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.get_json()
        return response.get_json()
    return _signup
