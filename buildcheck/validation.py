# buildcheck/validation.py
from dataclasses import dataclass

from buildcheck.errors import BadRequest

# (json key, attribute, required)
IDEA_FIELDS = [
    ("ideaName", "idea_name", True),
    ("ideaDescription", "idea_description", True),
    ("targetAudience", "target_audience", True),
    ("productFormat", "product_format", False),
    ("expectedPrice", "expected_price", True),
    ("targetCountry", "target_country", False),
]

MAX_FIELD_LENGTH = 5000


@dataclass(frozen=True)
class IdeaFields:
    idea_name: str
    idea_description: str
    target_audience: str
    product_format: str = "SaaS"
    expected_price: str = ""
    target_country: str = ""


def validate_idea(payload) -> tuple[bool, str]:
    """
    Checks that the submission carries every required idea field.
    Returns (is_valid, reason)
    """
    if not isinstance(payload, dict):
        return False, "Expected a JSON object."

    missing = []
    for key, _, required in IDEA_FIELDS:
        value = payload.get(key)
        if value is not None and not isinstance(value, (str, int, float)):
            return False, f"Field '{key}' must be text."
        if len(str(value or "")) > MAX_FIELD_LENGTH:
            return False, f"Field '{key}' is too long."
        if required and not str(value or "").strip():
            missing.append(key)

    if missing:
        return False, "Missing required fields: " + ", ".join(missing)
    return True, ""


def parse_idea_fields(payload):
    is_valid, reason = validate_idea(payload)
    if not is_valid:
        raise BadRequest(reason)

    values = {attr: str(payload.get(key) or "").strip() for key, attr, _ in IDEA_FIELDS}
    if not values["product_format"]:
        values["product_format"] = "SaaS"
    return IdeaFields(**values)
