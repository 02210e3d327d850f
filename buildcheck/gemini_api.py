import json
import re
import logging
import numbers

import google.genai as genai
from google.genai import types

from buildcheck.errors import AnalysisError

logger = logging.getLogger(__name__)

VERDICTS = ("BUILD", "BUILD WITH REFINEMENT", "DO NOT BUILD")

SCORE_FIELDS = (
    "demand_score",
    "competition_intensity",
    "differentiation_potential",
    "monetization_difficulty",
    "scalability_score",
)

TEXT_FIELDS = (
    "demand_reason",
    "competition_reason",
    "niche_narrowing",
    "first_100_customer_strategy",
    "suggested_price_range",
)

SYSTEM_PROMPT = """You are a professional startup validation analyst.
Analyze digital product ideas realistically and provide structured scoring.
Respond ONLY in JSON format with the following fields:
{
  "demand_score": number (1-10),
  "demand_reason": string,
  "competition_intensity": number (1-10),
  "competition_reason": string,
  "differentiation_potential": number (1-10),
  "monetization_difficulty": number (1-10),
  "scalability_score": number (1-10),
  "verdict": "BUILD" | "BUILD WITH REFINEMENT" | "DO NOT BUILD",
  "niche_narrowing": string,
  "unique_positioning_angles": string[],
  "first_100_customer_strategy": string,
  "suggested_price_range": string
}
Be realistic. Avoid generic motivational advice."""


def make_prompt(fields):
    """Generate the idea description sent alongside the system instruction."""
    return (
        "Idea Details:\n"
        f"Name: {fields.idea_name}\n"
        f"Description: {fields.idea_description}\n"
        f"Target Audience: {fields.target_audience}\n"
        f"Product Format: {fields.product_format}\n"
        f"Expected Price: {fields.expected_price}\n"
        f"Target Country: {fields.target_country or 'Global'}"
    )


def _extract_json(text):
    text = (text or "").strip()
    if text.startswith("{"):
        return text
    # models occasionally wrap the object in a markdown fence
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        raise AnalysisError()
    return match.group(0)


def parse_report(text):
    """Parse and schema-check the model output.

    Returns ``(report, json_text)``; raises AnalysisError on any mismatch.
    """
    json_text = _extract_json(text)
    try:
        report = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.warning(f"⚠️ Model returned invalid JSON: {e}")
        raise AnalysisError()

    if not isinstance(report, dict):
        raise AnalysisError()

    problems = []
    for key in SCORE_FIELDS:
        value = report.get(key)
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            problems.append(f"{key} is not a number")
        elif not 1 <= value <= 10:
            problems.append(f"{key} out of range")
    for key in TEXT_FIELDS:
        if not isinstance(report.get(key), str):
            problems.append(f"{key} is not a string")
    if report.get("verdict") not in VERDICTS:
        problems.append("verdict not recognised")
    angles = report.get("unique_positioning_angles")
    if not isinstance(angles, list) or not all(isinstance(a, str) for a in angles):
        problems.append("unique_positioning_angles is not a list of strings")

    if problems:
        logger.warning(f"⚠️ Model output failed schema check: {'; '.join(problems)}")
        raise AnalysisError()

    return report, json_text


class GeminiAnalyzer:
    """Scores an idea with a single Gemini call. No retries, no fallback report."""

    def __init__(self, api_key, model="gemini-2.5-flash", timeout_ms=None, client=None):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            http_options = types.HttpOptions(timeout=timeout_ms) if timeout_ms else None
            self.client = genai.Client(api_key=api_key, http_options=http_options)

    def analyze(self, fields):
        if self.client is None:
            logger.error("❌ GEMINI_API_KEY not configured")
            raise AnalysisError()

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=make_prompt(fields),
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_PROMPT,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            logger.error(f"❌ Gemini call failed ({self.model}): {e}")
            raise AnalysisError()

        text = getattr(response, "text", None)
        if not text:
            logger.error(f"❌ Gemini returned an empty response ({self.model})")
            raise AnalysisError()

        report, json_text = parse_report(text)
        logger.info(f"✅ Model succeeded: {self.model} verdict={report['verdict']}")
        return report, json_text
