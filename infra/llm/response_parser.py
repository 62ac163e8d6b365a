"""Turn free-form model output into a score plus feedback.

Models are told to answer with a single JSON object but regularly wrap it in
prose or break the JSON. Parsing therefore runs in two stages:

1. strict: decode the span between the first ``{`` and the last ``}`` and
   validate it against the expected fields;
2. best effort: pull the number after the score key and the first quoted
   string after the ``feedback`` key with regular expressions.

If neither stage recovers both fields a ``ParseFailedError`` carrying the raw
text is raised.
"""
import json
import logging
import math
import re
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

from domain.errors import ParseFailedError
from domain.schemas import ScoredFeedback

logger = logging.getLogger(__name__)

CV_SCORE_FIELD = "match_rate"
PROJECT_SCORE_FIELD = "score"

_FEEDBACK_RE = re.compile(r'"?feedback"?\s*:?\s*"([^"]+)"')


class _FeedbackPayload(BaseModel):
    feedback: str

    @field_validator("feedback", mode="before")
    @classmethod
    def _join_list(cls, value):
        if isinstance(value, list):
            return "\n".join(f"- {item}" for item in value if item is not None)
        return value


def _json_span(raw_text: str) -> Optional[str]:
    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start < 0 or end <= start:
        return None
    return raw_text[start:end + 1]


def _parse_strict(raw_text: str, score_field: str) -> Optional[ScoredFeedback]:
    span = _json_span(raw_text)
    if span is None:
        return None
    try:
        data = json.loads(span)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or score_field not in data:
        return None
    try:
        feedback = _FeedbackPayload.model_validate(data).feedback
        parsed = ScoredFeedback(score=data[score_field], feedback=feedback)
    except ValidationError:
        return None
    # json.loads accepts NaN and Infinity
    if not math.isfinite(parsed.score):
        raise ParseFailedError(f"non-finite {score_field} value {data[score_field]!r}", raw_text)
    return parsed


def _parse_fallback(raw_text: str, score_field: str) -> Optional[ScoredFeedback]:
    score_re = re.compile(rf'"?{re.escape(score_field)}"?\s*:?\s*([0-9.]+)')
    score_match = score_re.search(raw_text)
    feedback_match = _FEEDBACK_RE.search(raw_text)
    if not (score_match and feedback_match):
        return None
    try:
        score = float(score_match.group(1))
    except ValueError as exc:
        raise ParseFailedError(f"invalid {score_field} value {score_match.group(1)!r}", raw_text) from exc
    return ScoredFeedback(score=score, feedback=feedback_match.group(1))


def parse_scored_response(raw_text: str, score_field: str) -> ScoredFeedback:
    parsed = _parse_strict(raw_text, score_field)
    if parsed is not None:
        return parsed
    parsed = _parse_fallback(raw_text, score_field)
    if parsed is not None:
        logger.warning("Model output was not valid JSON; recovered %s via pattern match", score_field)
        return parsed
    raise ParseFailedError(f"could not parse {score_field} response", raw_text)


def parse_cv_response(raw_text: str) -> ScoredFeedback:
    return parse_scored_response(raw_text, CV_SCORE_FIELD)


def parse_project_response(raw_text: str) -> ScoredFeedback:
    return parse_scored_response(raw_text, PROJECT_SCORE_FIELD)
