import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.constants import ESSAY_FEEDBACK_MAX_ITEMS
from app.schemas.grading import EssayReviewResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an experienced TOPIK writing examiner. Grade the candidate's essay "
    "against the task it answers. Judge task completion, organisation, vocabulary "
    "and grammar, and the appropriateness of the register. "
    "Respond with a single JSON object and nothing else, using exactly these keys: "
    '"score" (integer 0-100), "strengths" (array of strings), "weaknesses" '
    '(array of strings), "suggestions" (array of strings), "detailed_feedback" (string). '
    f"Give at most {ESSAY_FEEDBACK_MAX_ITEMS} items in each array. Write feedback in English."
)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


class GradingOracleError(Exception):
    """The grading service could not produce a usable grade."""


def extract_json_object(content: str) -> Dict[str, Any]:
    """Pull the JSON object out of a model reply: bare, fenced in a code block, or embedded in prose."""
    text = (content or "").strip()
    candidates = [text]

    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise GradingOracleError("Grading response did not contain a JSON object")


def _clamp_score(value: Any) -> int:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(score) or math.isinf(score):
        return 0
    return max(0, min(100, math.floor(score)))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [str(item).strip() for item in value if item is not None and str(item).strip()]
    return items[:ESSAY_FEEDBACK_MAX_ITEMS]


def to_review_result(parsed: Dict[str, Any]) -> EssayReviewResult:
    feedback = parsed.get("detailed_feedback", parsed.get("detailedFeedback", parsed.get("feedback", "")))
    return EssayReviewResult(
        score=_clamp_score(parsed.get("score")),
        strengths=_string_list(parsed.get("strengths")),
        weaknesses=_string_list(parsed.get("weaknesses")),
        suggestions=_string_list(parsed.get("suggestions")),
        detailed_feedback="" if feedback is None else str(feedback),
    )


class OpenRouterGradingOracle:
    """Grades essays through an OpenRouter chat-completions model."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 model: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.base_url = base_url or settings.OPENROUTER_BASE_URL
        self.model = model or settings.OPENROUTER_MODEL_WRITING or settings.OPENROUTER_MODEL
        self.timeout = timeout or settings.GRADING_TIMEOUT_SECONDS
        self.transport = transport

    def _build_messages(self, prompt: str, answer_text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Writing task:\n{prompt}\n\nCandidate essay:\n{answer_text}",
            },
        ]

    async def grade(self, prompt: str, answer_text: str) -> EssayReviewResult:
        if not self.api_key:
            raise GradingOracleError("OPENROUTER_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": settings.APP_URL,
            "X-Title": settings.PROJECT_NAME,
        }
        body = {
            "model": self.model,
            "messages": self._build_messages(prompt, answer_text),
            "temperature": 0.2,
            "response_format": {"type": "json_object"},
        }

        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post("/chat/completions", json=body, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise GradingOracleError(
                    f"Grading service returned {e.response.status_code}: {e.response.text[:200]}"
                ) from e
            except httpx.RequestError as e:
                raise GradingOracleError(f"Grading service request failed: {e}") from e

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GradingOracleError("Grading service returned an unexpected payload") from e

        result = to_review_result(extract_json_object(content))
        logger.debug(f"Essay graded by {self.model}: score {result.score}")
        return result
