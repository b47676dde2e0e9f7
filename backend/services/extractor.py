# backend/services/extractor.py
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError, field_validator

from ai import groq_client
from core.config import settings
from core.exceptions import ExtractionError
from db.models import SHORT_TEXT_LEN, QuestionType

log = logging.getLogger(__name__)


class ExtractedQuestion(BaseModel):
    question: str
    type: QuestionType = QuestionType.other

    @field_validator("question", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> QuestionType:
        raw = str(v or "").strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return QuestionType(raw)
        except ValueError:
            return QuestionType.other


class ExtractedData(BaseModel):
    title: str = ""
    company: str = ""
    position: str = ""
    location: str = ""
    no_of_round: int = 0
    questions: List[ExtractedQuestion] = Field(default_factory=list)

    @field_validator("title", "company", "position", "location", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("company", "position", "location")
    @classmethod
    def _fit_column(cls, v: str) -> str:
        # model output is free-form; the columns are not
        return v[:SHORT_TEXT_LEN].strip()

    @field_validator("no_of_round", mode="before")
    @classmethod
    def _coerce_rounds(cls, v: Any) -> int:
        try:
            return max(int(v or 0), 0)
        except (TypeError, ValueError):
            return 0

    @field_validator("questions", mode="before")
    @classmethod
    def _drop_junk(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [q for q in v if isinstance(q, dict) and str(q.get("question") or "").strip()]


class Extractor(Protocol):
    def extract(self, content: str) -> ExtractedData: ...

    def extract_questions(self, content: str) -> List[ExtractedQuestion]: ...


EXTRACT_SYSTEM_PROMPT = """
You are an Interview Experience Extraction Engine.

Read raw interview text and convert it into a STRICTLY FORMATTED JSON object.

Rules:
1. Output only valid JSON. No explanation, no markdown, no backticks.
2. If a field is not present or cannot be inferred with high confidence use "" for strings and 0 for numbers.
3. Never invent company names, locations or questions.
4. If the text mentions several companies, pick the main one (usually the first).

Question rules:
- Include every sentence that represents a question asked in an interview round; [] if none.
- "dsa" for algorithms, data structures, LeetCode-style problems.
- "system_design" for design / architecture topics.
- "behavioral" for HR, leadership, soft skills.
- "other" for anything else.

Schema:
{
  "title": "string",
  "company": "string",
  "position": "string",
  "location": "string",
  "no_of_round": 0,
  "questions": [{"question": "string", "type": "dsa | system_design | behavioral | other"}]
}
"""

QUESTIONS_SYSTEM_PROMPT = """
You are a precise question extractor. Read the interview experience and output ONLY a JSON
object of the form {"questions": [{"question": "string", "type": "dsa|system_design|behavioral|other"}]}.

- Include only actual interview questions, never invent or paraphrase.
- If no questions are found return {"questions": []}.
- Output must be valid JSON. No prefix, suffix or backticks.
"""


def truncate_content(content: str, limit: Optional[int] = None) -> str:
    """Cut content to the configured size. Anything past the limit never reaches the model."""
    limit = limit or settings.extraction_max_chars
    content = content or ""
    if len(content) <= limit:
        return content
    log.info("truncating extraction input", extra={"chars": len(content), "limit": limit})
    return content[:limit]


def parse_json_reply(raw: str) -> Any:
    """
    Parse a model reply that should be JSON. Tolerates code fences and leading
    chatter by falling back to the first {...} / [...] blob.
    """
    text = (raw or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```[a-zA-Z]*\s*|\s*```$", "", text).strip()
    try:
        return json.loads(text)
    except ValueError:
        m = re.search(r"(\{.*\}|\[.*\])", text, flags=re.S)
        if not m:
            raise ExtractionError("failed to parse ai response: no JSON found", {"raw": raw[:500]})
        try:
            return json.loads(m.group(1))
        except ValueError as e:
            raise ExtractionError(f"failed to parse ai response: {e}", {"raw": raw[:500]}) from e


class GroqExtractor:
    def __init__(self, model: Optional[str] = None, max_chars: Optional[int] = None):
        self.model = model
        self.max_chars = max_chars

    def _chat(self, system: str, user: str) -> Any:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        try:
            reply = groq_client.chat(messages, model=self.model)
        except groq_client.GroqError as e:
            raise ExtractionError(str(e)) from e
        return parse_json_reply(reply)

    def extract(self, content: str) -> ExtractedData:
        body = truncate_content(content, self.max_chars)
        user = (
            "Read the following raw interview text and extract the structured data exactly "
            "as per the schema described.\n\nTEXT START:\n" + body + "\nTEXT END"
        )
        parsed = self._chat(EXTRACT_SYSTEM_PROMPT, user)
        if not isinstance(parsed, dict):
            raise ExtractionError("failed to parse ai response: expected a JSON object")
        try:
            return ExtractedData.model_validate(parsed)
        except ValidationError as e:
            raise ExtractionError(f"ai response did not match schema: {e}") from e

    def extract_questions(self, content: str) -> List[ExtractedQuestion]:
        body = truncate_content(content, self.max_chars)
        parsed = self._chat(QUESTIONS_SYSTEM_PROMPT, "Interview experience:\n" + body)
        # some models ignore the wrapper object and answer with a bare array
        items = parsed.get("questions") if isinstance(parsed, dict) else parsed
        if not isinstance(items, list):
            raise ExtractionError("failed to parse ai response: expected a list of questions")
        return ExtractedData.model_validate({"questions": items}).questions


def get_extractor() -> Extractor:
    return GroqExtractor()
