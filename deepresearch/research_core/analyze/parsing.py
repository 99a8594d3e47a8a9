"""Lenient extraction plus strict validation of reasoning output."""
from __future__ import annotations

import json
import re
from collections import Counter
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError, field_validator

from deepresearch.research_core.errors import ParseError

STOPWORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "with", "by", "about", "as", "also", "been", "from", "have", "into",
        "more", "most", "much", "only", "other", "over", "some", "such",
        "than", "that", "their", "them", "then", "there", "these", "they",
        "this", "those", "very", "were", "what", "when", "where", "which",
        "while", "will", "would", "your", "could", "should", "does", "each",
        "just", "like", "many", "make", "well", "here", "being", "after",
        "before", "because", "between",
    }
)

_WORD_RE = re.compile(r"\b\w{4,}\b")


class AnalysisPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: StrictStr
    themes: list[StrictStr] = Field(default_factory=list)
    gaps: list[StrictStr] = Field(default_factory=list)
    next_steps: list[StrictStr] = Field(default_factory=list, alias="nextSteps")
    should_continue: StrictBool = Field(default=False, alias="shouldContinue")
    next_search_topic: Optional[StrictStr] = Field(default=None, alias="nextSearchTopic")
    url_to_search: Optional[StrictStr] = Field(default=None, alias="urlToSearch")

    @field_validator("themes", "gaps", "next_steps", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("next_search_topic", "url_to_search")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = " ".join(value.split())
        return value or None


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Return the first balanced ``{...}`` block in *raw_text* that parses as an object."""
    start = raw_text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(raw_text)):
            ch = raw_text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(raw_text[start : idx + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
        start = raw_text.find("{", start + 1)
    raise ParseError("no JSON object found in reasoning output", raw_text)


def parse_analysis(raw_text: str) -> AnalysisPayload:
    payload = extract_json_object(raw_text)
    body = payload.get("analysis", payload)
    if not isinstance(body, dict):
        raise ParseError("'analysis' is not an object", raw_text)
    try:
        return AnalysisPayload.model_validate(body)
    except ValidationError as exc:
        raise ParseError(f"analysis failed validation: {exc.error_count()} error(s)", raw_text) from exc


def extract_keywords(text: str, limit: int = 5) -> list[str]:
    """Most frequent non-stopword words of four or more characters."""
    words = _WORD_RE.findall(text.lower())
    counts = Counter(word for word in words if word not in STOPWORDS)
    return [word for word, _ in counts.most_common(limit)]
