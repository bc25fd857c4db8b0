"""Turns a raw LLM reply into exam records.

Model output is not contractual: providers wrap the generated text in
different envelopes, models fence JSON in markdown, and trailing commas
appear. Each step below is a fallback for the one before it, and every
fallback tier logs under its own message so prompt or model drift shows up
in the worker logs.
"""

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from app.logging.logger import Log
from app.normalization.exceptions import (
    ResponseJsonDecodeError,
    ResponseStructureError,
    UnexpectedResponseShapeError,
)
from app.normalization.models import NormalizedExamRecord, ResponseShape
from app.normalization.validator import build_exam_record

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\[{].*?[\]}])\s*```", re.DOTALL)
_BRACE_SPAN = re.compile(r"\{.*\}", re.DOTALL)


class CandidateSource(StrEnum):
    GEMINI_ENVELOPE = "gemini_envelope"
    CHAT_ENVELOPE = "chat_envelope"
    FENCED_BLOCK = "fenced_block"
    BRACE_SPAN = "brace_span"


@dataclass(frozen=True)
class Candidate:
    """Text that probably holds the domain JSON, and where it was found."""

    text: str
    source: CandidateSource


@dataclass(frozen=True)
class ExamList:
    """A JSON array of exam objects."""

    exams: list[dict[str, Any]]


@dataclass(frozen=True)
class NestedTextExamList:
    """A JSON array whose first element wraps the exam array as a string."""

    exams: list[dict[str, Any]]


@dataclass(frozen=True)
class SingleExam:
    """One JSON exam object."""

    exam: dict[str, Any]


DecodedShape = ExamList | NestedTextExamList | SingleExam


class ResponseNormalizer:
    """Extracts, decodes and validates the exam records in an LLM reply."""

    def normalize(
        self,
        raw_body: str,
        original_name: str,
        shape: ResponseShape = ResponseShape.EXAM_LIST,
    ) -> list[NormalizedExamRecord]:
        """Run every normalization step on a raw response body.

        Raises:
            ResponseStructureError: if no JSON candidate is found.
            ResponseJsonDecodeError: if the candidate is not valid JSON.
            UnexpectedResponseShapeError: if the JSON is not exam-shaped.
        """
        candidate = locate_candidate(raw_body, original_name)
        sanitized = sanitize_json_text(candidate.text)
        try:
            parsed = json.loads(sanitized)
        except json.JSONDecodeError as exc:
            Log.error(f"JSON decode error: {exc} | Raw JSON: {sanitized}")
            raise ResponseJsonDecodeError(
                f"Failed to decode model JSON: {exc}", raw_text=sanitized
            ) from exc

        decoded = decode_shape(parsed, shape)
        Log.debug(f"Decoded {type(decoded).__name__} from {candidate.source} for {original_name}")
        raw_exams = [decoded.exam] if isinstance(decoded, SingleExam) else decoded.exams
        records = [build_exam_record(raw, original_name) for raw in raw_exams]
        Log.info(
            f"Normalized {len(records)} exam(s) with "
            f"{sum(len(r.questions) for r in records)} question(s) for {original_name}"
        )
        return records


def locate_candidate(raw_body: str, original_name: str = "") -> Candidate:
    """Find the text holding the domain JSON, most precise location first.

    Raises:
        ResponseStructureError: if no tier yields any text.
    """
    envelope = _load_envelope(raw_body)
    if envelope is not None:
        text = _gemini_text(envelope)
        if text:
            return Candidate(strip_code_fences(text), CandidateSource.GEMINI_ENVELOPE)
        text = _chat_text(envelope)
        if text:
            Log.info(f"Model text for {original_name} found in chat completion envelope")
            return Candidate(strip_code_fences(text), CandidateSource.CHAT_ENVELOPE)

    Log.warning(
        f"Primary extraction failed for {original_name}. Attempting fallback extraction."
    )
    match = _FENCED_BLOCK.search(raw_body)
    if match:
        Log.info("Fallback JSON extracted from markdown block.")
        return Candidate(match.group(1), CandidateSource.FENCED_BLOCK)
    match = _BRACE_SPAN.search(raw_body)
    if match:
        Log.info("Fallback JSON extracted from raw body.")
        return Candidate(match.group(0), CandidateSource.BRACE_SPAN)

    Log.error(f"Could not extract JSON from model response for {original_name}")
    raise ResponseStructureError("AI response structure invalid")


def sanitize_json_text(text: str) -> str:
    """Trim whitespace and drop one trailing comma."""
    cleaned = text.strip()
    if cleaned.endswith(","):
        cleaned = cleaned[:-1].rstrip()
    return cleaned


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned


def decode_shape(parsed: Any, shape: ResponseShape = ResponseShape.EXAM_LIST) -> DecodedShape:
    """Classify decoded JSON as one of the known exam shapes, in priority order.

    Raises:
        UnexpectedResponseShapeError: if no shape matches.
    """
    if _is_exam_list(parsed):
        return ExamList(exams=parsed)
    if isinstance(parsed, list) and parsed and _has_key(parsed[0], "text"):
        return NestedTextExamList(exams=_decode_nested_text(parsed[0]["text"]))
    if isinstance(parsed, dict) and ("examName" in parsed or shape is ResponseShape.SINGLE):
        return SingleExam(exam=parsed)
    Log.error(f"Unexpected structure in AI response: {json.dumps(parsed)[:500]}")
    raise UnexpectedResponseShapeError("Unexpected AI response structure")


def _decode_nested_text(text: Any) -> list[dict[str, Any]]:
    if not isinstance(text, str) or not text.strip():
        raise UnexpectedResponseShapeError("Failed to find exam data array")
    try:
        nested = json.loads(sanitize_json_text(strip_code_fences(text)))
    except json.JSONDecodeError as exc:
        raise UnexpectedResponseShapeError(
            f"Failed to decode exam data array from text: {exc}"
        ) from exc
    if not _is_exam_list(nested):
        raise UnexpectedResponseShapeError("Failed to decode exam data array from text")
    return nested  # type: ignore[no-any-return]


def _is_exam_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and _has_key(value[0], "examName")
        and all(isinstance(item, dict) for item in value)
    )


def _has_key(value: Any, key: str) -> bool:
    return isinstance(value, dict) and key in value


def _load_envelope(raw_body: str) -> dict[str, Any] | None:
    try:
        envelope = json.loads(raw_body)
    except json.JSONDecodeError:
        return None
    return envelope if isinstance(envelope, dict) else None


def _gemini_text(envelope: dict[str, Any]) -> str | None:
    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text.strip() else None


def _chat_text(envelope: dict[str, Any]) -> str | None:
    try:
        text = envelope["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text.strip() else None
