import json
from typing import Any

import pytest

from app.normalization.exceptions import (
    ResponseJsonDecodeError,
    ResponseStructureError,
    UnexpectedResponseShapeError,
)
from app.normalization.models import ResponseShape
from app.normalization.response_normalizer import (
    CandidateSource,
    ExamList,
    NestedTextExamList,
    ResponseNormalizer,
    SingleExam,
    decode_shape,
    locate_candidate,
    sanitize_json_text,
    strip_code_fences,
)
from tests.conftest import chat_envelope, gemini_envelope


class TestLocateCandidate:
    def test_gemini_envelope(self) -> None:
        candidate = locate_candidate(gemini_envelope('[{"examName": "E"}]'))
        assert candidate.source is CandidateSource.GEMINI_ENVELOPE
        assert candidate.text == '[{"examName": "E"}]'

    def test_gemini_text_with_fences(self) -> None:
        candidate = locate_candidate(gemini_envelope('```json\n[{"examName": "E"}]\n```'))
        assert candidate.text == '[{"examName": "E"}]'

    def test_chat_envelope(self) -> None:
        candidate = locate_candidate(chat_envelope('{"examName": "E"}'))
        assert candidate.source is CandidateSource.CHAT_ENVELOPE

    def test_fenced_block_fallback(self) -> None:
        body = 'Sure! Here it is:\n```json\n[{"examName": "E"}]\n```\nAnything else?'
        candidate = locate_candidate(body)
        assert candidate.source is CandidateSource.FENCED_BLOCK
        assert candidate.text == '[{"examName": "E"}]'

    def test_brace_span_fallback(self) -> None:
        candidate = locate_candidate('prefix {"examName": "E"} suffix')
        assert candidate.source is CandidateSource.BRACE_SPAN
        assert candidate.text == '{"examName": "E"}'

    def test_nothing_found_raises(self) -> None:
        with pytest.raises(ResponseStructureError, match="AI response structure invalid"):
            locate_candidate("the model refused")

    def test_envelope_without_text_falls_back(self) -> None:
        body = json.dumps({"candidates": []})
        candidate = locate_candidate(body)
        assert candidate.source is CandidateSource.BRACE_SPAN


class TestSanitize:
    def test_strips_trailing_comma(self) -> None:
        assert sanitize_json_text(' {"a": 1}, \n') == '{"a": 1}'

    def test_leaves_clean_text(self) -> None:
        assert sanitize_json_text('[1, 2]') == '[1, 2]'

    def test_strip_code_fences_plain_text(self) -> None:
        assert strip_code_fences("  [1]  ") == "[1]"


class TestDecodeShape:
    def test_exam_list(self) -> None:
        assert decode_shape([{"examName": "E"}]) == ExamList(exams=[{"examName": "E"}])

    def test_nested_text(self) -> None:
        parsed = [{"text": '[{"examName": "E"}]'}]
        assert decode_shape(parsed) == NestedTextExamList(exams=[{"examName": "E"}])

    def test_nested_text_that_is_not_exams_raises(self) -> None:
        with pytest.raises(UnexpectedResponseShapeError):
            decode_shape([{"text": "hello"}])

    def test_single_exam_by_name(self) -> None:
        assert decode_shape({"examName": "E"}) == SingleExam(exam={"examName": "E"})

    def test_single_shape_accepts_unnamed_object(self) -> None:
        assert decode_shape({"questions": []}, ResponseShape.SINGLE) == SingleExam(
            exam={"questions": []}
        )

    @pytest.mark.parametrize("parsed", [[], [1, 2], {"foo": "bar"}, "text", 3])
    def test_unexpected_shape_raises(self, parsed: Any) -> None:
        with pytest.raises(UnexpectedResponseShapeError):
            decode_shape(parsed)


class TestResponseNormalizer:
    def test_primary_path(self, exam_payload: list[dict[str, Any]]) -> None:
        body = gemini_envelope(json.dumps(exam_payload))
        records = ResponseNormalizer().normalize(body, "math.pdf")
        assert len(records) == 1
        record = records[0]
        assert record.exam_name == "Grade 6 Mathematics End Term"
        assert record.term == 2
        assert [(q.question_number, q.question_sub_part) for q in record.questions] == [
            (1, "a"),
            (1, "b"),
            (2, None),
        ]

    def test_fenced_fallback_matches_primary(self, exam_payload: list[dict[str, Any]]) -> None:
        normalizer = ResponseNormalizer()
        primary = normalizer.normalize(gemini_envelope(json.dumps(exam_payload)), "math.pdf")
        fenced = "Here you go\n```json\n" + json.dumps(exam_payload) + "\n```"
        assert normalizer.normalize(fenced, "math.pdf") == primary

    def test_chat_envelope(self, exam_payload: list[dict[str, Any]]) -> None:
        records = ResponseNormalizer().normalize(
            chat_envelope(json.dumps(exam_payload)), "math.pdf"
        )
        assert records[0].subject == "Mathematics"

    def test_trailing_comma_is_tolerated(self) -> None:
        body = gemini_envelope('{"examName": "E", "questions": []},')
        records = ResponseNormalizer().normalize(body, "a.pdf")
        assert records[0].exam_name == "E"

    def test_invalid_json_raises_with_raw_text(self) -> None:
        body = gemini_envelope('[{"examName": "E",]')
        with pytest.raises(ResponseJsonDecodeError) as exc_info:
            ResponseNormalizer().normalize(body, "a.pdf")
        assert exc_info.value.raw_text == '[{"examName": "E",]'

    def test_multiple_exams(self) -> None:
        body = gemini_envelope(json.dumps([{"examName": "Maths"}, {"examName": "English"}]))
        records = ResponseNormalizer().normalize(body, "a.pdf")
        assert [r.exam_name for r in records] == ["Maths", "English"]

    def test_single_shape_without_name_uses_file_name(self) -> None:
        body = gemini_envelope(json.dumps({"generatedAnswers": "1. 5", "questions": []}))
        records = ResponseNormalizer().normalize(body, "key.pdf", ResponseShape.SINGLE)
        assert records[0].exam_name == "key.pdf"
        assert records[0].generated_answers == "1. 5"

    def test_unexpected_shape_raises(self) -> None:
        with pytest.raises(UnexpectedResponseShapeError):
            ResponseNormalizer().normalize(gemini_envelope('{"foo": 1}'), "a.pdf")

    def test_errors_are_not_retryable(self) -> None:
        with pytest.raises(ResponseStructureError) as exc_info:
            ResponseNormalizer().normalize("nothing here", "a.pdf")
        assert exc_info.value.retryable is False
