"""Example LLM client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseLlmClient and register the provider in LlmGatewayFactory.
"""

import json
from typing import ClassVar

from app.llm.client_base import BaseLlmClient


class ExampleClientAdapter(BaseLlmClient):
    """Example adapter that answers every prompt with a fixed Gemini envelope.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_EXAMS: ClassVar[list[dict[str, object]]] = [
        {
            "examName": "Example Exam",
            "examiner": None,
            "subject": None,
            "class": None,
            "term": None,
            "year": None,
            "curriculum": "844",
            "type": None,
            "questions": [],
        }
    ]

    def complete(self, prompt: str, *, expect_json: bool = True) -> str:
        _ = prompt, expect_json
        return json.dumps(
            {
                "candidates": [
                    {"content": {"parts": [{"text": json.dumps(self.DEFAULT_EXAMS)}]}}
                ]
            }
        )
