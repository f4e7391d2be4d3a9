from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

import pytest

from quizgen.errors import StructuringError, SynthesisError
from quizgen.models import TestStructure
from quizgen.settings import settings


SAMPLE_EXAM: Dict[str, Any] = {
    "title": "Grade 6 English Test",
    "sections": [
        {
            "id": "s1",
            "title": "PART A. LISTENING",
            "instructions": "Listen and choose the correct answer.",
            "isListening": True,
            "transcriptPrompt": "A conversation between Mai and her friend about her house",
            "questions": [
                {
                    "id": "q1",
                    "number": 1,
                    "text": "Where does Mai live?",
                    "type": "MULTIPLE_CHOICE",
                    "options": [
                        {"id": "A", "text": "In a flat"},
                        {"id": "B", "text": "In a country house"},
                    ],
                    "correctAnswer": "B. In a country house",
                    "explanation": "Mai says she lives in the countryside.",
                },
                {
                    "id": "q2",
                    "number": 2,
                    "text": "Mai has a garden.",
                    "type": "TRUE_FALSE",
                    "options": [{"id": "T", "text": "True"}, {"id": "F", "text": "False"}],
                    "correctAnswer": "T",
                },
            ],
        },
        {
            "id": "s2",
            "title": "PART B. WRITING",
            "instructions": "Complete or rewrite the sentences.",
            "isListening": False,
            "questions": [
                {
                    "id": "q3",
                    "number": 3,
                    "text": "She ____ (be) tall.",
                    "type": "FILL_IN_THE_BLANK",
                    "correctAnswer": "is",
                },
                {
                    "id": "q4",
                    "number": 4,
                    "text": "Rewrite: Her height is great.",
                    "type": "REWRITE_SENTENCE",
                    "correctAnswer": "She is tall.",
                },
            ],
        },
    ],
}


@pytest.fixture
def exam_payload() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_EXAM)


@pytest.fixture
def exam(exam_payload) -> TestStructure:
    return TestStructure.model_validate(exam_payload)


@pytest.fixture(autouse=True)
def _no_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    # A developer's .env must not switch on the OpenRouter fallback in tests
    monkeypatch.setattr(settings, "openrouter_api_key", None)


class StubStructuringService:
    """Deterministic stand-in for the structuring collaborator."""

    def __init__(self, result: Optional[Dict[str, Any]] = None, *, fail: bool = False) -> None:
        self.result = result if result is not None else copy.deepcopy(SAMPLE_EXAM)
        self.fail = fail
        self.calls: List[str] = []

    async def parse(self, raw_text: str) -> TestStructure:
        self.calls.append(raw_text)
        if self.fail:
            raise StructuringError()
        return TestStructure.model_validate(self.result)


class StubSpeechService:
    """Returns fixed PCM bytes, or fails for scripts listed in ``fail_for``."""

    def __init__(self, pcm: bytes = b"\x01\x00\x02\x00", *, fail_for: tuple = ()) -> None:
        self.pcm = pcm
        self.fail_for = fail_for
        self.calls: List[str] = []

    async def synthesize(self, script_or_prompt: str) -> bytes:
        self.calls.append(script_or_prompt)
        if script_or_prompt in self.fail_for:
            raise SynthesisError()
        return self.pcm


@pytest.fixture
def structuring_stub() -> StubStructuringService:
    return StubStructuringService()


@pytest.fixture
def speech_stub() -> StubSpeechService:
    return StubSpeechService()
