"""
Remote collaborators: exam structuring and speech synthesis.

Both are narrow async interfaces so the session and HTTP layers can run against
deterministic stand-ins. The Gemini-backed implementations open one client per
call and always close it, the same way the routers use ``GeminiClient``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import ValidationError

from .errors import GeminiError, MissingInputError, StructuringError, SynthesisError
from .gemini_client import GeminiClient
from .models import QuestionType, TestStructure
from .settings import settings

logger = logging.getLogger(__name__)


class StructuringService(Protocol):
    """Raw exam text to a TestStructure; raises ParseError (a StructuringError) on failure."""

    async def parse(self, raw_text: str) -> TestStructure: ...


class SpeechService(Protocol):
    async def synthesize(self, script_or_prompt: str) -> bytes: ...


# ============================================================================
# PROMPTS AND SCHEMA
# ============================================================================

PARSER_INSTRUCTION = """
You are an expert educational content parser for Grade 6 English exams in Vietnam.
Your task is to take raw exam text (often copied from PDF/Word) and convert it into a structured JSON format.

Structure the output to identify:
1. The Test Title
2. Sections (PART A, PART B, etc.)
3. Questions within sections.

Specific Rules:
- Detect 'Multiple Choice' questions (A, B, C, D).
- Detect 'True/False' questions.
- Detect 'Fill in the blank' or 'Find mistake' questions. For these, the 'type' should be FILL_IN_THE_BLANK.
- Detect 'Rewrite sentence' questions.
- For Listening parts, if no script is provided in the text, generate a 'transcriptPrompt' field describing what the audio should be about based on the questions (e.g., "A conversation between Mai and her friend about her house").
- Clean up formatting artifacts (like underscores '___' or line numbers).
- Ensure 'correctAnswer' is populated. If the answer key is NOT in the text, you must infer the most likely correct answer based on Grade 6 English knowledge.
""".strip()

TEST_STRUCTURE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "sections": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "title": {"type": "STRING"},
                    "instructions": {"type": "STRING"},
                    "isListening": {"type": "BOOLEAN"},
                    "transcriptPrompt": {"type": "STRING", "nullable": True},
                    "questions": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {
                                "id": {"type": "STRING"},
                                "number": {"type": "INTEGER"},
                                "text": {"type": "STRING"},
                                "type": {"type": "STRING", "enum": [t.value for t in QuestionType]},
                                "options": {
                                    "type": "ARRAY",
                                    "nullable": True,
                                    "items": {
                                        "type": "OBJECT",
                                        "properties": {
                                            "id": {"type": "STRING"},
                                            "text": {"type": "STRING"},
                                        },
                                    },
                                },
                                "correctAnswer": {"type": "STRING"},
                                "explanation": {"type": "STRING"},
                            },
                            "required": ["id", "number", "text", "type", "correctAnswer"],
                        },
                    },
                },
                "required": ["id", "title", "instructions", "isListening", "questions"],
            },
        },
    },
    "required": ["title", "sections"],
}


def build_script_prompt(topic: str) -> str:
    return (
        "Write a short English listening transcript (approx 100-150 words) suitable for Grade 6 "
        f'based on this description: "{topic}". Format it as a natural conversation or monologue.'
    )


def is_topic_prompt(text: str, max_chars: Optional[int] = None) -> bool:
    """True when ``text`` reads like a topic description rather than a script.

    Short inputs without a colon (no "Speaker: line" turns) get expanded into a
    script before synthesis.
    """
    limit = settings.topic_prompt_max_chars if max_chars is None else max_chars
    return len(text) < limit and ":" not in text


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Extract a JSON object from LLM response text.

    Accepts raw JSON, JSON inside a ```json fenced block, or the first
    ``{...}`` span embedded in other text.

    Raises:
        ValueError: If no JSON object can be extracted
    """
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except ValueError:
        pass

    code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if code_block:
        try:
            data = json.loads(code_block.group(1))
            if isinstance(data, dict):
                return data
        except ValueError:
            pass

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        try:
            data = json.loads(text[first : last + 1])
            if isinstance(data, dict):
                return data
        except ValueError:
            pass

    raise ValueError("LLM did not return a JSON object")


# ============================================================================
# GEMINI IMPLEMENTATIONS
# ============================================================================

ClientFactory = Callable[[], GeminiClient]


class GeminiStructuringService:
    def __init__(self, client_factory: ClientFactory = GeminiClient) -> None:
        self._client_factory = client_factory

    async def parse(self, raw_text: str) -> TestStructure:
        if not raw_text or not raw_text.strip():
            raise MissingInputError()
        try:
            client = self._client_factory()
        except ValueError as err:
            logger.error("Structuring unavailable: %s", err)
            raise StructuringError() from err
        try:
            raw = await client.generate(
                raw_text,
                system_instruction=PARSER_INSTRUCTION,
                response_schema=TEST_STRUCTURE_SCHEMA,
            )
        except GeminiError as err:
            logger.warning("Structuring call failed: %s", err)
            raise StructuringError() from err
        finally:
            await client.aclose()

        if not raw or not raw.strip():
            raise StructuringError("Failed to parse content")
        try:
            # strict: no coercing "yes" to a bool or "1" to an int
            test = TestStructure.model_validate_json(json.dumps(extract_json_object(raw)), strict=True)
        except (ValueError, ValidationError) as err:
            logger.warning("Structuring response did not validate: %s", err)
            raise StructuringError() from err
        logger.info("Structured exam %r: %d sections", test.title, len(test.sections))
        return test


class GeminiSpeechService:
    def __init__(self, client_factory: ClientFactory = GeminiClient) -> None:
        self._client_factory = client_factory

    async def synthesize(self, script_or_prompt: str) -> bytes:
        if not script_or_prompt or not script_or_prompt.strip():
            raise SynthesisError("Nothing to read for this section")
        try:
            client = self._client_factory()
        except ValueError as err:
            logger.error("Speech synthesis unavailable: %s", err)
            raise SynthesisError() from err
        try:
            script = script_or_prompt
            if is_topic_prompt(script_or_prompt):
                expanded = await client.generate(build_script_prompt(script_or_prompt))
                if expanded and expanded.strip():
                    script = expanded
            pcm = await client.synthesize_speech(script)
        except GeminiError as err:
            logger.warning("Speech synthesis failed: %s", err)
            raise SynthesisError() from err
        finally:
            await client.aclose()
        if not pcm:
            raise SynthesisError("No audio data returned")
        return pcm
