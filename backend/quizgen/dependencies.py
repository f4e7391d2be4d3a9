from __future__ import annotations

from .services import GeminiSpeechService, GeminiStructuringService, SpeechService, StructuringService
from .session import SessionStore

_store = SessionStore()
_structuring = GeminiStructuringService()
_speech = GeminiSpeechService()


def get_store() -> SessionStore:
	return _store


def get_structuring_service() -> StructuringService:
	return _structuring


def get_speech_service() -> SpeechService:
	return _speech
