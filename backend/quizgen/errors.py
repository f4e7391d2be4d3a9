from __future__ import annotations


class QuizError(Exception):
	"""Base class for errors surfaced to the quiz user."""

	user_message = "Something went wrong. Please try again."

	def __init__(self, message: str | None = None) -> None:
		super().__init__(message or self.user_message)


class MissingInputError(QuizError):
	"""Raised before any remote call when there is no exam text to work with."""

	user_message = "Please paste or upload the exam text first."


class UnsupportedInputError(QuizError):
	"""Raised for uploads that are not plain UTF-8 text (PDF, Word, binaries)."""

	user_message = "Only plain text files are supported. Copy the exam text and paste it instead."


class StructuringError(QuizError):
	"""The structuring call failed or returned data that is not a valid test."""

	user_message = "Failed to process the exam. Please try again."


# Name used by callers of StructuringService.parse
ParseError = StructuringError


class SynthesisError(QuizError):
	"""The speech call failed or returned no audio payload."""

	user_message = "Failed to generate audio. Check API Key or try again."


class GeminiError(RuntimeError):
	"""Transport, status or payload-shape failure talking to Gemini."""
