"""
Answer normalization and matching.

Grading is approximate on purpose. Free-text answers are compared after
lowercasing, trimming and stripping a fixed punctuation set; anything outside
that set (apostrophes included) is kept, so "dont" and "don't" differ.

Choice answers only get lowercased and trimmed, then match when equal or when
one is a prefix of the other. This tolerates a reference stored as a full
label ("B. Because it rained") against a bare option id ("B"), at the cost of
false positives when a short id happens to prefix unrelated text.
"""

from __future__ import annotations
import re

from .models import GradeStatus, QuestionType

PUNCTUATION = ".,/#!$%^&*;:{}=-_`~()"
_PUNCTUATION_RE = re.compile("[" + re.escape(PUNCTUATION) + "]")


def normalize(text: str) -> str:
	return _PUNCTUATION_RE.sub("", text.lower()).strip()


def normalize_choice(text: str) -> str:
	return text.strip().lower()


def is_correct(question_type: QuestionType, user_response: str, reference_answer: str) -> bool:
	question_type = QuestionType(question_type)
	if question_type.is_choice:
		user = normalize_choice(user_response)
		ref = normalize_choice(reference_answer)
		return user == ref or ref.startswith(user) or user.startswith(ref)
	return normalize(user_response) == normalize(reference_answer)


def grade(question_type: QuestionType, user_response: str | None, reference_answer: str) -> GradeStatus:
	"""Grade a response; blank input means "not answered yet", never wrong."""
	if user_response is None or not user_response.strip():
		return GradeStatus.IDLE
	if is_correct(question_type, user_response, reference_answer):
		return GradeStatus.CORRECT
	return GradeStatus.INCORRECT
