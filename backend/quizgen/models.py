from __future__ import annotations
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
	MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
	TRUE_FALSE = "TRUE_FALSE"
	FILL_IN_THE_BLANK = "FILL_IN_THE_BLANK"
	REWRITE_SENTENCE = "REWRITE_SENTENCE"

	@property
	def is_choice(self) -> bool:
		return self in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)


class _WireModel(BaseModel):
	# camelCase on the wire (matches the structuring schema), snake_case in Python
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Option(_WireModel):
	id: str
	text: str


class Question(_WireModel):
	id: str
	number: int = Field(ge=1)
	text: str  # may embed markup for blanks
	type: QuestionType
	options: Optional[Tuple[Option, ...]] = None
	correct_answer: str
	explanation: Optional[str] = None

	@model_validator(mode="after")
	def _check_options(self) -> "Question":
		if self.type.is_choice and not self.options:
			raise ValueError(f"question {self.id} is {self.type.value} but has no options")
		return self


class Section(_WireModel):
	id: str
	title: str
	instructions: str
	is_listening: bool
	transcript_prompt: Optional[str] = None
	questions: Tuple[Question, ...]

	def question(self, question_id: str) -> Optional[Question]:
		for q in self.questions:
			if q.id == question_id:
				return q
		return None


class TestStructure(_WireModel):
	# keep pytest from collecting this as a test class
	__test__ = False

	title: str
	sections: Tuple[Section, ...]

	def section(self, section_id: str) -> Optional[Section]:
		for s in self.sections:
			if s.id == section_id:
				return s
		return None

	@model_validator(mode="after")
	def _check_unique_ids(self) -> "TestStructure":
		# sessions grade and look up questions by id, so ids must be unique test-wide
		section_ids = set()
		question_ids = set()
		for s in self.sections:
			if s.id in section_ids:
				raise ValueError(f"duplicate section id {s.id!r}")
			section_ids.add(s.id)
			for q in s.questions:
				if q.id in question_ids:
					raise ValueError(f"duplicate question id {q.id!r} in section {s.id!r}")
				question_ids.add(q.id)
		return self


class GradeStatus(str, Enum):
	IDLE = "idle"
	CORRECT = "correct"
	INCORRECT = "incorrect"
