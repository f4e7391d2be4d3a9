"""
In-memory quiz sessions.

A session is created per "generate" action from one TestStructure and is
discarded on reset. It keeps the latest grade per question and one audio
operation per listening section. Nothing is written to disk.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from .audio import build_wav
from .errors import MissingInputError, SynthesisError
from .grading import grade
from .models import GradeStatus, Question, Section, TestStructure
from .operations import Operation
from .services import SpeechService, StructuringService
from .settings import settings

logger = logging.getLogger(__name__)


class QuizSession:
    """
    State owned by one quiz session.

    Attributes:
        session_id: Unique identifier for this session
        test: The structured test, immutable for the session's lifetime
        responses: Last submitted response per question id
        grades: Grade per question id (idle until a non-blank response arrives)
        audio: Audio operation per listening section id; results are WAV bytes
        created_at: Creation time (UTC), used to evict abandoned sessions
    """

    def __init__(self, test: TestStructure, session_id: Optional[str] = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.test = test
        self.created_at = datetime.now(timezone.utc)
        self.responses: Dict[str, str] = {}
        self.grades: Dict[str, GradeStatus] = {}
        self.audio: Dict[str, Operation[bytes]] = {}
        for section in test.sections:
            for q in section.questions:
                self.grades[q.id] = GradeStatus.IDLE
            if section.is_listening:
                self.audio[section.id] = Operation()

    def find_question(self, question_id: str) -> Optional[Question]:
        for section in self.test.sections:
            q = section.question(question_id)
            if q is not None:
                return q
        return None

    def answer(self, question: Question, response: str) -> GradeStatus:
        status = grade(question.type, response, question.correct_answer)
        self.responses[question.id] = response
        self.grades[question.id] = status
        return status

    async def generate_audio(self, section: Section, speech: SpeechService) -> bytes:
        op = self.audio.setdefault(section.id, Operation())

        async def work() -> bytes:
            if not section.is_listening or not section.transcript_prompt:
                raise SynthesisError(f"Section {section.title!r} has no listening script")
            pcm = await speech.synthesize(section.transcript_prompt)
            return build_wav(pcm, sample_rate=settings.tts_sample_rate)

        try:
            return await op.run(work)
        except SynthesisError:
            logger.warning("Audio generation failed for section %s in session %s", section.id, self.session_id)
            raise

    def public_view(self) -> Dict[str, Any]:
        """Test as shown to the student: no correct answers or explanations."""
        sections = []
        for section in self.test.sections:
            data = section.model_dump(mode="json", by_alias=True, exclude={"questions", "transcript_prompt"})
            # a full script can give the listening answers away
            data["hasScript"] = bool(section.transcript_prompt)
            data["questions"] = [
                {
                    **q.model_dump(mode="json", by_alias=True, exclude={"correct_answer", "explanation"}),
                    "status": self.grades[q.id].value,
                    "response": self.responses.get(q.id),
                }
                for q in section.questions
            ]
            op = self.audio.get(section.id)
            data["audio"] = op.describe() if op is not None else None
            sections.append(data)
        return {"sessionId": self.session_id, "title": self.test.title, "sections": sections}

    def score(self) -> Dict[str, int]:
        correct = sum(1 for s in self.grades.values() if s is GradeStatus.CORRECT)
        incorrect = sum(1 for s in self.grades.values() if s is GradeStatus.INCORRECT)
        return {"correct": correct, "incorrect": incorrect, "total": len(self.grades)}


class SessionStore:
    """Process-local session registry; sessions vanish on reset or restart."""

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self._sessions: Dict[str, QuizSession] = {}
        self.ttl_seconds = settings.session_ttl_seconds if ttl_seconds is None else ttl_seconds

    async def create(self, raw_text: str, structuring: StructuringService) -> QuizSession:
        if not raw_text or not raw_text.strip():
            raise MissingInputError()
        self.purge_expired()
        test = await structuring.parse(raw_text)
        session = QuizSession(test)
        self._sessions[session.session_id] = session
        logger.info("Created quiz session %s (%s)", session.session_id, test.title)
        return session

    def get(self, session_id: str) -> Optional[QuizSession]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop sessions older than the TTL; the server never sees a page reload."""
        threshold = (now or datetime.now(timezone.utc)) - timedelta(seconds=self.ttl_seconds)
        stale = [sid for sid, s in self._sessions.items() if s.created_at < threshold]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            logger.info("Purged %d expired quiz sessions", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
