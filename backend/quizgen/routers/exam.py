"""
Exam Router

Turns pasted or uploaded exam text into a quiz session and grades answers.

- POST /exam/parse: structure pasted text into a new session
- POST /exam/upload: same, from a plain-text file
- GET /exam/{session_id}: public view of the test with per-question status
- DELETE /exam/{session_id}: reset (discard the test and any audio)
- POST /exam/{session_id}/questions/{question_id}/answer: grade a response
- GET /exam/{session_id}/questions/{question_id}/answer: reveal the answer
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from ..dependencies import get_store, get_structuring_service
from ..errors import UnsupportedInputError
from ..models import Question
from ..services import StructuringService
from ..session import QuizSession, SessionStore
from ..settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exam", tags=["exam"])

# Content types accepted for upload besides anything under text/
_TEXT_LIKE_TYPES = {"application/octet-stream", ""}


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class ParseRequest(BaseModel):
    text: str = ""


class AnswerRequest(BaseModel):
    """
    A response to one question.

    For choice questions this is the selected option id; for free-text
    questions it is the typed text, submitted when the field loses focus.
    """
    response: str = ""


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def _require_session(store: SessionStore, session_id: str) -> QuizSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _require_question(session: QuizSession, question_id: str) -> Question:
    question = session.find_question(question_id)
    if question is None:
        raise HTTPException(status_code=404, detail=f"Unknown question_id: {question_id}")
    return question


def decode_upload(filename: str | None, content_type: str | None, payload: bytes) -> str:
    """Read an uploaded exam file as UTF-8 text; other formats are refused."""
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    if not (ctype.startswith("text/") or ctype in _TEXT_LIKE_TYPES):
        raise UnsupportedInputError()
    if filename and filename.lower().endswith((".pdf", ".doc", ".docx")):
        raise UnsupportedInputError()
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as err:
        raise UnsupportedInputError() from err


# ============================================================================
# API ENDPOINTS
# ============================================================================

@router.post("/parse")
async def parse_exam(
    req: ParseRequest,
    store: SessionStore = Depends(get_store),
    structuring: StructuringService = Depends(get_structuring_service),
) -> Dict[str, Any]:
    session = await store.create(req.text, structuring)
    return session.public_view()


@router.post("/upload")
async def upload_exam(
    file: UploadFile = File(...),
    store: SessionStore = Depends(get_store),
    structuring: StructuringService = Depends(get_structuring_service),
) -> Dict[str, Any]:
    payload = await file.read(settings.max_upload_bytes + 1)
    if len(payload) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")
    text = decode_upload(file.filename, file.content_type, payload)
    session = await store.create(text, structuring)
    return session.public_view()


@router.get("/{session_id}")
async def get_exam(session_id: str, store: SessionStore = Depends(get_store)) -> Dict[str, Any]:
    session = _require_session(store, session_id)
    return {**session.public_view(), "score": session.score()}


@router.delete("/{session_id}")
async def reset_exam(session_id: str, store: SessionStore = Depends(get_store)) -> Dict[str, Any]:
    if not store.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    logger.info("Reset quiz session %s", session_id)
    return {"session_id": session_id, "reset": True}


@router.post("/{session_id}/questions/{question_id}/answer")
async def answer_question(
    session_id: str,
    question_id: str,
    req: AnswerRequest,
    store: SessionStore = Depends(get_store),
) -> Dict[str, Any]:
    session = _require_session(store, session_id)
    question = _require_question(session, question_id)
    status = session.answer(question, req.response)
    return {"question_id": question.id, "status": status.value, "score": session.score()}


@router.get("/{session_id}/questions/{question_id}/answer")
async def reveal_answer(
    session_id: str,
    question_id: str,
    store: SessionStore = Depends(get_store),
) -> Dict[str, Any]:
    session = _require_session(store, session_id)
    question = _require_question(session, question_id)
    return {
        "question_id": question.id,
        "correctAnswer": question.correct_answer,
        "explanation": question.explanation,
    }
