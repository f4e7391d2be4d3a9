"""
Listening Router

Synthesizes audio for listening sections on demand. Each section keeps its
own operation state (idle, pending, succeeded, failed); a failure in one
section leaves the others and the rest of the test untouched.

- POST /listen/{session_id}/sections/{section_id}/audio: generate audio
- GET /listen/{session_id}/sections/{section_id}/audio/status: operation state
- GET /listen/{session_id}/sections/{section_id}/audio: download the WAV file
"""

from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..audio import WAV_MEDIA_TYPE, download_filename
from ..dependencies import get_speech_service, get_store
from ..models import Section
from ..operations import OperationStatus
from ..services import SpeechService
from ..session import QuizSession, SessionStore

router = APIRouter(prefix="/listen", tags=["listening"])


def _lookup(store: SessionStore, session_id: str, section_id: str) -> tuple[QuizSession, Section]:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    section = session.test.section(section_id)
    if section is None:
        raise HTTPException(status_code=404, detail=f"Unknown section_id: {section_id}")
    if not section.is_listening:
        raise HTTPException(status_code=400, detail="Section is not a listening section")
    return session, section


@router.post("/{session_id}/sections/{section_id}/audio")
async def generate_audio(
    session_id: str,
    section_id: str,
    store: SessionStore = Depends(get_store),
    speech: SpeechService = Depends(get_speech_service),
) -> Dict[str, Any]:
    session, section = _lookup(store, session_id, section_id)
    wav = await session.generate_audio(section, speech)
    return {
        "section_id": section.id,
        **session.audio[section.id].describe(),
        "bytes": len(wav),
        "filename": download_filename(section.title),
    }


@router.get("/{session_id}/sections/{section_id}/audio/status")
async def audio_status(
    session_id: str,
    section_id: str,
    store: SessionStore = Depends(get_store),
) -> Dict[str, Any]:
    session, section = _lookup(store, session_id, section_id)
    return {"section_id": section.id, **session.audio[section.id].describe()}


@router.get("/{session_id}/sections/{section_id}/audio")
async def download_audio(
    session_id: str,
    section_id: str,
    store: SessionStore = Depends(get_store),
) -> Response:
    session, section = _lookup(store, session_id, section_id)
    op = session.audio[section.id]
    if op.status is not OperationStatus.SUCCEEDED or op.result is None:
        raise HTTPException(status_code=404, detail="Audio has not been generated for this section")
    filename = download_filename(section.title)
    return Response(
        content=op.result,
        media_type=WAV_MEDIA_TYPE,
        # titles may be non-ASCII (e.g. Vietnamese), so use the RFC 5987 form
        headers={"Content-Disposition": f"attachment; filename*=utf-8''{quote(filename)}"},
    )
