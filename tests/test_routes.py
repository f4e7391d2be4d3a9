from __future__ import annotations

import struct

import pytest
from fastapi.testclient import TestClient

from quizgen.dependencies import get_speech_service, get_store, get_structuring_service
from quizgen.main import app
from quizgen.session import SessionStore


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def client(store, structuring_stub, speech_stub):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_structuring_service] = lambda: structuring_stub
    app.dependency_overrides[get_speech_service] = lambda: speech_stub
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def session_id(client) -> str:
    res = client.post("/exam/parse", json={"text": "PART A. LISTENING ..."})
    assert res.status_code == 200
    return res.json()["sessionId"]


def test_health_and_info(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/info").json()["status"] == "ok"


def test_parse_creates_session_without_answers(client, store, structuring_stub) -> None:
    res = client.post("/exam/parse", json={"text": "PART A ..."})
    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "Grade 6 English Test"
    assert store.get(body["sessionId"]) is not None
    q1 = body["sections"][0]["questions"][0]
    assert q1["type"] == "MULTIPLE_CHOICE"
    assert "correctAnswer" not in q1
    assert structuring_stub.calls == ["PART A ..."]


def test_parse_blank_text_is_400(client, structuring_stub) -> None:
    res = client.post("/exam/parse", json={"text": "  "})
    assert res.status_code == 400
    assert res.json()["error"] == "MissingInputError"
    assert structuring_stub.calls == []


def test_parse_failure_is_502(client, store, structuring_stub) -> None:
    structuring_stub.fail = True
    res = client.post("/exam/parse", json={"text": "exam"})
    assert res.status_code == 502
    assert res.json()["error"] == "StructuringError"
    assert len(store) == 0


def test_upload_plain_text(client, structuring_stub) -> None:
    files = {"file": ("exam.txt", "Đề kiểm tra tiếng Anh".encode("utf-8"), "text/plain")}
    res = client.post("/exam/upload", files=files)
    assert res.status_code == 200
    assert structuring_stub.calls == ["Đề kiểm tra tiếng Anh"]


@pytest.mark.parametrize(
    "filename, payload, ctype",
    [
        ("exam.pdf", b"%PDF-1.4", "application/pdf"),
        ("exam.docx", b"PK\x03\x04", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("exam.txt", b"\xff\xfe\x00bad", "text/plain"),
    ],
)
def test_upload_rejects_non_text(client, structuring_stub, filename, payload, ctype) -> None:
    res = client.post("/exam/upload", files={"file": (filename, payload, ctype)})
    assert res.status_code == 415
    assert structuring_stub.calls == []


def test_answer_flow(client, session_id) -> None:
    url = f"/exam/{session_id}/questions/q1/answer"
    assert client.post(url, json={"response": "A"}).json()["status"] == "incorrect"
    assert client.post(url, json={"response": "B"}).json()["status"] == "correct"

    blank = client.post(f"/exam/{session_id}/questions/q4/answer", json={"response": "   "})
    assert blank.json()["status"] == "idle"

    rewrite = client.post(f"/exam/{session_id}/questions/q4/answer", json={"response": "  She is tall! "})
    assert rewrite.json()["status"] == "correct"
    assert rewrite.json()["score"] == {"correct": 2, "incorrect": 0, "total": 4}

    view = client.get(f"/exam/{session_id}").json()
    statuses = {q["id"]: q["status"] for s in view["sections"] for q in s["questions"]}
    assert statuses == {"q1": "correct", "q2": "idle", "q3": "idle", "q4": "correct"}


def test_reveal_answer(client, session_id) -> None:
    body = client.get(f"/exam/{session_id}/questions/q1/answer").json()
    assert body["correctAnswer"] == "B. In a country house"
    assert body["explanation"] == "Mai says she lives in the countryside."


def test_unknown_session_and_question(client, session_id) -> None:
    assert client.get("/exam/nope").status_code == 404
    assert client.post(f"/exam/{session_id}/questions/zz/answer", json={"response": "A"}).status_code == 404


def test_reset_discards_session(client, store, session_id) -> None:
    assert client.delete(f"/exam/{session_id}").json()["reset"] is True
    assert store.get(session_id) is None
    assert client.delete(f"/exam/{session_id}").status_code == 404


def test_audio_generate_and_download(client, session_id, speech_stub) -> None:
    base = f"/listen/{session_id}/sections/s1/audio"
    assert client.get(f"{base}/status").json()["status"] == "idle"
    assert client.get(base).status_code == 404

    res = client.post(base)
    assert res.status_code == 200
    assert res.json()["status"] == "succeeded"
    assert res.json()["filename"] == "PART_A._LISTENING_audio.wav"

    wav = client.get(base)
    assert wav.status_code == 200
    assert wav.headers["content-type"] == "audio/wav"
    assert "PART_A._LISTENING_audio.wav" in wav.headers["content-disposition"]
    assert wav.content[:4] == b"RIFF"
    assert struct.unpack("<I", wav.content[40:44])[0] == len(speech_stub.pcm)
    assert wav.content[44:] == speech_stub.pcm


def test_audio_failure_reported_per_section(client, session_id, speech_stub) -> None:
    speech_stub.fail_for = ("A conversation between Mai and her friend about her house",)
    base = f"/listen/{session_id}/sections/s1/audio"
    res = client.post(base)
    assert res.status_code == 502
    assert res.json()["error"] == "SynthesisError"
    assert client.get(f"{base}/status").json()["status"] == "failed"

    # the rest of the test is unaffected
    answer = client.post(f"/exam/{session_id}/questions/q2/answer", json={"response": "T"})
    assert answer.json()["status"] == "correct"


def test_audio_for_non_listening_section(client, session_id) -> None:
    assert client.post(f"/listen/{session_id}/sections/s2/audio").status_code == 400
    assert client.post(f"/listen/{session_id}/sections/zz/audio").status_code == 404
    assert client.post("/listen/nope/sections/s1/audio").status_code == 404
