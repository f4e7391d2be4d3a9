import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .dependencies import get_store
from .errors import MissingInputError, QuizError, StructuringError, SynthesisError, UnsupportedInputError
from .logging_setup import setup_console_logging
from .settings import settings
from .routers import health
from .routers import exam
from .routers import listen

logger = logging.getLogger(__name__)

app = FastAPI(title="Exam Quiz Builder API")
app.include_router(health.router)
app.include_router(exam.router)
app.include_router(listen.router)

# Status code per error class; anything else derived from QuizError is a 500
_STATUS_BY_ERROR = {
	MissingInputError: 400,
	UnsupportedInputError: 415,
	StructuringError: 502,
	SynthesisError: 502,
}


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
	status = next((code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500)
	if exc.__cause__ is not None:
		logger.info("%s on %s caused by %r", type(exc).__name__, request.url.path, exc.__cause__)
	return JSONResponse(
		status_code=status,
		content={"error": type(exc).__name__, "detail": exc.user_message},
	)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


async def _session_purge_watcher():
	while True:
		await asyncio.sleep(settings.session_purge_interval_seconds)
		get_store().purge_expired()


@app.on_event("startup")
async def startup_event():
	setup_console_logging(settings.log_level)
	# Periodically drop sessions abandoned without a reset
	app.state.purge_task = asyncio.create_task(_session_purge_watcher())
	if not settings.gemini_api_key:
		logger.warning("GEMINI_API_KEY is not set; structuring and audio requests will fail")


def run() -> None:
	import uvicorn

	uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")


if __name__ == "__main__":
	run()
