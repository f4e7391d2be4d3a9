from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Model used to structure exam text and to expand listening topics into scripts
	gemini_model: str = Field(default="gemini-3-flash-preview", validation_alias="GEMINI_MODEL")
	# Text-to-speech model and voice for listening sections
	gemini_model_tts: str = Field(default="gemini-2.5-flash-preview-tts", validation_alias="GEMINI_MODEL_TTS")
	tts_voice: str = Field(default="Kore", validation_alias="GEMINI_TTS_VOICE")
	# The TTS endpoint returns headerless PCM; this is the agreed rate (16-bit mono)
	tts_sample_rate: int = Field(default=24000, validation_alias="GEMINI_TTS_SAMPLE_RATE")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	request_timeout_seconds: float = Field(default=60.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# OpenRouter fallback configuration (optional, text generation only)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Exam Quiz Builder", validation_alias="OPENROUTER_TITLE")

	# Inputs shorter than this (and without a colon) are treated as a topic, not a script
	topic_prompt_max_chars: int = Field(default=200, validation_alias="TOPIC_PROMPT_MAX_CHARS")
	max_upload_bytes: int = Field(default=1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")
	# In-memory sessions (and their audio) older than this are dropped
	session_ttl_seconds: int = Field(default=6 * 60 * 60, validation_alias="SESSION_TTL_SECONDS")
	session_purge_interval_seconds: int = Field(default=15 * 60, validation_alias="SESSION_PURGE_INTERVAL_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
