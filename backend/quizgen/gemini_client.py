from __future__ import annotations
import base64
import binascii
import logging
import httpx
from typing import Any, Dict, List, Optional
from .errors import GeminiError
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		model: Optional[str] = None,
		tts_model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.tts_model = tts_model or settings.gemini_model_tts
		self.provider = settings.gemini_provider
		self._auth_in_query = self.provider != "vertex"
		timeout = settings.request_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	def endpoint(self, model: str) -> str:
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			return (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{model}:generateContent"
			)
		# Google AI Studio (Generative Language API)
		return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

	async def generate(
		self,
		prompt: str,
		*,
		system_instruction: Optional[str] = None,
		response_schema: Optional[Dict[str, Any]] = None,
	) -> str:
		"""Run a text generation call and return the first candidate's text.

		When ``response_schema`` is given the model is asked for JSON matching it.
		"""
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if system_instruction:
			payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
		if response_schema is not None:
			payload["generationConfig"] = {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			}
		try:
			data = await self._post_payload(self.model, payload)
			return _first_text(data)
		except GeminiError as err:
			if not self._fallback_enabled:
				raise
			logger.warning("Gemini text call failed, trying OpenRouter fallback: %s", err)
			fallback_prompt = prompt if not system_instruction else f"{system_instruction}\n\n{prompt}"
			return await self._fallback_generate(fallback_prompt, err)

	async def synthesize_speech(self, text: str, *, voice: Optional[str] = None) -> bytes:
		"""Read ``text`` aloud with the TTS model and return the decoded audio bytes."""
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": text}]}],
			"generationConfig": {
				"responseModalities": ["AUDIO"],
				"speechConfig": {
					"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice or settings.tts_voice}},
				},
			},
		}
		data = await self._post_payload(self.tts_model, payload)
		return _first_inline_audio(data)

	async def _post_payload(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.endpoint(model), params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise GeminiError(
				f"Gemini returned HTTP {http_err.response.status_code}: {http_err.response.text[:300]}"
			) from http_err
		except httpx.RequestError as net_err:
			raise GeminiError(f"Gemini request failed: {net_err}") from net_err
		try:
			return r.json()
		except ValueError as err:
			raise GeminiError(f"Unexpected Gemini response: {r.text[:300]}") from err

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Optional[Exception]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error or GeminiError("Fallback requested but OpenRouter is not configured")
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			raise GeminiError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err


def _candidate_parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
	candidates = data.get("candidates") or []
	if not candidates:
		raise GeminiError("Gemini response has no candidates")
	content = candidates[0].get("content") or {}
	return [p for p in content.get("parts") or [] if isinstance(p, dict)]


def _first_text(data: Dict[str, Any]) -> str:
	texts = [p["text"] for p in _candidate_parts(data) if isinstance(p.get("text"), str)]
	if not texts:
		raise GeminiError("Gemini response has no text part")
	return "".join(texts)


def _first_inline_audio(data: Dict[str, Any]) -> bytes:
	for part in _candidate_parts(data):
		inline = part.get("inlineData") or part.get("inline_data")
		if isinstance(inline, dict) and inline.get("data"):
			try:
				return base64.b64decode(inline["data"], validate=True)
			except (binascii.Error, ValueError) as err:
				raise GeminiError("Gemini audio payload is not valid base64") from err
	raise GeminiError("No audio data returned")
