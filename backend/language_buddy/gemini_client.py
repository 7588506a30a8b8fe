from __future__ import annotations
import base64
import httpx
from typing import Any, Dict, List, Optional
from .settings import settings


class GeminiError(RuntimeError):
	pass


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		# Google AI Studio takes the key in the query string, Vertex in a header
		self._auth_in_query = self.provider != "vertex"
		self._client = httpx.AsyncClient(timeout=timeout or settings.collaborator_timeout_seconds, transport=transport)

	def url_for(self, model: Optional[str] = None) -> str:
		model = model or self.model
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			return (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{model}:generateContent"
			)
		# Google AI Studio (Generative Language API)
		return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

	async def generate_multimodal(self, parts: List[Dict[str, Any]], *, role: str = "user") -> str:
		payload: Dict[str, Any] = {"contents": [{"role": role, "parts": parts}]}
		data = await self._post_payload(payload)
		return self._first_text(data)

	async def generate_chat(
		self,
		contents: List[Dict[str, Any]],
		*,
		system_instruction: Optional[str] = None,
		generation_config: Optional[Dict[str, Any]] = None,
	) -> str:
		payload: Dict[str, Any] = {"contents": contents}
		if system_instruction:
			payload["system_instruction"] = {"parts": [{"text": system_instruction}]}
		if generation_config:
			payload["generation_config"] = generation_config
		data = await self._post_payload(payload)
		return self._first_text(data)

	async def generate_speech(self, text: str, voice: str, *, model: Optional[str] = None) -> bytes:
		"""Return raw 24 kHz 16-bit mono PCM for ``text`` spoken by a prebuilt voice."""
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": text}]}],
			"generation_config": {
				"response_modalities": ["AUDIO"],
				"speech_config": {
					"voice_config": {"prebuilt_voice_config": {"voice_name": voice}}
				},
			},
		}
		data = await self._post_payload(payload, model=model or settings.gemini_tts_model)
		try:
			parts = data["candidates"][0]["content"]["parts"]
		except (KeyError, IndexError, TypeError):
			raise GeminiError(f"Unexpected Gemini speech response: {data}")
		for part in parts:
			blob = part.get("inlineData") or part.get("inline_data")
			if blob and blob.get("data"):
				return base64.b64decode(blob["data"])
		raise GeminiError("Gemini speech response contained no audio")

	async def _post_payload(self, payload: Dict[str, Any], *, model: Optional[str] = None) -> Dict[str, Any]:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		try:
			r = await self._client.post(self.url_for(model), params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise GeminiError(f"Gemini returned HTTP {http_err.response.status_code}") from http_err
		except httpx.RequestError as net_err:
			raise GeminiError(f"Gemini request failed: {net_err}") from net_err
		try:
			return r.json()
		except ValueError:
			raise GeminiError(f"Unexpected Gemini response: {r.text}")

	@staticmethod
	def _first_text(data: Dict[str, Any]) -> str:
		try:
			parts = data["candidates"][0]["content"]["parts"]
		except (KeyError, IndexError, TypeError):
			raise GeminiError(f"Unexpected Gemini response: {data}")
		return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))

	async def aclose(self) -> None:
		await self._client.aclose()
