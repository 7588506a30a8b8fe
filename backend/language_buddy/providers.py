"""Gemini and Google Cloud implementations of the collaborator interfaces."""

from __future__ import annotations

import base64
import io
import logging
import re
import wave
from typing import Any, Callable, Dict, List, Optional, Sequence

from google.api_core.exceptions import GoogleAPIError
from google.cloud import speech_v1p1beta1 as speech

from .collaborators import SynthesizedAudio
from .errors import ReplyGenerationFailed, SynthesisFailed, TranscriptionFailed
from .gemini_client import GeminiClient, GeminiError
from .prompts import TRANSCRIBE_INSTRUCTION, build_tutor_prompt
from .schemas import Language, Message, Profile, Role
from .settings import settings

logger = logging.getLogger(__name__)

# Gemini TTS returns headerless PCM at this format
TTS_SAMPLE_RATE = 24000
TTS_SAMPLE_WIDTH = 2
TTS_CHANNELS = 1


def _clean_transcript(text: str) -> str:
	s = re.sub(r"\s+", " ", text or "").strip()
	# Models sometimes wrap the transcript in quotes despite the instruction
	if len(s) >= 2 and s[0] == s[-1] and s[0] in "\"'":
		s = s[1:-1].strip()
	return s


def pcm_to_wav(pcm: bytes, *, sample_rate: int = TTS_SAMPLE_RATE) -> bytes:
	buf = io.BytesIO()
	with wave.open(buf, "wb") as wav:
		wav.setnchannels(TTS_CHANNELS)
		wav.setsampwidth(TTS_SAMPLE_WIDTH)
		wav.setframerate(sample_rate)
		wav.writeframes(pcm)
	return buf.getvalue()


def to_gemini_turn(message: Message) -> Dict[str, Any]:
	role = "model" if message.role == Role.assistant else "user"
	return {"role": role, "parts": [{"text": message.content}]}


class GeminiTranscriber:
	def __init__(self, *, model: Optional[str] = None, client_factory: Optional[Callable[[], GeminiClient]] = None) -> None:
		self.model = model or settings.gemini_transcribe_model or settings.gemini_model
		self._client_factory = client_factory or (lambda: GeminiClient(model=self.model))

	async def transcribe(self, audio: bytes, mime_type: str) -> str:
		client: Optional[GeminiClient] = None
		try:
			client = self._client_factory()
			parts = [
				{"text": TRANSCRIBE_INSTRUCTION},
				{"inline_data": {"mime_type": mime_type, "data": base64.b64encode(audio).decode("ascii")}},
			]
			raw = await client.generate_multimodal(parts)
		except (GeminiError, ValueError) as e:
			raise TranscriptionFailed(str(e)) from e
		finally:
			if client is not None:
				await client.aclose()
		return _clean_transcript(raw)


_SPEECH_ENCODINGS = {
	"audio/webm": speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
	"audio/ogg": speech.RecognitionConfig.AudioEncoding.OGG_OPUS,
	"audio/wav": speech.RecognitionConfig.AudioEncoding.LINEAR16,
	"audio/x-wav": speech.RecognitionConfig.AudioEncoding.LINEAR16,
	"audio/flac": speech.RecognitionConfig.AudioEncoding.FLAC,
}


class GoogleSpeechTranscriber:
	"""Cloud Speech-to-Text, recognising Japanese with English as an alternative."""

	def __init__(
		self,
		*,
		language_code: str = "ja-JP",
		alternative_language_codes: Sequence[str] = ("en-US",),
		sample_rate_hertz: int = 48000,
		client_factory: Optional[Callable[[], Any]] = None,
	) -> None:
		self.language_code = language_code
		self.alternative_language_codes = list(alternative_language_codes)
		self.sample_rate_hertz = sample_rate_hertz
		self._client_factory = client_factory or speech.SpeechAsyncClient

	def _config_for(self, mime_type: str) -> speech.RecognitionConfig:
		base_mime = (mime_type or "").split(";")[0].strip().lower()
		encoding = _SPEECH_ENCODINGS.get(base_mime, speech.RecognitionConfig.AudioEncoding.ENCODING_UNSPECIFIED)
		kwargs: Dict[str, Any] = {
			"encoding": encoding,
			"language_code": self.language_code,
			"alternative_language_codes": self.alternative_language_codes,
			"enable_automatic_punctuation": True,
			"model": "default",
		}
		# WAV and FLAC carry their sample rate in the header
		if encoding in (speech.RecognitionConfig.AudioEncoding.WEBM_OPUS, speech.RecognitionConfig.AudioEncoding.OGG_OPUS):
			kwargs["sample_rate_hertz"] = self.sample_rate_hertz
		return speech.RecognitionConfig(**kwargs)

	async def transcribe(self, audio: bytes, mime_type: str) -> str:
		try:
			client = self._client_factory()
		except Exception as e:
			raise TranscriptionFailed(f"Speech-to-Text unavailable: {e}") from e
		try:
			response = await client.recognize(
				config=self._config_for(mime_type),
				audio=speech.RecognitionAudio(content=audio),
			)
		except GoogleAPIError as e:
			raise TranscriptionFailed(f"Speech-to-Text API error: {e}") from e
		pieces: List[str] = []
		for result in response.results:
			if result.alternatives:
				pieces.append(result.alternatives[0].transcript.strip())
		return _clean_transcript(" ".join(p for p in pieces if p))


class GeminiReplyGenerator:
	def __init__(
		self,
		*,
		model: Optional[str] = None,
		temperature: float = 0.7,
		max_output_tokens: int = 1000,
		client_factory: Optional[Callable[[], GeminiClient]] = None,
	) -> None:
		self.model = model or settings.gemini_model
		self.temperature = temperature
		self.max_output_tokens = max_output_tokens
		self._client_factory = client_factory or (lambda: GeminiClient(model=self.model))

	async def generate_reply(
		self,
		text: str,
		language: Language,
		profile: Profile,
		history: Sequence[Message],
	) -> str:
		contents = [to_gemini_turn(m) for m in history if m.role != Role.system]
		contents.append({"role": "user", "parts": [{"text": text}]})
		client: Optional[GeminiClient] = None
		try:
			client = self._client_factory()
			raw = await client.generate_chat(
				contents,
				system_instruction=build_tutor_prompt(profile, language),
				generation_config={"temperature": self.temperature, "max_output_tokens": self.max_output_tokens},
			)
		except (GeminiError, ValueError) as e:
			raise ReplyGenerationFailed(str(e)) from e
		finally:
			if client is not None:
				await client.aclose()
		reply = (raw or "").strip()
		if not reply:
			raise ReplyGenerationFailed("Gemini returned an empty reply")
		return reply


class GeminiSpeechSynthesizer:
	def __init__(self, *, model: Optional[str] = None, client_factory: Optional[Callable[[], GeminiClient]] = None) -> None:
		self.model = model or settings.gemini_tts_model
		self._client_factory = client_factory or (lambda: GeminiClient(model=self.model))

	async def synthesize(self, text: str, voice: str) -> SynthesizedAudio:
		client: Optional[GeminiClient] = None
		try:
			client = self._client_factory()
			pcm = await client.generate_speech(text, voice, model=self.model)
		except (GeminiError, ValueError) as e:
			raise SynthesisFailed(str(e)) from e
		finally:
			if client is not None:
				await client.aclose()
		return SynthesizedAudio(data=pcm_to_wav(pcm), mime_type="audio/wav")
