"""Interfaces the conversation core needs from external AI services.

Implementations are injected into the session and playback objects; see
``providers.py`` for the Gemini / Google Cloud ones and the tests for fakes.
Each method raises the matching ``CollaboratorError`` subclass on failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from .schemas import Language, Message, Profile


@dataclass(frozen=True)
class SynthesizedAudio:
	data: bytes
	mime_type: str = "audio/wav"


class Transcriber(Protocol):
	async def transcribe(self, audio: bytes, mime_type: str) -> str: ...


class ReplyGenerator(Protocol):
	async def generate_reply(
		self,
		text: str,
		language: Language,
		profile: Profile,
		history: Sequence[Message],
	) -> str: ...


class SpeechSynthesizer(Protocol):
	async def synthesize(self, text: str, voice: str) -> SynthesizedAudio: ...
