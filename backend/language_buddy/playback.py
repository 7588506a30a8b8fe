from __future__ import annotations

import asyncio
import base64
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol

from .collaborators import SpeechSynthesizer
from .events import EventBus
from .schemas import Language

logger = logging.getLogger(__name__)

# Longest text sent to speech synthesis in one request
MAX_SPEECH_CHARS = 4000

LOCALES = {
	Language.japanese: "ja-JP",
	Language.english: "en-US",
}


def speech_locale(language: Language) -> str:
	return LOCALES.get(language, "en-US")


class PlaybackState(str, Enum):
	idle = "idle"
	loading = "loading"
	playing = "playing"


class AudioClip:
	"""Synthesized audio held for playback. Call ``release`` once it is replaced."""

	def __init__(self, data: bytes, mime_type: str, *, key: Any = None, locale: str = "en-US") -> None:
		self.data = data
		self.mime_type = mime_type
		self.key = key
		self.locale = locale
		self.released = False

	def release(self) -> None:
		self.data = b""
		self.released = True


class AudioOutput(Protocol):
	async def play(self, clip: AudioClip) -> None: ...

	async def pause(self, clip: AudioClip) -> None: ...


class BroadcastOutput:
	"""Hands clips to connected browsers through the event bus."""

	def __init__(self, bus: EventBus) -> None:
		self._bus = bus

	async def play(self, clip: AudioClip) -> None:
		self._bus.publish({
			"type": "audio",
			"key": clip.key,
			"mime": clip.mime_type,
			"locale": clip.locale,
			"data": base64.b64encode(clip.data).decode("ascii"),
		})

	async def pause(self, clip: AudioClip) -> None:
		self._bus.publish({"type": "audio.pause", "key": clip.key})


class SpeechPlayback:
	def __init__(
		self,
		synthesizer: SpeechSynthesizer,
		output: AudioOutput,
		*,
		voices: Mapping[Language, str],
		timeout: float = 30.0,
	) -> None:
		self._synthesizer = synthesizer
		self._output = output
		self._voices: Dict[Language, str] = dict(voices)
		self._timeout = timeout
		self._clip: Optional[AudioClip] = None
		# Bumped by reset; a synthesis started before it is thrown away
		self._epoch = 0
		self.state = PlaybackState.idle
		self.key: Any = None
		self.error: Optional[str] = None

	def voice_for(self, language: Language) -> str:
		return self._voices.get(language) or self._voices[Language.english]

	async def play(self, text: str, language: Language, key: Any = None) -> PlaybackState:
		"""Speak ``text``, or pause it when the same key is already playing.

		Never raises: failures leave ``error`` set and the state idle.
		"""
		if self.state == PlaybackState.loading:
			logger.debug("Playback busy, ignoring request for %r", key)
			return self.state

		clip = self._clip
		if clip is not None and not clip.released and key == self.key:
			if self.state == PlaybackState.playing:
				await self._pause(clip)
				return self.state
			# Paused with audio already loaded: resume without a new request
			self.error = None
			return await self._start(clip)

		if self.state == PlaybackState.playing and clip is not None:
			await self._pause(clip)

		self.state = PlaybackState.loading
		self.error = None
		self.key = key
		epoch = self._epoch
		try:
			audio = await asyncio.wait_for(
				self._synthesizer.synthesize(text[:MAX_SPEECH_CHARS], self.voice_for(language)),
				timeout=self._timeout,
			)
		except asyncio.TimeoutError:
			return self._fail("Speech synthesis timed out") if epoch == self._epoch else self.state
		except Exception as e:
			logger.warning("Speech synthesis failed: %s", e)
			if epoch != self._epoch:
				return self.state
			return self._fail(getattr(e, "detail", None) or str(e) or "Failed to generate speech")

		if epoch != self._epoch:
			logger.debug("Discarding speech for %r requested before a reset", key)
			return self.state
		self._release()
		self._clip = AudioClip(audio.data, audio.mime_type, key=key, locale=speech_locale(language))
		return await self._start(self._clip)

	async def _start(self, clip: AudioClip) -> PlaybackState:
		try:
			await self._output.play(clip)
		except Exception as e:
			logger.warning("Audio output failed: %s", e)
			return self._fail("Error playing audio")
		self.state = PlaybackState.playing
		return self.state

	async def _pause(self, clip: AudioClip) -> None:
		try:
			await self._output.pause(clip)
		except Exception as e:
			logger.warning("Audio output failed to pause: %s", e)
		self.state = PlaybackState.idle

	def _fail(self, detail: str) -> PlaybackState:
		self._release()
		self.error = detail
		self.state = PlaybackState.idle
		return self.state

	def _release(self) -> None:
		if self._clip is not None:
			self._clip.release()
			self._clip = None

	def finished(self, key: Any = None) -> None:
		"""Called by the output when the clip played to the end."""
		if self.state == PlaybackState.playing and (key is None or key == self.key):
			self.state = PlaybackState.idle

	def close(self) -> None:
		"""Drop the held clip so no later request can resume it."""
		self._release()
		self.state = PlaybackState.idle
		self.key = None
		self.error = None

	async def reset(self) -> None:
		"""Stop whatever is playing and forget it, e.g. when the conversation is cleared."""
		self._epoch += 1
		clip = self._clip
		if self.state == PlaybackState.playing and clip is not None:
			await self._pause(clip)
		self.close()
