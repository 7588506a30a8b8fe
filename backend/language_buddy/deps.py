from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException

from .audio import AudioCapture, BrowserMicrophone
from .collaborators import ReplyGenerator, SpeechSynthesizer, Transcriber
from .errors import (
	BuddyError,
	CollaboratorError,
	DeviceUnavailable,
	IndexOutOfRange,
	InvalidInput,
	InvalidTransition,
	PermissionDenied,
)
from .events import EventBus
from .playback import BroadcastOutput, SpeechPlayback
from .providers import GeminiReplyGenerator, GeminiSpeechSynthesizer, GeminiTranscriber, GoogleSpeechTranscriber
from .schemas import Language
from .session import ConversationSession
from .settings import settings
from .storage import KeyValueStore, SqlStore
from .stores import HistoryStore, ProfileStore, VocabularyStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
	session: ConversationSession
	playback: SpeechPlayback
	vocabulary: VocabularyStore
	microphone: BrowserMicrophone
	transcriber: Transcriber
	reply_generator: ReplyGenerator
	synthesizer: SpeechSynthesizer
	bus: EventBus

	async def clear_conversation(self) -> None:
		# Message indexes restart after a clear, so held audio keyed by index is stale
		self.session.clear()
		await self.playback.reset()

	def close(self) -> None:
		self.playback.close()


def build_transcriber() -> Transcriber:
	if settings.transcriber == "google":
		return GoogleSpeechTranscriber()
	if settings.transcriber != "gemini":
		logger.warning("Unknown TRANSCRIBER %r, using gemini", settings.transcriber)
	return GeminiTranscriber()


def build_runtime(
	store: Optional[KeyValueStore] = None,
	*,
	transcriber: Optional[Transcriber] = None,
	reply_generator: Optional[ReplyGenerator] = None,
	synthesizer: Optional[SpeechSynthesizer] = None,
	min_audio_bytes: Optional[int] = None,
) -> Runtime:
	store = store if store is not None else SqlStore()
	bus = EventBus()
	microphone = BrowserMicrophone()
	transcriber = transcriber or build_transcriber()
	reply_generator = reply_generator or GeminiReplyGenerator()
	synthesizer = synthesizer or GeminiSpeechSynthesizer()
	session = ConversationSession(
		capture=AudioCapture(microphone),
		transcriber=transcriber,
		reply_generator=reply_generator,
		history_store=HistoryStore(store),
		profile_store=ProfileStore(store),
		bus=bus,
		timeout=settings.collaborator_timeout_seconds,
		min_audio_bytes=settings.min_audio_bytes if min_audio_bytes is None else min_audio_bytes,
	)
	playback = SpeechPlayback(
		synthesizer,
		BroadcastOutput(bus),
		voices={Language.japanese: settings.voice_japanese, Language.english: settings.voice_english},
		timeout=settings.collaborator_timeout_seconds,
	)
	return Runtime(
		session=session,
		playback=playback,
		vocabulary=VocabularyStore(store),
		microphone=microphone,
		transcriber=transcriber,
		reply_generator=reply_generator,
		synthesizer=synthesizer,
		bus=bus,
	)


_runtime: Optional[Runtime] = None


def get_runtime() -> Runtime:
	global _runtime
	if _runtime is None:
		_runtime = build_runtime()
	return _runtime


def shutdown_runtime() -> None:
	global _runtime
	if _runtime is not None:
		_runtime.close()
		_runtime = None


def http_error(e: BuddyError) -> HTTPException:
	if isinstance(e, IndexOutOfRange):
		return HTTPException(status_code=404, detail=e.detail)
	if isinstance(e, InvalidInput):
		return HTTPException(status_code=400, detail=e.detail)
	if isinstance(e, InvalidTransition):
		return HTTPException(status_code=409, detail=e.detail)
	if isinstance(e, PermissionDenied):
		return HTTPException(status_code=403, detail=e.detail)
	if isinstance(e, DeviceUnavailable):
		return HTTPException(status_code=503, detail=e.detail)
	if isinstance(e, CollaboratorError):
		return HTTPException(status_code=502, detail=e.detail)
	return HTTPException(status_code=500, detail=e.detail or "internal error")
