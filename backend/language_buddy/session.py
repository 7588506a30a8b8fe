"""
Conversation Session
====================

Turn-based dialogue between the learner and the tutor model. One session lives
for the lifetime of the process and walks through these states:

	Idle -> Recording -> Transcribing -> GeneratingReply -> Idle

Transcription and reply generation run as a background task started by
``stop_recording``; any failure of those collaborators (including a timeout)
appends a system notice and lands back in Idle. A failed history write is
reported as an error event and also lands back in Idle. Every change to the
message history is persisted immediately, so a restart resumes the conversation
(but never a recording).

A generation counter is bumped by ``clear``; work started under an older
generation finishes quietly and its results are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .audio import AudioBlob, AudioCapture
from .collaborators import ReplyGenerator, Transcriber
from .errors import BuddyError, IndexOutOfRange, InvalidTransition, StorageError
from .events import EventBus
from .language import classify
from .schemas import Language, Message, Profile, Role
from .stores import HistoryStore, ProfileStore

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to Language Buddy! Record some speech in English or Japanese."

# 3 exchanges (user + assistant)
MAX_HISTORY_MESSAGES = 6


class SessionState(str, Enum):
	idle = "idle"
	recording = "recording"
	transcribing = "transcribing"
	generating_reply = "generating_reply"


def bounded_history(messages: Sequence[Message], limit: int = MAX_HISTORY_MESSAGES) -> List[Message]:
	"""Most recent ``limit`` dialogue turns, oldest first, without system notices."""
	dialogue = [m for m in messages if m.role != Role.system]
	return dialogue[-limit:] if limit > 0 else []


class ConversationSession:
	def __init__(
		self,
		*,
		capture: AudioCapture,
		transcriber: Transcriber,
		reply_generator: ReplyGenerator,
		history_store: HistoryStore,
		profile_store: ProfileStore,
		bus: Optional[EventBus] = None,
		timeout: float = 30.0,
		min_audio_bytes: int = 1,
	) -> None:
		self._capture = capture
		self._transcriber = transcriber
		self._reply_generator = reply_generator
		self._history_store = history_store
		self._profile_store = profile_store
		self.bus = bus or EventBus()
		self._timeout = timeout
		self._min_audio_bytes = max(1, min_audio_bytes)

		self._state = SessionState.idle
		self._generation = 0
		self._task: Optional[asyncio.Task] = None
		self._profile = profile_store.load()
		self._messages: List[Message] = history_store.load() or [Message.system(WELCOME_MESSAGE)]

	# ---------------- Observable state ----------------
	@property
	def state(self) -> SessionState:
		return self._state

	@property
	def is_recording(self) -> bool:
		return self._state == SessionState.recording

	@property
	def reply_pending(self) -> bool:
		return self._state == SessionState.generating_reply

	@property
	def messages(self) -> Tuple[Message, ...]:
		return tuple(self._messages)

	@property
	def profile(self) -> Profile:
		return self._profile

	@property
	def generation(self) -> int:
		return self._generation

	def snapshot(self) -> Dict[str, Any]:
		return {
			"state": self._state.value,
			"is_recording": self.is_recording,
			"reply_pending": self.reply_pending,
			"messages": [m.to_json() for m in self._messages],
			"profile": self._profile.to_json(),
		}

	def _set_state(self, state: SessionState) -> None:
		if state != self._state:
			logger.info("Session %s -> %s", self._state.value, state.value)
			self._state = state
			self.bus.publish({"type": "state", "state": state.value})

	def _append(self, message: Message) -> None:
		# Persist first so a failed write leaves the history unchanged
		self._history_store.save(self._messages + [message])
		self._messages.append(message)
		self.bus.publish({"type": "message", "index": len(self._messages) - 1, "message": message.to_json()})

	def _is_current(self, generation: int) -> bool:
		if generation != self._generation:
			logger.debug("Dropping result from stale generation %d (now %d)", generation, self._generation)
			return False
		return True

	# ---------------- Transitions ----------------
	async def start_recording(self, mime_type: Optional[str] = None) -> None:
		if self._state != SessionState.idle:
			raise InvalidTransition(f"cannot start recording while {self._state.value}")
		try:
			await self._capture.start(mime_type)
		except BuddyError as e:
			self.bus.publish({"type": "error", "code": e.code, "detail": e.detail})
			raise
		self._set_state(SessionState.recording)

	def push_audio(self, chunk: bytes) -> bool:
		return self._capture.push(chunk)

	async def stop_recording(self) -> asyncio.Task:
		"""Finish the recording and start processing it in the background.

		Returns the task running transcription and reply generation.
		"""
		if self._state != SessionState.recording:
			raise InvalidTransition(f"cannot stop recording while {self._state.value}")
		blob = await self._capture.stop()
		self._set_state(SessionState.transcribing)
		self._task = asyncio.create_task(self._process_turn(blob, self._generation))
		return self._task

	async def wait_idle(self) -> None:
		task = self._task
		if task is not None and not task.done():
			await asyncio.shield(task)

	async def _process_turn(self, blob: AudioBlob, generation: int) -> None:
		try:
			await self._run_turn(blob, generation)
		except StorageError as e:
			logger.error("Could not save the conversation: %s", e.detail)
			if self._is_current(generation):
				self.bus.publish({"type": "error", "code": e.code, "detail": e.detail})
				self._set_state(SessionState.idle)

	async def _run_turn(self, blob: AudioBlob, generation: int) -> None:
		if len(blob) < self._min_audio_bytes:
			logger.info("Recording too short (%d bytes), skipping transcription", len(blob))
			if self._is_current(generation):
				self._set_state(SessionState.idle)
			return

		try:
			text = await asyncio.wait_for(
				self._transcriber.transcribe(blob.data, blob.mime_type),
				timeout=self._timeout,
			)
		except asyncio.TimeoutError:
			self._fail(generation, "Error processing audio: transcription timed out")
			return
		except Exception as e:
			logger.warning("Transcription failed: %s", e)
			self._fail(generation, f"Error processing audio: {getattr(e, 'detail', None) or e}")
			return

		if not self._is_current(generation):
			return
		text = (text or "").strip()
		if not text:
			logger.info("Empty transcription, nothing to answer")
			self._set_state(SessionState.idle)
			return

		language = classify(text)
		history = bounded_history(self._messages)
		profile = self._profile
		self._append(Message(role=Role.user, content=text, detected_language=language))
		self._set_state(SessionState.generating_reply)

		try:
			reply = await asyncio.wait_for(
				self._reply_generator.generate_reply(text, language, profile, history),
				timeout=self._timeout,
			)
		except asyncio.TimeoutError:
			self._fail(generation, "Failed to generate response: the tutor took too long to answer")
			return
		except Exception as e:
			logger.warning("Reply generation failed: %s", e)
			self._fail(generation, f"Failed to generate response: {getattr(e, 'detail', None) or e}")
			return

		if not self._is_current(generation):
			return
		self._append(Message(role=Role.assistant, content=reply, detected_language=classify(reply)))
		self._set_state(SessionState.idle)

	def _fail(self, generation: int, notice: str) -> None:
		if not self._is_current(generation):
			return
		self._append(Message.system(notice))
		self.bus.publish({"type": "error", "code": "collaborator_error", "detail": notice})
		self._set_state(SessionState.idle)

	def update_profile(self, profile: Profile) -> Profile:
		self._profile_store.save(profile)
		self._profile = profile
		self._append(Message.system(f"Profile updated! Your Japanese level is now set to {profile.level.value}."))
		return profile

	def clear(self) -> None:
		if self._state == SessionState.recording:
			raise InvalidTransition("stop recording before clearing the conversation")
		self._generation += 1
		self._messages = [Message.system(WELCOME_MESSAGE)]
		# A missing history loads back as the welcome message alone
		self._history_store.erase()
		self.bus.publish({"type": "cleared", "messages": [m.to_json() for m in self._messages]})
		self._set_state(SessionState.idle)

	def message_at(self, index: int) -> Message:
		if not 0 <= index < len(self._messages):
			raise IndexOutOfRange(f"no message at position {index}")
		return self._messages[index]

	def speech_language(self, message: Message) -> Language:
		return message.detected_language or classify(message.content)
