import asyncio
import os

# Keep tests off the real database file and away from live API keys
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""

import pytest

from language_buddy.audio import AudioCapture, BrowserMicrophone
from language_buddy.collaborators import SynthesizedAudio
from language_buddy.errors import StorageError
from language_buddy.events import EventBus
from language_buddy.session import ConversationSession
from language_buddy.storage import MemoryStore
from language_buddy.stores import HistoryStore, ProfileStore


SPEECH = b"\x1aE\xdf\xa3" + b"\x00" * 252


class FakeTranscriber:
	def __init__(self, *results, error=None, delay=0.0):
		self.results = list(results) or ["hello"]
		self.error = error
		self.delay = delay
		self.calls = []

	async def transcribe(self, audio, mime_type):
		self.calls.append((audio, mime_type))
		if self.delay:
			await asyncio.sleep(self.delay)
		if self.error is not None:
			raise self.error
		if len(self.results) > 1:
			return self.results.pop(0)
		return self.results[0]


class FakeReplyGenerator:
	def __init__(self, reply="こんにちは！", error=None, delay=0.0, gate=None):
		self.reply = reply
		self.error = error
		self.delay = delay
		self.gate = gate
		self.started = asyncio.Event()
		self.calls = []

	async def generate_reply(self, text, language, profile, history):
		self.calls.append({"text": text, "language": language, "profile": profile, "history": list(history)})
		self.started.set()
		if self.gate is not None:
			await self.gate.wait()
		if self.delay:
			await asyncio.sleep(self.delay)
		if self.error is not None:
			raise self.error
		return self.reply


class FakeSynthesizer:
	def __init__(self, error=None, gate=None):
		self.error = error
		self.gate = gate
		self.calls = []

	async def synthesize(self, text, voice):
		self.calls.append((text, voice))
		if self.gate is not None:
			await self.gate.wait()
		if self.error is not None:
			raise self.error
		return SynthesizedAudio(data=b"RIFF" + bytes(len(self.calls)), mime_type="audio/wav")


class FakeOutput:
	def __init__(self, error=None):
		self.error = error
		self.played = []
		self.paused = []

	async def play(self, clip):
		if self.error is not None:
			raise self.error
		self.played.append(clip)

	async def pause(self, clip):
		self.paused.append(clip)


class FlakyStore(MemoryStore):
	"""MemoryStore whose writes fail while ``broken`` is set."""

	def __init__(self, initial=None):
		super().__init__(initial)
		self.broken = False

	def set(self, key, value):
		if self.broken:
			raise StorageError("disk full")
		super().set(key, value)


@pytest.fixture
def store():
	return MemoryStore()


@pytest.fixture
def microphone():
	return BrowserMicrophone()


@pytest.fixture
def make_session(store, microphone):
	def _make(transcriber=None, reply_generator=None, *, timeout=5.0, min_audio_bytes=16):
		return ConversationSession(
			capture=AudioCapture(microphone),
			transcriber=transcriber or FakeTranscriber(),
			reply_generator=reply_generator or FakeReplyGenerator(),
			history_store=HistoryStore(store),
			profile_store=ProfileStore(store),
			bus=EventBus(),
			timeout=timeout,
			min_audio_bytes=min_audio_bytes,
		)
	return _make


async def run_turn(session, audio=SPEECH):
	await session.start_recording()
	session.push_audio(audio)
	task = await session.stop_recording()
	await task
	return task
