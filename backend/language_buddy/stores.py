from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from pydantic import ValidationError

from .errors import IndexOutOfRange, InvalidInput
from .schemas import Message, MessageList, Profile, VocabularyItem, VocabularyList
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

PROFILE_KEY = "profile"
HISTORY_KEY = "conversationHistory"
VOCABULARY_KEY = "vocabulary"


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class ProfileStore:
	def __init__(self, store: KeyValueStore) -> None:
		self._store = store

	def load(self) -> Profile:
		"""Return the saved profile, or the default one when nothing usable is stored."""
		raw = self._store.get(PROFILE_KEY)
		if raw is None:
			return Profile()
		try:
			return Profile.model_validate(json.loads(raw))
		except (ValueError, ValidationError) as e:
			logger.warning("Ignoring malformed stored profile: %s", e)
			return Profile()

	def save(self, profile: Profile) -> None:
		self._store.set(PROFILE_KEY, json.dumps(profile.to_json(), ensure_ascii=False))


class HistoryStore:
	def __init__(self, store: KeyValueStore) -> None:
		self._store = store

	def load(self) -> Optional[List[Message]]:
		raw = self._store.get(HISTORY_KEY)
		if raw is None:
			return None
		try:
			messages = MessageList.validate_json(raw)
		except ValidationError as e:
			logger.warning("Ignoring malformed stored conversation history: %s", e)
			return None
		return messages or None

	def save(self, messages: Sequence[Message]) -> None:
		payload = [m.to_json() for m in messages]
		self._store.set(HISTORY_KEY, json.dumps(payload, ensure_ascii=False))

	def erase(self) -> None:
		self._store.delete(HISTORY_KEY)


class VocabularyStore:
	"""Flashcard list persisted in full after every change."""

	def __init__(self, store: KeyValueStore, *, clock: Callable[[], datetime] = _utcnow) -> None:
		self._store = store
		self._clock = clock
		self._items: List[VocabularyItem] = self._load()

	def _load(self) -> List[VocabularyItem]:
		raw = self._store.get(VOCABULARY_KEY)
		if raw is None:
			return []
		try:
			return list(VocabularyList.validate_json(raw))
		except ValidationError as e:
			logger.warning("Ignoring malformed stored vocabulary: %s", e)
			return []

	def _persist(self) -> None:
		payload = [item.to_json() for item in self._items]
		self._store.set(VOCABULARY_KEY, json.dumps(payload, ensure_ascii=False))

	def _check_index(self, index: int) -> None:
		if not 0 <= index < len(self._items):
			raise IndexOutOfRange(f"no vocabulary item at position {index}")

	def list(self) -> List[VocabularyItem]:
		return list(self._items)

	def add(self, japanese: str, english: str, romaji: Optional[str] = None) -> VocabularyItem:
		japanese = (japanese or "").strip()
		english = (english or "").strip()
		if not japanese or not english:
			raise InvalidInput("both japanese and english are required")
		item = VocabularyItem(
			japanese=japanese,
			english=english,
			romaji=(romaji or "").strip() or None,
			date_added=self._clock(),
		)
		self._items.append(item)
		self._persist()
		return item

	def review(self, index: int) -> VocabularyItem:
		self._check_index(index)
		item = self._items[index]
		updated = item.model_copy(update={
			"review_count": item.review_count + 1,
			"last_reviewed": self._clock(),
		})
		self._items[index] = updated
		self._persist()
		return updated

	def remove(self, index: int) -> VocabularyItem:
		self._check_index(index)
		removed = self._items.pop(index)
		self._persist()
		return removed
