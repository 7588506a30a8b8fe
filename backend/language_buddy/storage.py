from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import SessionLocal
from .errors import StorageError
from .models import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
	def get(self, key: str) -> Optional[str]: ...

	def set(self, key: str, value: str) -> None: ...

	def delete(self, key: str) -> None: ...


class MemoryStore:
	"""Dict-backed store for tests and throwaway sessions."""

	def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
		self.data: Dict[str, str] = dict(initial or {})
		self.writes = 0

	def get(self, key: str) -> Optional[str]:
		return self.data.get(key)

	def set(self, key: str, value: str) -> None:
		self.data[key] = value
		self.writes += 1

	def delete(self, key: str) -> None:
		self.data.pop(key, None)
		self.writes += 1


class SqlStore:
	"""Durable store on the ``key_value_entries`` table.

	Each write is a single-row upsert committed in its own transaction, so a
	reader never observes a half-written record.
	"""

	def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
		self._session_factory = session_factory

	def get(self, key: str) -> Optional[str]:
		db = self._session_factory()
		try:
			row = db.get(KeyValueEntry, key)
			return row.value if row is not None else None
		except SQLAlchemyError as e:
			raise StorageError(f"failed to read {key!r}: {e}") from e
		finally:
			db.close()

	def set(self, key: str, value: str) -> None:
		db = self._session_factory()
		try:
			row = db.get(KeyValueEntry, key)
			if row is None:
				row = KeyValueEntry(key=key, value=value)
			else:
				row.value = value
			db.add(row)
			db.commit()
		except SQLAlchemyError as e:
			db.rollback()
			raise StorageError(f"failed to write {key!r}: {e}") from e
		finally:
			db.close()

	def delete(self, key: str) -> None:
		db = self._session_factory()
		try:
			row = db.get(KeyValueEntry, key)
			if row is not None:
				db.delete(row)
				db.commit()
		except SQLAlchemyError as e:
			db.rollback()
			raise StorageError(f"failed to delete {key!r}: {e}") from e
		finally:
			db.close()
