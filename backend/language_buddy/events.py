from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class EventBus:
	"""Fan-out of state-change notifications to any number of listeners.

	Each subscriber gets its own bounded queue; a listener that stops draining
	loses events instead of stalling the session.
	"""

	def __init__(self, maxsize: int = 100) -> None:
		self._maxsize = maxsize
		self._subscribers: List[asyncio.Queue] = []

	def subscribe(self) -> asyncio.Queue:
		queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
		self._subscribers.append(queue)
		return queue

	def unsubscribe(self, queue: asyncio.Queue) -> None:
		try:
			self._subscribers.remove(queue)
		except ValueError:
			pass

	@property
	def subscriber_count(self) -> int:
		return len(self._subscribers)

	def publish(self, event: Dict[str, Any]) -> None:
		for queue in list(self._subscribers):
			try:
				queue.put_nowait(event)
			except asyncio.QueueFull:
				logger.warning("Dropping %s event for a slow listener", event.get("type"))
