from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from .errors import DeviceUnavailable, InvalidTransition, PermissionDenied

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/webm"


@dataclass(frozen=True)
class AudioBlob:
	data: bytes
	mime_type: str = DEFAULT_MIME_TYPE

	def __len__(self) -> int:
		return len(self.data)

	@property
	def is_empty(self) -> bool:
		return not self.data


class CaptureDevice(Protocol):
	async def open(self) -> None: ...

	async def close(self) -> None: ...


class BrowserMicrophone:
	"""Capture device whose audio is recorded by the browser and streamed up.

	The browser owns the real microphone, so it reports permission and
	availability changes; ``open`` fails the same way ``getUserMedia`` did.
	"""

	GRANTED = "granted"
	DENIED = "denied"
	UNAVAILABLE = "unavailable"

	def __init__(self) -> None:
		self.status = self.GRANTED
		self.is_open = False

	def report(self, status: str) -> None:
		if status not in (self.GRANTED, self.DENIED, self.UNAVAILABLE):
			raise ValueError(f"unknown microphone status {status!r}")
		logger.info("Browser reported microphone %s", status)
		self.status = status

	async def open(self) -> None:
		if self.status == self.DENIED:
			raise PermissionDenied("Could not access microphone. Please check permissions.")
		if self.status == self.UNAVAILABLE:
			raise DeviceUnavailable("No microphone is available.")
		self.is_open = True

	async def close(self) -> None:
		self.is_open = False


class AudioCapture:
	def __init__(self, device: CaptureDevice, *, mime_type: str = DEFAULT_MIME_TYPE) -> None:
		self._device = device
		self._default_mime = mime_type
		self._mime_type = mime_type
		self._chunks: List[bytes] = []
		self._active = False

	@property
	def active(self) -> bool:
		return self._active

	async def start(self, mime_type: Optional[str] = None) -> None:
		"""Acquire the device and begin collecting chunks.

		Raises PermissionDenied or DeviceUnavailable from the device; nothing
		changes when it does.
		"""
		if self._active:
			raise InvalidTransition("audio capture is already running")
		await self._device.open()
		self._chunks = []
		self._mime_type = mime_type or self._default_mime
		self._active = True

	def push(self, chunk: bytes) -> bool:
		if not self._active:
			logger.debug("Dropping %d byte chunk received while not recording", len(chunk or b""))
			return False
		if not chunk:
			return False
		self._chunks.append(bytes(chunk))
		return True

	async def stop(self) -> AudioBlob:
		"""Join the collected chunks into one blob and release the device."""
		if not self._active:
			raise InvalidTransition("audio capture is not running")
		blob = AudioBlob(b"".join(self._chunks), self._mime_type)
		self._chunks = []
		self._active = False
		try:
			await self._device.close()
		except Exception:
			logger.exception("Failed to release capture device")
		return blob
