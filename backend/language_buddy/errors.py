"""Typed failures reported by the Language Buddy core.

Nothing raised by a collaborator or a store leaves a component untyped: callers
either get a value back or one of the exceptions below, which carry a
human-readable ``detail`` suitable for showing to the learner.
"""

from __future__ import annotations


class BuddyError(Exception):
	code = "error"

	def __init__(self, detail: str = "") -> None:
		super().__init__(detail)
		self.detail = detail


class InvalidInput(BuddyError):
	"""A required field was empty or otherwise malformed."""
	code = "invalid_input"


class IndexOutOfRange(InvalidInput):
	code = "index_out_of_range"


class InvalidTransition(BuddyError):
	"""The session is not in a state that allows the requested operation."""
	code = "invalid_transition"


class StorageError(BuddyError):
	code = "storage_error"


class CollaboratorError(BuddyError):
	code = "collaborator_error"


class TranscriptionFailed(CollaboratorError):
	code = "transcription_failed"


class ReplyGenerationFailed(CollaboratorError):
	code = "reply_generation_failed"


class SynthesisFailed(CollaboratorError):
	code = "synthesis_failed"


class CaptureError(BuddyError):
	code = "capture_error"


class PermissionDenied(CaptureError):
	code = "permission_denied"


class DeviceUnavailable(CaptureError):
	code = "device_unavailable"
