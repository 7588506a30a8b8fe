from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class Role(str, Enum):
	system = "system"
	user = "user"
	assistant = "assistant"


class Language(str, Enum):
	english = "english"
	japanese = "japanese"


class Level(str, Enum):
	beginner = "beginner"
	intermediate = "intermediate"
	advanced = "advanced"


class _Record(BaseModel):
	# Stored JSON keeps the camelCase names the browser client used
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	def to_json(self) -> Dict[str, Any]:
		return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Message(_Record):
	"""One turn of the conversation. Never mutated after creation."""
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

	role: Role
	content: str
	detected_language: Optional[Language] = None

	@classmethod
	def system(cls, content: str) -> "Message":
		return cls(role=Role.system, content=content)


class Profile(_Record):
	native_language: str = "english"
	level: Level = Level.beginner
	interests: List[str] = Field(default_factory=list)

	@field_validator("interests")
	@classmethod
	def _ordered_unique(cls, value: List[str]) -> List[str]:
		seen: List[str] = []
		for raw in value:
			item = (raw or "").strip()
			if item and item not in seen:
				seen.append(item)
		return seen


class VocabularyItem(_Record):
	japanese: str
	english: str
	romaji: Optional[str] = None
	date_added: datetime
	review_count: int = Field(default=0, ge=0)
	last_reviewed: Optional[datetime] = None


MessageList = TypeAdapter(List[Message])
VocabularyList = TypeAdapter(List[VocabularyItem])
