from __future__ import annotations

import re

from .schemas import Language

# CJK punctuation, Hiragana, Katakana, fullwidth/halfwidth forms, CJK ideographs
_JAPANESE_CHARS = re.compile(r"[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\uff00-\uff9f\u4e00-\u9faf]")

# Share of Japanese-script characters above which text counts as Japanese
JAPANESE_THRESHOLD = 0.3


def japanese_ratio(text: str) -> float:
	if not text:
		return 0.0
	return len(_JAPANESE_CHARS.findall(text)) / len(text)


def classify(text: str) -> Language:
	"""Tag text as Japanese when more than 30% of its characters are Japanese script."""
	# Exactly 30% stays English
	if japanese_ratio(text or "") > JAPANESE_THRESHOLD:
		return Language.japanese
	return Language.english
