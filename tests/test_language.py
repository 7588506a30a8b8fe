import pytest

from language_buddy.language import classify, japanese_ratio
from language_buddy.schemas import Language


def test_empty_text_is_english():
	assert classify("") == Language.english


@pytest.mark.parametrize("text", [
	"こんにちは",
	"カタカナ",
	"日本語を勉強しています。",
	"ｶﾀｶﾅ",
])
def test_japanese_script(text):
	assert classify(text) == Language.japanese


@pytest.mark.parametrize("text", [
	"hello",
	"How do you say thank you?",
	"12345 !?",
])
def test_latin_script(text):
	assert classify(text) == Language.english


def test_exactly_thirty_percent_stays_english():
	# 3 of 10 characters are Japanese
	text = "あいうabcdefg"
	assert len(text) == 10
	assert classify(text) == Language.english


def test_just_over_thirty_percent_is_japanese():
	# 4 of 10 characters are Japanese
	text = "あいうえabcdef"
	assert classify(text) == Language.japanese


def test_mixed_sentence_with_mostly_english():
	assert classify("I like sushi (すし) a lot") == Language.english


def test_ideographic_punctuation_counts():
	assert classify("「」。、") == Language.japanese


def test_japanese_ratio():
	assert japanese_ratio("") == 0.0
	assert japanese_ratio("hello") == 0.0
	assert japanese_ratio("ねこ") == 1.0
	assert japanese_ratio("ab猫ね") == 0.5


@pytest.mark.parametrize("japanese,latin", [(3, 7), (6, 14), (9, 21), (30, 70)])
def test_thirty_percent_boundary_at_any_length(japanese, latin):
	assert classify("あ" * japanese + "a" * latin) == Language.english
	assert classify("あ" * (japanese + 1) + "a" * (latin - 1)) == Language.japanese
