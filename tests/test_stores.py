import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from language_buddy.db import Base
from language_buddy.errors import IndexOutOfRange, InvalidInput
from language_buddy.schemas import Language, Level, Message, Profile, Role
from language_buddy.storage import MemoryStore, SqlStore
from language_buddy.stores import (
	HISTORY_KEY,
	PROFILE_KEY,
	VOCABULARY_KEY,
	HistoryStore,
	ProfileStore,
	VocabularyStore,
)


class StepClock:
	def __init__(self):
		self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

	def __call__(self):
		self.now = self.now + timedelta(minutes=1)
		return self.now


@pytest.fixture
def sql_store():
	engine = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
	)
	Base.metadata.create_all(bind=engine)
	return SqlStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


# ---------------- ProfileStore ----------------

def test_missing_profile_loads_default(store):
	profile = ProfileStore(store).load()
	assert profile == Profile()
	assert profile.native_language == "english"
	assert profile.level == Level.beginner
	assert profile.interests == []


def test_profile_round_trip(store):
	profiles = ProfileStore(store)
	saved = Profile(native_language="spanish", level=Level.advanced, interests=["anime", "cooking"])
	profiles.save(saved)
	assert profiles.load() == saved
	stored = json.loads(store.data[PROFILE_KEY])
	assert stored == {"nativeLanguage": "spanish", "level": "advanced", "interests": ["anime", "cooking"]}


def test_profile_save_overwrites(store):
	profiles = ProfileStore(store)
	profiles.save(Profile(level=Level.advanced, interests=["music"]))
	profiles.save(Profile(level=Level.intermediate))
	assert profiles.load() == Profile(level=Level.intermediate)


@pytest.mark.parametrize("raw", ["{not json", "[]", '{"level": "expert"}'])
def test_malformed_profile_falls_back_to_default(raw):
	assert ProfileStore(MemoryStore({PROFILE_KEY: raw})).load() == Profile()


def test_profile_interests_are_trimmed_and_unique():
	profile = Profile(interests=[" anime ", "anime", "", "travel"])
	assert profile.interests == ["anime", "travel"]


# ---------------- HistoryStore ----------------

def test_history_round_trip(store):
	history = HistoryStore(store)
	messages = [
		Message.system("hi"),
		Message(role=Role.user, content="こんにちは", detected_language=Language.japanese),
	]
	history.save(messages)
	assert history.load() == messages
	stored = json.loads(store.data[HISTORY_KEY])
	assert stored[0] == {"role": "system", "content": "hi"}
	assert stored[1]["detectedLanguage"] == "japanese"


def test_history_missing_or_malformed_loads_nothing():
	assert HistoryStore(MemoryStore()).load() is None
	assert HistoryStore(MemoryStore({HISTORY_KEY: "oops"})).load() is None
	assert HistoryStore(MemoryStore({HISTORY_KEY: "[]"})).load() is None


def test_history_erase(store):
	history = HistoryStore(store)
	history.save([Message.system("hi")])
	history.erase()
	assert HISTORY_KEY not in store.data


# ---------------- VocabularyStore ----------------

def test_add_appends_new_item(store):
	clock = StepClock()
	vocab = VocabularyStore(store, clock=clock)
	item = vocab.add(" 猫 ", " cat ", " neko ")
	assert item.japanese == "猫"
	assert item.english == "cat"
	assert item.romaji == "neko"
	assert item.review_count == 0
	assert item.last_reviewed is None
	assert item.date_added == clock.now
	assert vocab.list() == [item]
	stored = json.loads(store.data[VOCABULARY_KEY])
	assert stored[0]["reviewCount"] == 0
	assert "dateAdded" in stored[0]


def test_add_without_romaji(store):
	item = VocabularyStore(store).add("水", "water", "   ")
	assert item.romaji is None


@pytest.mark.parametrize("japanese,english", [("", "meaning"), ("   ", "meaning"), ("犬", ""), ("犬", "  ")])
def test_add_rejects_blank_fields_without_writing(store, japanese, english):
	vocab = VocabularyStore(store)
	with pytest.raises(InvalidInput):
		vocab.add(japanese, english)
	assert vocab.list() == []
	assert store.writes == 0
	assert VOCABULARY_KEY not in store.data


def test_review_twice(store):
	clock = StepClock()
	vocab = VocabularyStore(store, clock=clock)
	vocab.add("本", "book")
	vocab.review(0)
	second = vocab.review(0)
	assert second.review_count == 2
	assert second.last_reviewed == clock.now
	reloaded = VocabularyStore(store).list()[0]
	assert reloaded.review_count == 2
	assert reloaded.last_reviewed == clock.now


def test_remove(store):
	vocab = VocabularyStore(store)
	vocab.add("一", "one")
	vocab.add("二", "two")
	removed = vocab.remove(0)
	assert removed.english == "one"
	assert [i.english for i in vocab.list()] == ["two"]
	assert [i.english for i in VocabularyStore(store).list()] == ["two"]


@pytest.mark.parametrize("index", [-1, 1, 5])
def test_out_of_range_index(store, index):
	vocab = VocabularyStore(store)
	vocab.add("一", "one")
	writes = store.writes
	with pytest.raises(IndexOutOfRange):
		vocab.review(index)
	with pytest.raises(IndexOutOfRange):
		vocab.remove(index)
	assert store.writes == writes
	assert len(vocab.list()) == 1


def test_malformed_vocabulary_starts_empty():
	store = MemoryStore({VOCABULARY_KEY: '[{"japanese": "猫"}]'})
	vocab = VocabularyStore(store)
	assert vocab.list() == []
	vocab.add("猫", "cat")
	assert len(json.loads(store.data[VOCABULARY_KEY])) == 1


# ---------------- SqlStore ----------------

def test_sql_store_get_set_delete(sql_store):
	assert sql_store.get("profile") is None
	sql_store.set("profile", '{"level": "beginner"}')
	sql_store.set("profile", '{"level": "advanced"}')
	assert sql_store.get("profile") == '{"level": "advanced"}'
	sql_store.delete("profile")
	assert sql_store.get("profile") is None
	# Deleting a missing key is fine
	sql_store.delete("profile")


def test_stores_survive_a_new_instance_on_sql(sql_store):
	VocabularyStore(sql_store).add("空", "sky", "sora")
	ProfileStore(sql_store).save(Profile(level=Level.intermediate))
	assert VocabularyStore(sql_store).list()[0].romaji == "sora"
	assert ProfileStore(sql_store).load().level == Level.intermediate
