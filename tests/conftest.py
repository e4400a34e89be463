import asyncio
import copy
import json
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError
from redis.exceptions import ConnectionError as RedisConnectionError

from health_analytics.consumers.bus import BusMessage
from health_analytics.exceptions import BusFailure
from health_analytics.repositories import entity_repository


def _matches(document: dict, query: dict) -> bool:
    for field, condition in query.items():
        value = document.get(field)
        if isinstance(condition, dict):
            if "$gte" in condition and (value is None or value < condition["$gte"]):
                return False
            if "$lt" in condition and (value is None or value >= condition["$lt"]):
                return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, documents: list[dict], delay: float = 0):
        self._documents = documents
        self._delay = delay
        self.closed = False

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        for document in self._documents:
            yield copy.deepcopy(document)


class FakeCollection:
    """In-memory stand-in for an AsyncCollection; only what repositories call."""

    def __init__(self, name: str):
        self.name = name
        self.documents: dict = {}
        self.fail_with: Exception | None = None
        self.delay: float = 0
        self.cursors: list[FakeCursor] = []

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def insert_one(self, document: dict):
        self._check()
        if document["_id"] in self.documents:
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
        self.documents[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query: dict):
        self._check()
        for document in self.documents.values():
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def update_one(self, query: dict, update: dict):
        self._check()
        for document in self.documents.values():
            if _matches(document, query):
                document.update(copy.deepcopy(update["$set"]))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict):
        self._check()
        for key, document in list(self.documents.items()):
            if _matches(document, query):
                del self.documents[key]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def find(self, query: dict):
        self._check()
        matched = [document for document in self.documents.values() if _matches(document, query)]
        cursor = FakeCursor(matched, delay=self.delay)
        self.cursors.append(cursor)
        return cursor

    def seed(self, document: dict) -> None:
        self.documents[document["_id"]] = copy.deepcopy(document)


class FakeDatabase:
    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakePipeline:
    def __init__(self, redis):
        self._redis = redis
        self._ops: list[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def sadd(self, key: str, *members: str):
        self._ops.append(("sadd", key, members))
        return self

    def zadd(self, key: str, mapping: dict):
        self._ops.append(("zadd", key, mapping))
        return self

    def set(self, key: str, value: str):
        self._ops.append(("set", key, value))
        return self

    async def execute(self):
        if self._redis.fail:
            raise RedisConnectionError("Connection refused")
        for op, key, arg in self._ops:
            if op == "sadd":
                self._redis.sets.setdefault(key, set()).update(arg)
            elif op == "zadd":
                self._redis.sorted_sets.setdefault(key, {}).update(arg)
            else:
                self._redis.store[key] = arg
        return [True] * len(self._ops)


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.sets: dict[str, set] = {}
        self.sorted_sets: dict[str, dict] = {}
        self.fail = False
        self.pipeline_calls: list[bool] = []

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        self.pipeline_calls.append(transaction)
        return FakePipeline(self)


class FakeMessageSource:
    """
    Scripted bus: hands out queued messages, then raises BusFailure
    (or blocks forever when ``block_when_empty`` is set).
    """

    def __init__(self, messages: list[BusMessage] | None = None, block_when_empty: bool = False):
        self.messages = list(messages or [])
        self.committed: list[BusMessage] = []
        self.block_when_empty = block_when_empty
        self.fail_commit = False

    async def fetch(self) -> BusMessage:
        if self.messages:
            return self.messages.pop(0)
        if self.block_when_empty:
            await asyncio.Event().wait()
        raise BusFailure("bus closed", operation="fetch")

    async def commit(self, message: BusMessage) -> None:
        if self.fail_commit:
            raise BusFailure("commit rejected", operation="commit")
        self.committed.append(message)


class FakeNotifier:
    def __init__(self):
        self.submitted: list[tuple[str, str]] = []

    def submit(self, user_id: str, message: str) -> bool:
        self.submitted.append((user_id, message))
        return True


def make_message(key: str | None, body: dict | bytes, offset: int = 0, topic: str = "topic") -> BusMessage:
    value = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return BusMessage(topic=topic, partition=0, offset=offset, key=key, value=value)


class FrozenClock(datetime):
    current = datetime(2024, 1, 5, 10, 30, tzinfo=UTC)

    @classmethod
    def now(cls, tz=None):
        return cls.current


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_notifier():
    return FakeNotifier()


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pin record timestamps written by repositories; set ``.current`` to move time."""
    monkeypatch.setattr(FrozenClock, "current", datetime(2024, 1, 5, 10, 30, tzinfo=UTC))
    monkeypatch.setattr(entity_repository, "datetime", FrozenClock)
    return FrozenClock


@pytest.fixture
def store_down():
    return ServerSelectionTimeoutError("No servers available")


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def source_factory():
    return FakeMessageSource
