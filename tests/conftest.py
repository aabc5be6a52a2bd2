import json
import random

import fakeredis
import pytest
from fastapi.testclient import TestClient

from trainer.core.config import Settings
from trainer.main import create_app
from trainer.services.catalog_store import CatalogStore
from trainer.services.progress import MemoryProgressStore, RedisProgressStore, SessionProgress
from trainer.services.quiz_engine import QuizEngine

UBI_QUESTIONS = [
    {"id": "1", "question": "Capital of France?", "answers": [
        {"text": "Paris", "is_correct": True},
        {"text": "Berlin", "is_correct": False},
    ]},
    {"id": "2", "question": "2 + 2?", "answers": [
        {"text": "4", "is_correct": True},
        {"text": "5", "is_correct": False},
    ]},
]

SRC_QUESTIONS = [
    {"id": "a", "question": "Distress keyword?", "answers": [
        {"text": "MAYDAY", "is_correct": True},
        {"text": "PAN PAN", "is_correct": False},
        {"text": "SECURITE", "is_correct": False},
    ]},
    {"id": "b", "question": "DSC channel?", "answers": [
        {"text": "Kanal 70", "is_correct": True},
        {"text": "Kanal 16", "is_correct": False},
        {"text": "Kanal 10", "is_correct": False},
    ]},
    {"id": "c", "question": "Calling channel?", "answers": [
        {"text": "Kanal 16", "is_correct": True},
        {"text": "Kanal 70", "is_correct": False},
        {"text": "Kanal 72", "is_correct": False},
    ]},
]


def correct_text(raw_questions, question_id):
    for q in raw_questions:
        if q["id"] == question_id:
            return next(a["text"] for a in q["answers"] if a["is_correct"])
    raise KeyError(question_id)


def write_catalogs(directory, ubi=UBI_QUESTIONS, src=SRC_QUESTIONS):
    (directory / "UBI-Fragenkatalog.json").write_text(json.dumps(ubi), encoding="utf-8")
    (directory / "SRC-Fragenkatalog.json").write_text(json.dumps(src), encoding="utf-8")
    return directory


@pytest.fixture
def catalog_dir(tmp_path):
    return write_catalogs(tmp_path)


@pytest.fixture
def store(catalog_dir):
    return CatalogStore.load(catalog_dir)


@pytest.fixture
def engine(store):
    return QuizEngine(store, rng=random.Random(1234))


@pytest.fixture
def fake_redis():
    client = fakeredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        client.flushall()


@pytest.fixture(params=["memory", "redis"])
def backend(request, fake_redis):
    if request.param == "memory":
        return MemoryProgressStore()
    return RedisProgressStore(fake_redis, ttl=60, lock_timeout=10)


@pytest.fixture
def progress():
    return SessionProgress(MemoryProgressStore(), "session-1")


@pytest.fixture
def settings(catalog_dir):
    return Settings(
        _env_file=None,
        CATALOG_DIR=catalog_dir,
        RANDOM_SEED=7,
        SECRET_KEY="test-secret",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
