import pytest
from pydantic import ValidationError

from trainer.core.config import Settings
from trainer.main import create_app


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.WORKERS == 1
    assert settings.PROGRESS_BACKEND == "memory"
    assert settings.DEBUG is False


def test_several_workers_need_the_redis_backend():
    with pytest.raises(ValidationError, match="PROGRESS_BACKEND=redis"):
        Settings(_env_file=None, WORKERS=4)

    settings = Settings(_env_file=None, WORKERS=4, PROGRESS_BACKEND="redis")
    assert settings.WORKERS == 4


def test_several_workers_from_environment(monkeypatch):
    monkeypatch.setenv("WORKERS", "2")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

    monkeypatch.setenv("PROGRESS_BACKEND", "redis")
    assert Settings(_env_file=None).WORKERS == 2


def test_cors_origins_accept_comma_list_and_json(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://a.test", "http://b.test"]

    monkeypatch.setenv("CORS_ORIGINS", '["http://c.test"]')
    assert Settings(_env_file=None).CORS_ORIGINS == ["http://c.test"]


def test_log_level_is_upper_cased():
    assert Settings(_env_file=None, LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_debug_flag_reaches_the_app(catalog_dir):
    assert create_app(Settings(_env_file=None, CATALOG_DIR=catalog_dir, DEBUG=True)).debug is True
    assert create_app(Settings(_env_file=None, CATALOG_DIR=catalog_dir)).debug is False
