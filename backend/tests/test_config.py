"""
Tests for environment-driven settings.
"""
from jobboard.config import Settings


def test_defaults(monkeypatch):
    for name in ("GEMINI_API_KEY", "API_KEY", "CONFIDENCE_THRESHOLD", "DEFAULT_LOCATION"):
        monkeypatch.delenv(name, raising=False)
    
    settings = Settings(_env_file=None)
    
    assert settings.gemini_api_key is None
    assert settings.confidence_threshold == 0.7
    assert settings.default_location == "Uganda"
    assert settings.ingest_queue_size == 100


def test_api_key_alias(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "from-api-key")
    
    assert Settings(_env_file=None).gemini_api_key == "from-api-key"


def test_overrides_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("CONFIDENCE_THRESHOLD", "0.85")
    monkeypatch.setenv("DEFAULT_LOCATION", "Kenya")
    
    settings = Settings(_env_file=None)
    
    assert settings.gemini_api_key == "abc"
    assert settings.confidence_threshold == 0.85
    assert settings.default_location == "Kenya"
