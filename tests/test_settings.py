import pytest
from pydantic import ValidationError
from src.contextengine.settings import EngineSettings, RetrievalConfig, load_config, save_config


def test_retrieval_config_defaults():
    c = RetrievalConfig()
    assert c.brand == "vitamix"
    assert c.max_top_k == 50
    assert c.boost_per_term == 0.15
    assert c.max_boost == 0.6
    assert c.conflict_penalty == 0.7
    assert c.max_context_tokens is None


def test_load_config_from_yaml(tmp_path):
    content = """
brand: acme
max_per_source: 3
freshness_floor: 0.9
"""
    path = tmp_path / "retrieval.yaml"
    path.write_text(content)
    config = load_config(path)
    assert config.brand == "acme"
    assert config.max_per_source == 3
    assert config.freshness_floor == 0.9
    assert config.max_per_category == 3


def test_save_and_reload_config(tmp_path):
    path = tmp_path / "nested" / "retrieval.yaml"
    save_config(RetrievalConfig(min_results=7, max_context_tokens=500), path)
    reloaded = load_config(path)
    assert reloaded.min_results == 7
    assert reloaded.max_context_tokens == 500


def test_missing_file_returns_defaults(tmp_path):
    assert load_config(tmp_path / "nope.yaml") == RetrievalConfig()


def test_invalid_yaml_returns_defaults(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("brand: [unclosed")
    assert load_config(path) == RetrievalConfig()


def test_invalid_values_return_defaults(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("max_top_k: lots\n")
    assert load_config(path) == RetrievalConfig()


def test_non_mapping_yaml_returns_defaults(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    assert load_config(path) == RetrievalConfig()


def test_engine_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CONTEXT_ENGINE_INDEX_URL", "https://index.internal")
    monkeypatch.setenv("CONTEXT_ENGINE_API_KEY", "secret")
    monkeypatch.setenv("CONTEXT_ENGINE_CONFIG", str(tmp_path / "r.yaml"))
    settings = EngineSettings()
    assert settings.index_url == "https://index.internal"
    assert settings.api_key == "secret"
    assert settings.config_path == tmp_path / "r.yaml"


def test_engine_settings_rejects_bad_log_level(monkeypatch):
    monkeypatch.setenv("CONTEXT_ENGINE_LOG_LEVEL", "LOUD")
    with pytest.raises(ValidationError):
        EngineSettings()
