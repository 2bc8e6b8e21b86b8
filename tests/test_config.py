import logging

import pytest

from slidespec.agents.generation.config import AIConfig, Config, PipelineConfig, get_config, reset_config
from slidespec.config.logging_config import apply_logging_config, get_logging_config


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestEnvironmentConfig:

    def test_defaults(self, monkeypatch):
        for name in ("AI_MODEL_PRIMARY", "AI_MODEL_FALLBACK", "AI_TIMEOUT", "AI_MAX_RETRIES", "RATE_LIMIT_MIN"):
            monkeypatch.delenv(name, raising=False)
        config = Config()
        assert config.ai.primary_model == "gpt-4o"
        assert config.ai.fallback_model == "gpt-4o-mini"
        assert config.ai.timeout_seconds == 30.0
        assert config.ai.max_retries == 3
        assert config.pipeline.rate_limit_per_minute == 100
        assert config.moderation.block_score == 2

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AI_MODEL_PRIMARY", "gpt-4.1")
        monkeypatch.setenv("AI_TIMEOUT", "12.5")
        monkeypatch.setenv("RATE_LIMIT_MIN", "7")
        monkeypatch.setenv("USE_MODEL_FALLBACK", "false")
        config = Config()
        assert config.ai.primary_model == "gpt-4.1"
        assert config.ai.timeout_seconds == 12.5
        assert config.pipeline.rate_limit_per_minute == 7
        assert config.pipeline.use_model_fallback is False

    def test_api_key_falls_back_to_openai_variable(self, monkeypatch):
        monkeypatch.delenv("AI_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-openai-var")
        assert AIConfig().api_key == "sk-from-openai-var"
        assert AIConfig().has_credentials

    def test_no_credentials(self, monkeypatch):
        monkeypatch.delenv("AI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert not AIConfig().has_credentials

    def test_to_dict_omits_key(self, monkeypatch):
        monkeypatch.setenv("AI_API_KEY", "sk-secret-value-123")
        data = Config().to_dict()
        assert data["ai"]["has_credentials"] is True
        assert "sk-secret-value-123" not in repr(data)

    @pytest.mark.parametrize("ai,pipeline", [
        (AIConfig(timeout_seconds=0), PipelineConfig()),
        (AIConfig(max_retries=0), PipelineConfig()),
        (AIConfig(top_p=1.5), PipelineConfig()),
        (AIConfig(), PipelineConfig(max_prompt_length=1)),
    ])
    def test_validate_rejects_bad_values(self, ai, pipeline):
        with pytest.raises(ValueError):
            Config(ai=ai, pipeline=pipeline).validate()

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestLoggingConfig:

    @pytest.mark.parametrize("env,debug,profile,level", [
        ("production", "false", "production", "WARNING"),
        ("development", "false", "development", "INFO"),
        ("production", "true", "debug", "DEBUG"),
    ])
    def test_profiles(self, monkeypatch, env, debug, profile, level):
        monkeypatch.setenv("ENV", env)
        monkeypatch.setenv("DEBUG", debug)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        config = get_logging_config()
        assert config["environment"] == profile
        assert config["default_level"] == level

    def test_level_override(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        monkeypatch.setenv("LOG_LEVEL", "error")
        assert get_logging_config()["default_level"] == "ERROR"

    def test_production_suppresses_pipeline_chatter(self, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        monkeypatch.setenv("DEBUG", "false")
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            config = apply_logging_config()
            for module in config["suppress_modules"]:
                assert logging.getLogger(module).level == logging.WARNING
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
            for module in config["suppress_modules"]:
                logging.getLogger(module).setLevel(logging.NOTSET)
