"""
Configuration management for the generation pipeline.

Values come from the environment (optionally a local .env file) with
defaults taken from agents.config.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from slidespec.agents import config as defaults

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class AIConfig:
    """Generative service configuration"""
    api_key: Optional[str] = field(default_factory=lambda: os.getenv("AI_API_KEY") or os.getenv("OPENAI_API_KEY"))
    base_url: str = field(default_factory=lambda: os.getenv("AI_BASE_URL", "https://api.openai.com/v1"))
    primary_model: str = field(default_factory=lambda: os.getenv("AI_MODEL_PRIMARY", defaults.PRIMARY_MODEL))
    fallback_model: Optional[str] = field(default_factory=lambda: os.getenv("AI_MODEL_FALLBACK", defaults.FALLBACK_MODEL))
    planner_model: str = field(default_factory=lambda: os.getenv("AI_MODEL_PLANNER", defaults.PLANNER_MODEL))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("AI_TIMEOUT", str(defaults.AI_REQUEST_TIMEOUT_SECONDS))))
    max_retries: int = field(default_factory=lambda: int(os.getenv("AI_MAX_RETRIES", str(defaults.AI_MAX_RETRIES))))
    retry_delay: float = field(default_factory=lambda: float(os.getenv("AI_RETRY_DELAY", str(defaults.AI_RETRY_BASE_DELAY_SECONDS))))
    max_response_bytes: int = field(default_factory=lambda: int(os.getenv("AI_MAX_RESPONSE_BYTES", str(defaults.MAX_RESPONSE_BYTES))))
    max_tokens: int = field(default_factory=lambda: int(os.getenv("AI_MAX_TOKENS", str(defaults.GENERATOR_MAX_TOKENS))))
    top_p: float = field(default_factory=lambda: float(os.getenv("AI_TOP_P", str(defaults.DEFAULT_TOP_P))))
    planner_temperature: float = defaults.PLANNER_TEMPERATURE
    generator_temperature: float = defaults.GENERATOR_TEMPERATURE

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


@dataclass
class PipelineConfig:
    """Limits applied around the two generative calls"""
    max_prompt_length: int = field(default_factory=lambda: int(os.getenv("MAX_PROMPT_LENGTH", str(defaults.DEFAULT_MAX_PROMPT_LENGTH))))
    rate_limit_per_minute: int = field(default_factory=lambda: int(os.getenv("RATE_LIMIT_MIN", str(defaults.RATE_LIMIT_PER_MINUTE))))
    background_cache_size: int = field(default_factory=lambda: int(os.getenv("BACKGROUND_CACHE_SIZE", str(defaults.BACKGROUND_CACHE_SIZE))))
    use_model_fallback: bool = field(default_factory=lambda: _env_bool("USE_MODEL_FALLBACK", "true"))


@dataclass
class ModerationConfig:
    """Thresholds for the content safety gate"""
    block_score: int = defaults.MODERATION_BLOCK_SCORE
    max_chars: int = defaults.MAX_MODERATION_CHARS
    max_word_repetition_ratio: float = defaults.MAX_WORD_REPETITION_RATIO
    min_entropy_bits: float = defaults.MIN_CHARACTER_ENTROPY_BITS


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    preview_chars: int = field(default_factory=lambda: int(os.getenv("LOG_PREVIEW_CHARS", "200")))
    enable_metrics: bool = field(default_factory=lambda: _env_bool("LOG_AI_METRICS", "true"))


@dataclass
class Config:
    """Master configuration"""
    ai: AIConfig = field(default_factory=AIConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    moderation: ModerationConfig = field(default_factory=ModerationConfig)
    logging: LogConfig = field(default_factory=LogConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization (credentials omitted)"""
        return {
            "ai": {
                "base_url": self.ai.base_url,
                "primary_model": self.ai.primary_model,
                "fallback_model": self.ai.fallback_model,
                "planner_model": self.ai.planner_model,
                "timeout_seconds": self.ai.timeout_seconds,
                "max_retries": self.ai.max_retries,
                "has_credentials": self.ai.has_credentials,
            },
            "pipeline": {
                "max_prompt_length": self.pipeline.max_prompt_length,
                "rate_limit_per_minute": self.pipeline.rate_limit_per_minute,
                "background_cache_size": self.pipeline.background_cache_size,
            },
            "moderation": {
                "block_score": self.moderation.block_score,
                "max_chars": self.moderation.max_chars,
            },
            "logging": {
                "level": self.logging.level,
            },
        }

    def validate(self) -> None:
        """Validate configuration values"""
        if self.ai.timeout_seconds <= 0:
            raise ValueError(f"AI timeout must be positive, got {self.ai.timeout_seconds}")
        if self.ai.max_retries < 1:
            raise ValueError(f"AI max_retries must be at least 1, got {self.ai.max_retries}")
        if not 0 < self.ai.top_p <= 1:
            raise ValueError(f"AI top_p must be in (0, 1], got {self.ai.top_p}")
        if self.pipeline.max_prompt_length < defaults.MIN_PROMPT_LENGTH:
            raise ValueError(f"max_prompt_length too small: {self.pipeline.max_prompt_length}")


@lru_cache()
def get_config() -> Config:
    """Get singleton configuration instance"""
    config = Config()
    config.validate()
    return config


def reset_config() -> None:
    """Drop the cached configuration (tests change the environment)"""
    get_config.cache_clear()
