"""
Shared fixtures for the slidespec test-suite.
"""

import copy
import json
import os

# Keep real credentials out of the tests
os.environ.pop("AI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest

from slidespec.agents.generation.config import AIConfig, Config, LogConfig, PipelineConfig
from slidespec.models.slide_spec import SlideSpec


BASE_SPEC = {
    "meta": {"version": "1.0", "locale": "en-US", "theme": "Professional", "aspectRatio": "16:9"},
    "content": {
        "title": {"id": "title", "text": "Q1 Revenue Growth Strategy"},
        "subtitle": {"id": "subtitle", "text": "Where the next quarter's growth comes from"},
        "bullets": [
            {
                "id": "b1",
                "items": [
                    {"text": "Expand enterprise sales team", "level": 1},
                    {"text": "Launch partner channel in EMEA", "level": 1},
                ],
            }
        ],
        "callouts": [{"id": "c1", "text": "Pipeline is 2x last year", "variant": "success"}],
    },
    "layout": {
        "regions": [
            {"name": "header", "rowStart": 1, "colStart": 1, "rowSpan": 2, "colSpan": 12},
            {"name": "body", "rowStart": 3, "colStart": 1, "rowSpan": 6, "colSpan": 12},
        ],
        "anchors": [
            {"refId": "title", "region": "header", "order": 0},
            {"refId": "subtitle", "region": "header", "order": 1},
            {"refId": "b1", "region": "body", "order": 0},
            {"refId": "c1", "region": "body", "order": 1},
        ],
    },
    "styleTokens": {
        "palette": {
            "primary": "#1E3A8A",
            "accent": "#FBBF24",
            "neutral": [
                "#0F172A", "#1E293B", "#334155", "#475569", "#64748B",
                "#94A3B8", "#CBD5E1", "#E2E8F0", "#F8FAFC",
            ],
        },
    },
}

PLAN = {
    "intent": "action",
    "audience": "executives",
    "tone": "executive",
    "slidePattern": "bar-chart",
    "visualPlan": "chart",
    "brandHints": [],
    "dataHints": ["Q1"],
}


def build_spec(**content_overrides) -> SlideSpec:
    data = copy.deepcopy(BASE_SPEC)
    data["content"].update(content_overrides)
    return SlideSpec.model_validate(data)


def chat_body(document, tokens: int = 42) -> dict:
    content = document if isinstance(document, str) else json.dumps(document)
    return {
        "id": "chatcmpl-test",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": tokens - 10, "total_tokens": tokens},
    }


@pytest.fixture
def spec_data():
    return copy.deepcopy(BASE_SPEC)


@pytest.fixture
def plan_data():
    return copy.deepcopy(PLAN)


@pytest.fixture
def ai_config():
    return AIConfig(
        api_key="sk-test-0123456789",
        base_url="https://llm.test/v1",
        primary_model="gpt-4o",
        fallback_model="gpt-4o-mini",
        planner_model="gpt-4o-mini",
        timeout_seconds=5.0,
        max_retries=3,
        retry_delay=1.0,
        max_response_bytes=200 * 1024,
        max_tokens=2500,
        top_p=0.9,
    )


@pytest.fixture
def pipeline_config(ai_config):
    return Config(
        ai=ai_config,
        pipeline=PipelineConfig(max_prompt_length=1200, rate_limit_per_minute=100,
                                background_cache_size=50, use_model_fallback=True),
        logging=LogConfig(level="WARNING", preview_chars=200, enable_metrics=True),
    )


@pytest.fixture
def recorded_sleeps():
    """Replacement for asyncio.sleep that records delays instead of waiting."""
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    fake_sleep.delays = delays
    return fake_sleep


@pytest.fixture
def mock_http():
    """Build an httpx.AsyncClient whose responses come from a handler list."""
    clients = []

    def factory(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory
    # AsyncClient over MockTransport holds no sockets; dropping the refs is enough
    clients.clear()


def replay(response: httpx.Response) -> httpx.Response:
    """Fresh copy of a canned response, so one template can answer many requests."""
    return httpx.Response(response.status_code, headers=response.headers, content=response.content)
