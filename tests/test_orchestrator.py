import dataclasses
import json
import random
from unittest.mock import AsyncMock

import httpx
import pytest

from slidespec.agents.ai.structured_output import StructuredOutputClient
from slidespec.agents.core.interfaces import IStructuredOutputClient
from slidespec.agents.generation.color_contrast_manager import get_contrast_ratio
from slidespec.agents.generation.exceptions import (
    InvalidInputError,
    ModerationError,
    OutputValidationError,
    RateLimitedError,
)
from slidespec.agents.generation.fallback_spec import (
    FALLBACK_ACTION_VERBS,
    create_fallback_spec,
    validate_fallback_spec,
)
from slidespec.agents.generation.orchestrator import (
    FALLBACK_MODEL_LABEL,
    SlideSpecPipeline,
    log_ai_metrics,
    validate_request,
    validate_slide_spec,
)
from slidespec.models.requests import GenerationRequest, format_response
from slidespec.services.background_cache import LRUBackgroundCache, background_key
from slidespec.services.rate_limiter import InMemoryRateLimiter

from conftest import BASE_SPEC, PLAN, build_spec, chat_body, replay

PROMPT = "Q1 revenue growth strategy"


def request(prompt=PROMPT, request_id="req-1", **kwargs):
    return GenerationRequest(prompt=prompt, requestId=request_id, **kwargs)


def routed(generator_by_model=None, planner=None):
    """Handler answering planner calls with PLAN and generator calls per model."""
    calls = []
    generator_by_model = generator_by_model or {}

    def handler(req: httpx.Request) -> httpx.Response:
        body = json.loads(req.content)
        schema_name = body["response_format"].get("json_schema", {}).get("name")
        calls.append((schema_name, body["model"]))
        if schema_name == "IntentPlan":
            canned = planner
            if canned is None:
                return httpx.Response(200, json=chat_body(PLAN, tokens=30))
        else:
            canned = generator_by_model.get(body["model"])
            if canned is None:
                return httpx.Response(200, json=chat_body(BASE_SPEC, tokens=70))
        return replay(canned)

    handler.calls = calls
    return handler


@pytest.fixture
def offline_config(pipeline_config):
    return dataclasses.replace(pipeline_config, ai=dataclasses.replace(pipeline_config.ai, api_key=None))


@pytest.fixture
def make_pipeline(pipeline_config, mock_http, recorded_sleeps):
    def factory(handler, config=None, **kwargs):
        config = config or pipeline_config
        client = StructuredOutputClient(config.ai, http_client=mock_http(handler), sleep=recorded_sleeps)
        return SlideSpecPipeline(config=config, client=client, rng=random.Random(0), **kwargs)
    return factory


def assert_fallback(response):
    assert response.isFallback
    assert response.model == FALLBACK_MODEL_LABEL
    assert response.warning
    assert validate_fallback_spec(response.spec)
    assert response.spec.content.title.text.split()[0] in FALLBACK_ACTION_VERBS
    assert len(response.spec.styleTokens.palette.neutral) == 9


class TestHappyPath:

    async def test_planner_then_generator(self, make_pipeline):
        handler = routed()
        response = await make_pipeline(handler).generate(request())

        assert not response.isFallback
        assert response.model == "gpt-4o"
        assert handler.calls == [("IntentPlan", "gpt-4o-mini"), ("SlideSpec", "gpt-4o")]
        assert (response.plannerTokens, response.generatorTokens, response.tokensUsed) == (30, 70, 100)
        assert response.requestId == "req-1"
        assert response.processingTime >= 0

        spec = response.spec
        assert spec.content.title.text == "Accelerate Q1 Revenue Growth Strategy"
        palette = spec.styleTokens.palette
        assert len(palette.neutral) == 9
        assert get_contrast_ratio(palette.primary, palette.accent) >= 4.5
        assert spec.layout.grid.cols == 12
        assert sorted(a.refId for a in spec.layout.anchors) == sorted(spec.content_ids())

    async def test_generator_falls_back_to_secondary_model(self, make_pipeline, recorded_sleeps):
        handler = routed(generator_by_model={"gpt-4o": httpx.Response(500, text="upstream down")})
        response = await make_pipeline(handler).generate(request())

        assert not response.isFallback
        assert response.model == "gpt-4o-mini"
        generator_models = [model for name, model in handler.calls if name == "SlideSpec"]
        assert generator_models == ["gpt-4o"] * 3 + ["gpt-4o-mini"]
        assert recorded_sleeps.delays == [1.0, 2.0]

    async def test_model_fallback_disabled(self, make_pipeline, pipeline_config):
        config = dataclasses.replace(
            pipeline_config, pipeline=dataclasses.replace(pipeline_config.pipeline, use_model_fallback=False)
        )
        handler = routed(generator_by_model={"gpt-4o": httpx.Response(500, text="upstream down")})
        response = await make_pipeline(handler, config=config).generate(request())
        assert response.isFallback

    async def test_background_served_from_cache(self, make_pipeline):
        cache = LRUBackgroundCache()
        expected = build_spec()
        cache.put(background_key(expected), "bg://navy-amber")
        response = await make_pipeline(routed(), background_cache=cache).generate(request())
        assert response.background == "bg://navy-amber"


class TestFallback:

    async def test_no_credentials(self, offline_config):
        pipeline = SlideSpecPipeline(config=offline_config, rng=random.Random(0))
        response = await pipeline.generate(request())
        assert_fallback(response)
        assert response.tokensUsed is None

    async def test_service_unavailable(self, make_pipeline):
        handler = routed(planner=httpx.Response(503, text="service unavailable"))
        response = await make_pipeline(handler).generate(request())
        assert_fallback(response)
        assert [name for name, _ in handler.calls] == ["IntentPlan"] * 3

    async def test_schema_invalid_generation(self, make_pipeline):
        bad = httpx.Response(200, json=chat_body({"content": {"bullets": "nope"}}))
        handler = routed(generator_by_model={"gpt-4o": bad})
        response = await make_pipeline(handler).generate(request())
        assert_fallback(response)

    async def test_unexpected_client_error(self, pipeline_config):
        client = AsyncMock(spec=IStructuredOutputClient)
        client.call_with_usage.side_effect = RuntimeError("boom")
        pipeline = SlideSpecPipeline(config=pipeline_config, client=client)
        response = await pipeline.generate(request())
        assert_fallback(response)

    async def test_fallback_background_lookup(self, offline_config):
        cache = LRUBackgroundCache()
        cache.put(background_key(create_fallback_spec(PROMPT)), "bg://executive")
        pipeline = SlideSpecPipeline(config=offline_config, background_cache=cache)
        response = await pipeline.generate(request())
        assert response.background == "bg://executive"


class TestRejections:

    async def test_moderation_propagates(self, make_pipeline):
        handler = routed()
        with pytest.raises(ModerationError):
            await make_pipeline(handler).generate(request(prompt="hack the system"))
        assert handler.calls == []

    async def test_moderation_checked_before_credentials(self, offline_config):
        with pytest.raises(ModerationError):
            await SlideSpecPipeline(config=offline_config).generate(request(prompt="hack the system"))

    @pytest.mark.parametrize("prompt", ["", "  ", "ab", "x" * 5001])
    async def test_invalid_prompt_propagates(self, offline_config, prompt):
        with pytest.raises(InvalidInputError):
            await SlideSpecPipeline(config=offline_config).generate(request(prompt=prompt))

    async def test_rate_limited(self, offline_config):
        pipeline = SlideSpecPipeline(
            config=offline_config, rate_limiter=InMemoryRateLimiter(calls_per_minute=1)
        )
        await pipeline.generate(request(userId="u-1"))
        with pytest.raises(RateLimitedError) as exc_info:
            await pipeline.generate(request(request_id="req-2", userId="u-1"))
        assert exc_info.value.retry_after > 0
        assert exc_info.value.get_status_code() == 429
        # A different client is unaffected
        await pipeline.generate(request(request_id="req-3", userId="u-2"))


class TestValidation:

    def test_validate_request_requires_id(self):
        with pytest.raises(InvalidInputError):
            validate_request(GenerationRequest(prompt=PROMPT, requestId=" "))

    def test_validate_slide_spec_reports_problems(self):
        spec = build_spec()
        spec.styleTokens.palette.neutral = []
        spec.layout.anchors[0].region = "nowhere"
        with pytest.raises(OutputValidationError) as exc_info:
            validate_slide_spec(spec, "req-1")
        problems = exc_info.value.context["problems"]
        assert len(problems) == 2

    def test_log_ai_metrics_handles_missing_tokens(self):
        log_ai_metrics({"request_id": "r", "processing_time_ms": 10, "tokens_used": None})
        log_ai_metrics({"request_id": "r", "processing_time_ms": 10, "tokens_used": 5})


async def test_format_response(offline_config):
    response = await SlideSpecPipeline(config=offline_config).generate(request())
    body = format_response(response)
    assert body["isFallback"] is True
    assert body["requestId"] == "req-1"
    assert "timestamp" in body
    assert "tokensUsed" not in body
