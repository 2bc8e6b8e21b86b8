"""
Slide spec pipeline orchestrator.

sanitize -> moderate -> plan -> generate -> enforce rules -> enhance -> validate

Rejections (bad input, moderation, rate limiting) propagate to the caller.
Every other failure after the safety gate is logged with its classification and
answered with the fallback specification, so callers never see a raw
transport error.
"""

import random
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from slidespec.agents.ai.structured_output import StructuredOutputClient
from slidespec.agents.config import MAX_REQUEST_PROMPT_LENGTH, NEUTRAL_RAMP_STEPS
from slidespec.agents.core.interfaces import IBackgroundCache, IRateLimiter, IStructuredOutputClient
from slidespec.agents.generation.color_contrast_manager import is_valid_hex
from slidespec.agents.generation.config import Config, get_config
from slidespec.agents.generation.content_generator import ContentGenerator
from slidespec.agents.generation.enhancer import enhance_slide_spec
from slidespec.agents.generation.exceptions import (
    AIGenerationError,
    GenerationError,
    InvalidInputError,
    OutputValidationError,
    ProcessingError,
    RateLimitedError,
    classify_error,
    is_rejection,
)
from slidespec.agents.generation.fallback_spec import create_fallback_spec
from slidespec.agents.generation.planner import IntentPlanner
from slidespec.agents.generation.rules import enforce_slide_spec_rules
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.requests import GenerationRequest, GenerationResponse
from slidespec.models.slide_spec import SlideSpec
from slidespec.services.background_cache import background_key
from slidespec.services.content_safety import ContentSafetyGate
from slidespec.services.prompt_sanitizer import sanitize_prompt
from slidespec.setup_logging_optimized import get_logger
from slidespec.utils.logs import elapsed_ms, redact_preview

logger = get_logger(__name__)

FALLBACK_MODEL_LABEL = "fallback"
FALLBACK_WARNING = "AI generation unavailable; returned a fallback slide"

R = TypeVar("R")


def validate_request(request: GenerationRequest) -> None:
    if not request.requestId or not request.requestId.strip():
        raise InvalidInputError("requestId is required")
    if not isinstance(request.prompt, str) or not request.prompt.strip():
        raise InvalidInputError("Prompt is required", request_id=request.requestId)
    if len(request.prompt) > MAX_REQUEST_PROMPT_LENGTH:
        raise InvalidInputError(
            f"Prompt too long (max {MAX_REQUEST_PROMPT_LENGTH} chars)",
            context={"length": len(request.prompt)},
            request_id=request.requestId,
        )


def validate_slide_spec(spec: SlideSpec, request_id: Optional[str] = None) -> None:
    """Final structural check before the spec leaves the pipeline."""
    problems = []
    if not spec.content.title.text.strip():
        problems.append("title is empty")
    if spec.styleTokens is None:
        problems.append("styleTokens missing")
    else:
        palette = spec.styleTokens.palette
        if not (is_valid_hex(palette.primary) and is_valid_hex(palette.accent)):
            problems.append("primary/accent must be #RRGGBB")
        if len(palette.neutral) != NEUTRAL_RAMP_STEPS:
            problems.append(f"neutral ramp has {len(palette.neutral)} entries")
    region_names = {r.name for r in spec.layout.regions}
    dangling = [a.refId for a in spec.layout.anchors if a.region not in region_names]
    if dangling:
        problems.append(f"anchors reference missing regions: {dangling}")
    if problems:
        raise OutputValidationError(
            "Slide spec failed output validation",
            context={"problems": problems},
            request_id=request_id,
        )


def log_ai_metrics(metrics: Dict[str, Any]) -> None:
    tokens = metrics.get("tokens_used")
    per_token = None
    if tokens:
        per_token = round(metrics["processing_time_ms"] / tokens, 2)
    logger.info(f"AI performance metrics: {metrics} avg_ms_per_token={per_token}")


class SlideSpecPipeline:
    """Single entry point: GenerationRequest -> GenerationResponse."""

    def __init__(
        self,
        config: Optional[Config] = None,
        client: Optional[IStructuredOutputClient] = None,
        rate_limiter: Optional[IRateLimiter] = None,
        background_cache: Optional[IBackgroundCache] = None,
        safety_gate: Optional[ContentSafetyGate] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or get_config()
        self.client = client or StructuredOutputClient(self.config.ai)
        self.planner = IntentPlanner(self.client, self.config.ai)
        self.generator = ContentGenerator(self.client, self.config.ai)
        self.rate_limiter = rate_limiter
        self.background_cache = background_cache
        self.safety_gate = safety_gate or ContentSafetyGate(self.config.moderation)
        self.rng = rng

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        start = time.perf_counter()
        request_id = request.requestId
        validate_request(request)

        if self.rate_limiter is not None:
            allowed, retry_after = await self.rate_limiter.check(request.client_key)
            if not allowed:
                raise RateLimitedError(
                    "Too many requests", retry_after=retry_after, request_id=request_id
                )

        sanitized = sanitize_prompt(
            request.prompt, self.config.pipeline.max_prompt_length, request_id
        )
        self.safety_gate.enforce(sanitized, request_id)

        if not self.config.ai.has_credentials:
            logger.warning(f"[{request_id}] No AI API key configured, serving fallback spec")
            return self._fallback(sanitized, request_id, start)

        try:
            return await self._generate(sanitized, request_id, start)
        except Exception as e:
            if is_rejection(e):
                raise
            error = e
            if not isinstance(e, GenerationError):
                error = ProcessingError("Unexpected pipeline failure", cause=e, request_id=request_id)
            return self._fallback(sanitized, request_id, start, error)

    # ------------------------------------------------------------------

    async def _generate(self, sanitized: str, request_id: str, start: float) -> GenerationResponse:
        ai = self.config.ai

        plan, planner_tokens, _ = await self._with_model_fallback(
            "planner",
            lambda model: self.planner.plan(sanitized, request_id, model=model),
            ai.planner_model,
            request_id,
        )
        spec, generator_tokens, model = await self._with_model_fallback(
            "generator",
            lambda model: self.generator.generate(sanitized, plan, request_id, model=model),
            ai.primary_model,
            request_id,
        )

        spec = self._finalize(spec, plan, sanitized, request_id)

        tokens = None
        if planner_tokens is not None or generator_tokens is not None:
            tokens = (planner_tokens or 0) + (generator_tokens or 0)
        processing_time = elapsed_ms(start)
        if self.config.logging.enable_metrics:
            log_ai_metrics({
                "request_id": request_id,
                "prompt_length": len(sanitized),
                "processing_time_ms": processing_time,
                "model": model,
                "success": True,
                "tokens_used": tokens,
            })
        return GenerationResponse(
            spec=spec,
            requestId=request_id,
            processingTime=processing_time,
            model=model,
            tokensUsed=tokens,
            plannerTokens=planner_tokens,
            generatorTokens=generator_tokens,
            background=self._cached_background(spec),
        )

    def _finalize(self, spec: SlideSpec, plan: IntentPlan, sanitized: str, request_id: str) -> SlideSpec:
        enforce_slide_spec_rules(spec)
        enhance_slide_spec(spec, plan=plan, prompt=sanitized, request_id=request_id)
        validate_slide_spec(spec, request_id)
        return spec

    async def _with_model_fallback(
        self,
        stage: str,
        call: Callable[[str], Awaitable[Tuple[R, Optional[int]]]],
        model: str,
        request_id: str,
    ) -> Tuple[R, Optional[int], str]:
        """Run a stage on `model`; on a service failure, once more on the fallback model."""
        try:
            result, tokens = await call(model)
            return result, tokens, model
        except AIGenerationError as e:
            fallback_model = self.config.ai.fallback_model
            if not self.config.pipeline.use_model_fallback or not fallback_model or fallback_model == model:
                raise
            logger.warning(
                f"[{request_id}] {stage} failed on {model} ({classify_error(e)}), retrying on {fallback_model}"
            )
            result, tokens = await call(fallback_model)
            return result, tokens, fallback_model

    def _cached_background(self, spec: SlideSpec) -> Optional[str]:
        if self.background_cache is None:
            return None
        key = background_key(spec)
        return self.background_cache.get(key) if key is not None else None

    def _fallback(
        self,
        prompt: str,
        request_id: str,
        start: float,
        error: Optional[Exception] = None,
    ) -> GenerationResponse:
        if error is not None:
            context = getattr(error, "context", None)
            preview = self.config.logging.preview_chars
            logger.error(
                f"[{request_id}] Generation failed ({classify_error(error)}), serving fallback: "
                f"{redact_preview(getattr(error, 'message', str(error)), preview)} "
                f"details={redact_preview(context, preview)}"
            )
        spec = create_fallback_spec(prompt, request_id, self.rng)
        processing_time = elapsed_ms(start)
        if self.config.logging.enable_metrics:
            log_ai_metrics({
                "request_id": request_id,
                "prompt_length": len(prompt),
                "processing_time_ms": processing_time,
                "model": FALLBACK_MODEL_LABEL,
                "success": False,
                "error_type": classify_error(error) if error is not None else "no_credentials",
            })
        return GenerationResponse(
            spec=spec,
            requestId=request_id,
            processingTime=processing_time,
            model=FALLBACK_MODEL_LABEL,
            isFallback=True,
            warning=FALLBACK_WARNING,
            background=self._cached_background(spec),
        )
