"""
Content generator: synthesizes the candidate slide specification from the
sanitized prompt and the planner's hints.
"""

import time
from typing import Optional, Tuple

from slidespec.agents.core.interfaces import IStructuredOutputClient
from slidespec.agents.generation.config import AIConfig
from slidespec.agents.prompts.generation.slide_prompts import (
    GENERATOR_SYSTEM_PROMPT,
    render_generator_prompt,
)
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.slide_spec import SlideSpec
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)


class ContentGenerator:
    def __init__(self, client: IStructuredOutputClient, config: Optional[AIConfig] = None):
        self.client = client
        self.config = config or AIConfig()

    async def generate(
        self,
        sanitized_prompt: str,
        plan: IntentPlan,
        request_id: str,
        model: Optional[str] = None,
    ) -> Tuple[SlideSpec, Optional[int]]:
        # Retries live in the structured-output client
        start = time.perf_counter()
        result = await self.client.call_with_usage(
            render_generator_prompt(sanitized_prompt, plan),
            SlideSpec,
            temperature=self.config.generator_temperature,
            request_id=request_id,
            model=model or self.config.primary_model,
            system_prompt=GENERATOR_SYSTEM_PROMPT,
        )
        spec = result.data
        logger.info(
            f"[{request_id}] Generator complete in {(time.perf_counter() - start) * 1000:.0f}ms "
            f"(mode={result.mode}, bullets={len(spec.content.bullets)}, "
            f"chart={spec.content.dataViz is not None})"
        )
        return spec, result.tokens_used
