"""
Intent planner: one low-temperature structured call that extracts audience,
tone and pattern hints from the sanitized prompt.
"""

import time
from typing import Optional, Tuple

from slidespec.agents.core.interfaces import IStructuredOutputClient
from slidespec.agents.generation.config import AIConfig
from slidespec.agents.config import PLANNER_MAX_TOKENS
from slidespec.agents.prompts.generation.slide_prompts import render_planner_prompt
from slidespec.models.intent_plan import IntentPlan
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)


class IntentPlanner:
    def __init__(self, client: IStructuredOutputClient, config: Optional[AIConfig] = None):
        self.client = client
        self.config = config or AIConfig()

    async def plan(
        self,
        sanitized_prompt: str,
        request_id: str,
        model: Optional[str] = None,
    ) -> Tuple[IntentPlan, Optional[int]]:
        """Return the plan and the tokens the call used. Errors propagate."""
        start = time.perf_counter()
        result = await self.client.call_with_usage(
            render_planner_prompt(sanitized_prompt),
            IntentPlan,
            temperature=self.config.planner_temperature,
            request_id=request_id,
            model=model or self.config.planner_model,
            max_tokens=PLANNER_MAX_TOKENS,
        )
        plan = result.data
        logger.info(
            f"[{request_id}] Planner complete in {(time.perf_counter() - start) * 1000:.0f}ms: "
            f"intent={plan.intent} tone={plan.tone} pattern={plan.slidePattern} visual={plan.visualPlan}"
        )
        return plan, result.tokens_used
