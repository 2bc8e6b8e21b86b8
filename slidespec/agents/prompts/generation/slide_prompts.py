"""
Prompts for the two generation stages.
"""

import json
from typing import Any, Dict

from slidespec.models.intent_plan import IntentPlan


PLANNER_PROMPT = """You are an expert slide intent analyzer. Extract the following from the user's prompt:
- intent: "explanatory" (explain/describe/overview), "action" (optimize/improve/strategy), or "analytical" (analyze/compare/metrics)
- audience: who is this for? (e.g., "executives", "technical team", "general audience")
- tone: "formal", "conversational", "technical", or "executive"
- slidePattern: "overview", "2x2", "timeline", "bar-chart", "compare-contrast", "process-flow", or "hero"
- brandHints: any company/brand names mentioned (max 5)
- dataHints: any explicit numbers, metrics, or data points mentioned (max 10)
- visualPlan: "chart", "table", "hero", "illustration", or "minimal"

Return ONLY valid JSON matching this schema. No markdown, no explanations."""


GENERATOR_SYSTEM_PROMPT = """You are a senior presentation designer producing ONE slide as a JSON document.

CONTENT RULES:
- Title: action-oriented headline, max 60 characters, starts with a verb when possible
- Subtitle: optional supporting line, max 100 characters
- Bullets: at most 3 groups, at most 7 items per group, each item max 80 characters
- One idea per bullet item; never concatenate several dated events into one item
- Callouts: at most 4, variant one of note | success | warning | danger
- Charts: labels and every series' values must have the same length (2-12 labels)

LAYOUT RULES:
- Grid is 12 columns x 8 rows; regions must stay inside it and must not overlap
- Name regions header/body/aside/footer (or left/right for split layouts)
- Every content id (title, subtitle, bullet groups, callouts, chart, images) gets exactly one anchor

STYLE RULES:
- palette.primary and palette.accent are #RRGGBB colors with at least 4.5:1 contrast
- palette.neutral is exactly 9 colors ordered dark to light

Return ONLY the JSON document. No markdown fences, no commentary."""


FREEFORM_SCHEMA_INSTRUCTIONS = """The response MUST be a single JSON object that validates against the following JSON Schema.
This schema is authoritative: use exactly these field names and types, and omit fields you cannot fill.

{schema}"""


def render_planner_prompt(sanitized_prompt: str) -> str:
    return f"{PLANNER_PROMPT}\n\nUser prompt: {sanitized_prompt}"


def render_generator_prompt(sanitized_prompt: str, plan: IntentPlan) -> str:
    """User prompt augmented with a summary of the intent plan."""
    lines = [
        f"User prompt: {sanitized_prompt}",
        "",
        "Intent Analysis:",
        f"- Intent: {plan.intent}",
        f"- Audience: {plan.audience}",
        f"- Tone: {plan.tone}",
        f"- Slide Pattern: {plan.slidePattern}",
        f"- Visual Plan: {plan.visualPlan}",
    ]
    if plan.brandHints:
        lines.append(f"- Brand Hints: {', '.join(plan.brandHints)}")
    if plan.dataHints:
        lines.append(f"- Data Hints: {', '.join(plan.dataHints)}")
    lines.extend(["", "Generate a professional slide that matches this intent and plan."])
    return "\n".join(lines)


def render_freeform_instructions(schema: Dict[str, Any]) -> str:
    return FREEFORM_SCHEMA_INSTRUCTIONS.format(schema=json.dumps(schema, separators=(",", ":")))
