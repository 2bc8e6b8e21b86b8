"""
Enhancement/repair engine.

Idempotent pass over an enforced specification: enhance(enhance(x)) == enhance(x).
Sub-passes run in a fixed order because later ones read earlier output:
identifiers must be final before layout repair, and the palette must be
settled before contrast repair.
"""

import re
from typing import List, Optional, Set

from slidespec.agents.config import (
    CALLOUT_PREVIEW_LENGTH,
    MAX_BULLET_ITEMS,
    MAX_BULLET_TEXT_LENGTH,
    MAX_CHART_LABELS,
    MAX_INFERRED_CALLOUTS,
    MAX_SUBTITLE_LENGTH,
    MAX_TITLE_LENGTH,
    MIN_CHART_LABELS,
)
from slidespec.agents.generation.bullet_splitter import split_concatenated
from slidespec.agents.generation.layout_repair import repair_layout
from slidespec.agents.generation.rules import dedupe_bullets, default_style_tokens
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.slide_spec import (
    BulletItem,
    Callout,
    ChartLegend,
    ImagePlaceholder,
    SlideSpec,
)
from slidespec.services.palette_service import repair_palette
from slidespec.setup_logging_optimized import get_logger
from slidespec.utils.text import collapse_whitespace, truncate

logger = get_logger(__name__)

ACTION_VERBS = (
    "Accelerate", "Analyze", "Assess", "Build", "Capture", "Create", "Define", "Deliver",
    "Design", "Develop", "Drive", "Enable", "Enhance", "Establish", "Evaluate", "Execute",
    "Expand", "Explore", "Grow", "Identify", "Implement", "Improve", "Increase", "Launch",
    "Lead", "Manage", "Maximize", "Optimize", "Plan", "Present", "Prioritize", "Propose",
    "Recommend", "Reduce", "Review", "Scale", "Streamline", "Strengthen", "Transform",
    "Unlock",
)
_VERB_SET = {v.lower() for v in ACTION_VERBS}

# (keyword bucket, verb) checked in order
TITLE_VERB_RULES = (
    (re.compile(r"\b(growth|grow|revenue|sales|expan\w*|scale|market share)\b", re.IGNORECASE), "Accelerate"),
    (re.compile(r"\b(efficien\w*|cost|costs|optimi\w*|productivity|process|operations)\b", re.IGNORECASE), "Streamline"),
    (re.compile(r"\b(innovat\w*|digital|ai|technology|transformation|new product)\b", re.IGNORECASE), "Transform"),
)
DEFAULT_TITLE_VERB = "Drive"

INSIGHT_PATTERN = re.compile(
    r"(\d+(\.\d+)?\s?%|\b(increase\w*|grew|growth|result\w*|achiev\w*|forecast\w*|projected|record|roi|revenue)\b)",
    re.IGNORECASE,
)
RISK_PATTERN = re.compile(
    r"\b(risk\w*|challeng\w*|concern\w*|warning|threat\w*|declin\w*|delay\w*|issue\w*|gap\w*|headwind\w*)\b",
    re.IGNORECASE,
)
VISUAL_PATTERN = re.compile(r"\b(image|diagram|chart|photo|picture|illustration|visual)s?\b", re.IGNORECASE)
NUMERIC_LABEL = re.compile(r"^-?\d+(\.\d+)?%?$")


def starts_with_action_verb(text: str) -> bool:
    words = text.split()
    if not words:
        return False
    return re.sub(r"[^A-Za-z]", "", words[0]).lower() in _VERB_SET


def choose_title_verb(text: str) -> str:
    for pattern, verb in TITLE_VERB_RULES:
        if pattern.search(text):
            return verb
    return DEFAULT_TITLE_VERB


def content_text(spec: SlideSpec) -> str:
    """Human-readable text of the slide, used for keyword heuristics."""
    content = spec.content
    parts = [content.title.text]
    if content.subtitle is not None:
        parts.append(content.subtitle.text)
    parts.extend(item.text for group in content.bullets for item in group.items)
    parts.extend(c.text for c in content.callouts)
    if content.dataViz is not None and content.dataViz.title:
        parts.append(content.dataViz.title)
    if content.speakerNotes:
        parts.append(content.speakerNotes)
    return " ".join(parts)


# ---------------------------------------------------------------------------
# sub-passes
# ---------------------------------------------------------------------------

def normalize_titles(spec: SlideSpec, prompt: Optional[str] = None) -> None:
    title = spec.content.title
    title.id = "title"
    title.text = collapse_whitespace(title.text)
    if title.text and not starts_with_action_verb(title.text):
        verb = choose_title_verb(f"{title.text} {prompt or ''}")
        title.text = f"{verb} {title.text}"
    title.text = truncate(title.text, MAX_TITLE_LENGTH)

    if spec.content.subtitle is not None:
        spec.content.subtitle.id = "subtitle"
        spec.content.subtitle.text = truncate(
            collapse_whitespace(spec.content.subtitle.text), MAX_SUBTITLE_LENGTH
        )


def _unique_id(candidate: Optional[str], fallback: str, taken: Set[str]) -> str:
    value = candidate or fallback
    if value in taken:
        suffix = 2
        while f"{value}_{suffix}" in taken:
            suffix += 1
        value = f"{value}_{suffix}"
    taken.add(value)
    return value


def assign_identifiers(spec: SlideSpec) -> None:
    """Stable, unique ids for every anchorable element, in content order."""
    content = spec.content
    taken: Set[str] = {"title", "subtitle"}
    for i, group in enumerate(content.bullets):
        group.id = _unique_id(group.id, f"bullets_{i}", taken)
    for i, callout in enumerate(content.callouts):
        callout.id = _unique_id(callout.id, f"callout_{i}", taken)
    if content.dataViz is not None:
        content.dataViz.id = _unique_id(content.dataViz.id, "dataviz", taken)
    for image in content.imagePlaceholders:
        image.id = _unique_id(image.id, "image", taken)
    for image in content.images:
        image.id = _unique_id(image.id, "image", taken)


def normalize_bullets(spec: SlideSpec, request_id: Optional[str] = None) -> None:
    for group in spec.content.bullets:
        items: List[BulletItem] = []
        for item in group.items:
            level = max(1, min(item.level, 3))
            segments, family = split_concatenated(collapse_whitespace(item.text))
            if family:
                logger.info(f"[{request_id}] Split bullet into {len(segments)} items ({family})")
            for segment in segments:
                items.append(BulletItem(text=truncate(segment, MAX_BULLET_TEXT_LENGTH), level=level))
        group.items = items[:MAX_BULLET_ITEMS]
    # Splitting can produce text that duplicates another item
    dedupe_bullets(spec)


def infer_callouts(spec: SlideSpec) -> None:
    if spec.content.callouts:
        return
    inferred: List[Callout] = []
    for group in spec.content.bullets:
        for item in group.items:
            if len(inferred) >= MAX_INFERRED_CALLOUTS:
                break
            if INSIGHT_PATTERN.search(item.text):
                inferred.append(Callout(title="Key Insight", variant="success",
                                        text=truncate(item.text, CALLOUT_PREVIEW_LENGTH)))
            elif RISK_PATTERN.search(item.text):
                inferred.append(Callout(title="Watch Out", variant="warning",
                                        text=truncate(item.text, CALLOUT_PREVIEW_LENGTH)))
    for i, callout in enumerate(inferred):
        callout.id = f"callout_{i}"
    spec.content.callouts = inferred


def infer_image_placeholder(spec: SlideSpec) -> None:
    content = spec.content
    if content.images or content.imagePlaceholders:
        return
    if VISUAL_PATTERN.search(content_text(spec)):
        content.imagePlaceholders = [
            ImagePlaceholder(
                id="image_1",
                role="illustration",
                alt=truncate(f"Illustration for {content.title.text}", 120),
            )
        ]


def normalize_chart(spec: SlideSpec, request_id: Optional[str] = None) -> None:
    chart = spec.content.dataViz
    if chart is None:
        return

    labels = chart.labels[:MAX_CHART_LABELS]
    while len(labels) < MIN_CHART_LABELS:
        labels.append(f"Item {len(labels) + 1}")
    chart.labels = labels

    if chart.valueFormat == "percent":
        if all(NUMERIC_LABEL.match(label) for label in labels):
            logger.info(f"[{request_id}] Percent chart has all-numeric labels: {labels[:3]}...")
        if chart.valueScale != "percent":
            values = [v for s in chart.series for v in s.values]
            if values and all(0 <= v <= 1 for v in values) and any(v for v in values):
                for series in chart.series:
                    series.values = [round(v * 100, 4) for v in series.values]
                logger.info(f"[{request_id}] Rescaled fractional percent values x100")
            chart.valueScale = "percent"

    size = len(labels)
    for series in chart.series:
        if len(series.values) < size:
            series.values = series.values + [0.0] * (size - len(series.values))
        elif len(series.values) > size:
            series.values = series.values[:size]

    if len(chart.series) > 1 and chart.legend is None:
        chart.legend = ChartLegend(position="bottom", align="center")


def normalize_palette(
    spec: SlideSpec,
    plan: Optional[IntentPlan] = None,
    prompt: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    if spec.styleTokens is None:
        spec.styleTokens = default_style_tokens()
    repair_palette(
        spec.styleTokens.palette,
        prompt=prompt,
        plan=plan,
        content_text=content_text(spec),
        request_id=request_id,
    )


def enhance_slide_spec(
    spec: SlideSpec,
    plan: Optional[IntentPlan] = None,
    prompt: Optional[str] = None,
    request_id: Optional[str] = None,
) -> SlideSpec:
    """Run every enhancement sub-pass in dependency order; mutates and returns spec."""
    normalize_titles(spec, prompt)
    normalize_bullets(spec, request_id)
    infer_callouts(spec)
    infer_image_placeholder(spec)
    assign_identifiers(spec)
    normalize_chart(spec, request_id)
    normalize_palette(spec, plan, prompt, request_id)
    repair_layout(spec, request_id)
    return spec
