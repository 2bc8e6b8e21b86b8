"""
Palette synthesis and repair.

Three ordered sources supply a primary/accent pair when the generated one is
unusable: a brand table, sector keyword detection, and a context-free generator
that scores preset palettes against the slide text. Contrast repair then makes
sure neutral[0]/neutral[8] reach 7:1 and primary/accent reach 4.5:1.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Pattern, Tuple

from slidespec.agents.config import (
    DEFAULT_ACCENT,
    HIGH_CONTRAST_DARK,
    HIGH_CONTRAST_LIGHT,
    MIN_TEXT_CONTRAST,
    MIN_UI_CONTRAST,
    NEUTRAL_RAMP_DARK,
    NEUTRAL_RAMP_LIGHT,
    NEUTRAL_RAMP_STEPS,
)
from slidespec.agents.generation.color_contrast_manager import (
    darken,
    get_contrast_ratio,
    is_valid_hex,
    lighten,
    meets_contrast,
    mix,
)
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.slide_spec import Palette
from slidespec.setup_logging_optimized import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PalettePreset:
    name: str
    primary: str
    accent: str
    fallback_accents: Tuple[str, ...] = ()


@dataclass(frozen=True)
class KeywordRule:
    """Maps a keyword pattern to a palette name with a weight."""
    pattern: Pattern
    palette: str
    weight: int = 1


def _kw(pattern: str, palette: str, weight: int = 1) -> KeywordRule:
    return KeywordRule(re.compile(pattern, re.IGNORECASE), palette, weight)


PALETTE_PRESETS = {
    "tech": PalettePreset("Tech Blue", "#1E40AF", "#F59E0B", ("#EA580C", "#D97706")),
    "finance": PalettePreset("Finance Slate", "#0F172A", "#10B981", ("#059669", "#34D399")),
    "creative": PalettePreset("Creative Violet", "#7C3AED", "#EC4899", ("#DB2777", "#F9A8D4")),
    "energy": PalettePreset("Energy Orange", "#EA580C", "#F97316", ("#1E293B", "#FDBA74")),
    "healthcare": PalettePreset("Healthcare Teal", "#0891B2", "#06B6D4", ("#0E7490", "#164E63")),
    "sustainability": PalettePreset("Sustainability Green", "#15803D", "#84CC16", ("#BEF264", "#14532D")),
    "corporate": PalettePreset("Corporate Graphite", "#1F2937", "#6366F1", ("#A5B4FC", "#C7D2FE")),
    "luxury": PalettePreset("Luxury Navy", "#1E1B4B", "#D4AF37", ("#FDE68A", "#FBBF24")),
    "retail": PalettePreset("Retail Red", "#7F1D1D", "#FBBF24", ("#FDE68A", "#F59E0B")),
    "mckinsey": PalettePreset("McKinsey Blue", "#005EB8", "#F3C13A", ("#FFCC00", "#FFD700")),
    "bcg": PalettePreset("BCG Navy", "#002E5D", "#E31E24", ("#D32F2F", "#EF5350")),
    "bain": PalettePreset("Bain Blue", "#0033A0", "#FFC220", ("#FFA000", "#FFECB3")),
    "strategy": PalettePreset("Strategy Teal", "#00457C", "#00A3E0", ("#0097A7", "#4DD0E1")),
    "data": PalettePreset("Data Indigo", "#2E3192", "#29ABE2", ("#00BFFF", "#87CEEB")),
}

DEFAULT_PRESET = "corporate"

# Brand names checked against the prompt and planner brand hints, first match wins
BRAND_RULES: Tuple[KeywordRule, ...] = (
    _kw(r"\bmckinsey\b", "mckinsey"),
    _kw(r"\b(bcg|boston consulting group)\b", "bcg"),
    _kw(r"\bbain\b", "bain"),
    _kw(r"\bdeloitte\b", "deloitte"),
    _kw(r"\baccenture\b", "accenture"),
    _kw(r"\bibm\b", "ibm"),
    _kw(r"\bmicrosoft\b", "microsoft"),
    _kw(r"\bgoogle\b", "google"),
    _kw(r"\bcoca[- ]?cola\b", "coca-cola"),
    _kw(r"\bspotify\b", "spotify"),
)

BRAND_COLORS = {
    "deloitte": ("#000000", "#86BC25"),
    "accenture": ("#460073", "#A100FF"),
    "ibm": ("#052FAD", "#FFFFFF"),
    "microsoft": ("#0F172A", "#00A4EF"),
    "google": ("#1A73E8", "#FBBC04"),
    "coca-cola": ("#7A0010", "#F40009"),
    "spotify": ("#191414", "#1DB954"),
}

# Sector buckets for prompt detection, checked in order; first match wins
SECTOR_RULES: Tuple[KeywordRule, ...] = (
    _kw(r"\b(finance|financial|revenue|profit|investment|banking|fintech|stocks?|portfolio|budget|valuation)\b", "finance"),
    _kw(r"\b(tech|technology|software|ai|machine learning|digital|cloud|platform|saas|devops|cyber)\b", "tech"),
    _kw(r"\b(sustainab\w*|green|eco|environment\w*|carbon|climate|esg|net zero|emissions)\b", "sustainability"),
    _kw(r"\b(health|healthcare|medical|patient|pharma|biotech|hospital|clinical|wellness)\b", "healthcare"),
    _kw(r"\b(retail|ecommerce|e-commerce|store|shopper|merchandis\w*|consumer goods)\b", "retail"),
    _kw(r"\b(energy|power|oil|gas|renewable|solar|wind|battery|utility|grid)\b", "energy"),
    _kw(r"\b(creative|design|marketing|campaign|advertising|media|content)\b", "creative"),
    _kw(r"\b(consulting|consultancy|advisory|engagement|client proposal)\b", "mckinsey"),
)

# Weighted scoring for the context-free generator
CONTEXT_RULES: Tuple[KeywordRule, ...] = (
    _kw(r"\b(tech|technology|software|ai|artificial intelligence|machine learning|data|digital|cloud|api|platform|app|devops|cyber|blockchain)\b", "tech", 3),
    _kw(r"\b(innovation|startup|tech stack|programming|code|algorithm)\b", "tech", 2),
    _kw(r"\b(finance|financial|revenue|profit|investment|market|trading|banking|fintech|stocks|crypto|portfolio|audit|compliance|risk)\b", "finance", 3),
    _kw(r"\b(economy|budget|forecast|valuation|merger|acquisition|ipo)\b", "finance", 2),
    _kw(r"\b(creative|design|brand|marketing|campaign|content|media|advertising|ux|ui|graphic|art|photography|video)\b", "creative", 3),
    _kw(r"\b(storytelling|visual|concept|idea|brainstorm)\b", "creative", 2),
    _kw(r"\b(energy|power|oil|gas|renewable|solar|wind|battery|electric|ev|growth|momentum|accelerate)\b", "energy", 3),
    _kw(r"\b(health|healthcare|medical|patient|care|wellness|pharma|biotech|hospital|doctor|medicine|telehealth)\b", "healthcare", 3),
    _kw(r"\b(clinical|trial|drug|therapy|diagnostics|epidemic|pandemic)\b", "healthcare", 2),
    _kw(r"\b(sustain|sustainability|green|eco|environment|carbon|climate|esg|recycle|circular economy)\b", "sustainability", 3),
    _kw(r"\b(net zero|emissions|conservation|biodiversity)\b", "sustainability", 2),
    _kw(r"\b(corporate|business|enterprise|management|operations|hr|leadership|team|organization)\b", "corporate", 3),
    _kw(r"\b(policy|governance|board|executive)\b", "corporate", 2),
    _kw(r"\b(luxury|premium|high-end|exclusive|fashion|jewelry|watches|hospitality)\b", "luxury", 3),
    _kw(r"\b(mckinsey|strategy consulting|management consulting)\b", "mckinsey", 4),
    _kw(r"\b(bcg|boston consulting group)\b", "bcg", 4),
    _kw(r"\bbain\b", "bain", 4),
    _kw(r"\b(strategy|strategic|planning|roadmap|vision|mission|goals|objectives)\b", "strategy", 3),
    _kw(r"\b(analytics|bi|business intelligence|big data|insights|metrics|kpi|dashboard|visualization)\b", "data", 3),
)

# Searched front to back when primary/accent contrast is too low. The order is
# curated; black and white close the list since one of them always reaches 4.5:1.
ACCENT_RAMP: Tuple[str, ...] = (
    "#F59E0B",
    "#FBBF24",
    "#FDE68A",
    "#10B981",
    "#34D399",
    "#06B6D4",
    "#67E8F9",
    "#EC4899",
    "#F9A8D4",
    "#8B5CF6",
    "#1E3A8A",
    "#0F172A",
    HIGH_CONTRAST_LIGHT,
    HIGH_CONTRAST_DARK,
)


@dataclass
class PaletteChoice:
    primary: str
    accent: str
    source: str
    fallback_accents: List[str] = field(default_factory=list)


def _preset_choice(name: str, source: str) -> PaletteChoice:
    preset = PALETTE_PRESETS[name]
    return PaletteChoice(preset.primary, preset.accent, source, list(preset.fallback_accents))


def detect_brand(texts: Iterable[str]) -> Optional[PaletteChoice]:
    joined = " ".join(t for t in texts if t)
    for rule in BRAND_RULES:
        if rule.pattern.search(joined):
            if rule.palette in PALETTE_PRESETS:
                return _preset_choice(rule.palette, f"brand:{rule.palette}")
            primary, accent = BRAND_COLORS[rule.palette]
            return PaletteChoice(primary, accent, f"brand:{rule.palette}")
    return None


def detect_sector(text: str) -> Optional[PaletteChoice]:
    for rule in SECTOR_RULES:
        if rule.pattern.search(text or ""):
            return _preset_choice(rule.palette, f"sector:{rule.palette}")
    return None


def select_palette_by_context(text: str) -> str:
    """Name of the preset with the highest weighted keyword score."""
    scores = {}
    for rule in CONTEXT_RULES:
        if rule.pattern.search(text or ""):
            scores[rule.palette] = scores.get(rule.palette, 0) + rule.weight
    best, best_score = DEFAULT_PRESET, 0
    # Ties keep the first palette to reach the score
    for name, score in scores.items():
        if score > best_score:
            best, best_score = name, score
    return best


def generate_palette(text: str) -> PaletteChoice:
    """Context-free generator: always returns a preset."""
    name = select_palette_by_context(text)
    return _preset_choice(name, f"generated:{name}")


def choose_base_palette(
    prompt: Optional[str],
    plan: Optional[IntentPlan],
    content_text: str,
) -> PaletteChoice:
    brand_sources = [prompt or ""]
    if plan is not None:
        brand_sources.extend(plan.brandHints)
    return (
        detect_brand(brand_sources)
        or detect_sector(prompt or "")
        or generate_palette(content_text)
    )


def generate_neutral_ramp(
    dark: str = NEUTRAL_RAMP_DARK,
    light: str = NEUTRAL_RAMP_LIGHT,
    steps: int = NEUTRAL_RAMP_STEPS,
) -> List[str]:
    """Evenly interpolated dark -> light ramp."""
    return [mix(dark, light, i / (steps - 1)) for i in range(steps)]


def ensure_accessible_accent(
    primary: str,
    accent: str,
    fallback_accents: Iterable[str] = (),
    minimum: float = MIN_UI_CONTRAST,
) -> str:
    """Pick an accent reaching `minimum` against primary.

    Order: current accent, preset fallbacks, darkened/lightened accent, the
    curated ramp, then DEFAULT_ACCENT.
    """
    if meets_contrast(primary, accent, minimum):
        return accent
    for candidate in fallback_accents:
        if meets_contrast(primary, candidate, minimum):
            return candidate
    if is_valid_hex(accent):
        for step in range(1, 6):
            amount = step / 10
            for candidate in (darken(accent, amount), lighten(accent, amount)):
                if meets_contrast(primary, candidate, minimum):
                    return candidate
    for candidate in ACCENT_RAMP:
        if meets_contrast(primary, candidate, minimum):
            return candidate
    return DEFAULT_ACCENT


def repair_palette(
    palette: Palette,
    prompt: Optional[str] = None,
    plan: Optional[IntentPlan] = None,
    content_text: str = "",
    request_id: Optional[str] = None,
) -> Palette:
    """Make the palette satisfy the hex, ramp and contrast invariants in place.

    Running it again on its own output changes nothing.
    """
    if not (is_valid_hex(palette.primary) and is_valid_hex(palette.accent)):
        choice = choose_base_palette(prompt, plan, content_text)
        if not is_valid_hex(palette.primary):
            palette.primary = choice.primary
        if not is_valid_hex(palette.accent):
            palette.accent = ensure_accessible_accent(
                palette.primary, choice.accent, choice.fallback_accents
            )
        logger.info(f"[{request_id}] Palette synthesized from {choice.source}")

    palette.primary = palette.primary.upper()
    palette.accent = palette.accent.upper()

    if len(palette.neutral) != NEUTRAL_RAMP_STEPS or not all(is_valid_hex(c) for c in palette.neutral):
        logger.info(
            f"[{request_id}] Neutral ramp regenerated (had {len(palette.neutral)} entries)"
        )
        palette.neutral = generate_neutral_ramp()
    else:
        palette.neutral = [c.upper() for c in palette.neutral]

    if get_contrast_ratio(palette.neutral[0], palette.neutral[-1]) < MIN_TEXT_CONTRAST:
        palette.neutral[0] = HIGH_CONTRAST_DARK
        palette.neutral[-1] = HIGH_CONTRAST_LIGHT

    if get_contrast_ratio(palette.primary, palette.accent) < MIN_UI_CONTRAST:
        original = palette.accent
        palette.accent = next(
            (c for c in ACCENT_RAMP if get_contrast_ratio(palette.primary, c) >= MIN_UI_CONTRAST),
            DEFAULT_ACCENT,
        )
        logger.info(
            f"[{request_id}] Accent {original} -> {palette.accent} for contrast against {palette.primary}"
        )

    return palette
