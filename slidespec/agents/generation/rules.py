"""
Deterministic rule enforcement (no AI calls).

Rules run in table order and each one mutates the specification in place.
Every rule is total: it never raises on a schema-valid document.
"""

from typing import Callable, List, Set, Tuple

from slidespec.agents.config import (
    CALLOUT_VARIANTS,
    DEFAULT_ACCENT,
    DEFAULT_ASPECT_RATIO,
    DEFAULT_BREATHING_ROOM,
    DEFAULT_PATTERN,
    DEFAULT_PRIMARY,
    DEFAULT_THEME,
    FONT_STACK_SANS,
    GRID_COLS,
    GRID_GUTTER,
    GRID_MARGIN,
    GRID_ROWS,
    MAX_BULLET_GROUPS,
    MAX_BULLET_ITEMS,
    MAX_BULLET_TEXT_LENGTH,
    MAX_CALLOUTS,
    MAX_SUBTITLE_LENGTH,
    MAX_TITLE_LENGTH,
    MIN_TEXT_CONTRAST,
    MIN_UI_CONTRAST,
    TYPE_SCALE,
)
from slidespec.models.slide_spec import (
    Contrast,
    Design,
    Fonts,
    Grid,
    Margin,
    Palette,
    Region,
    SlideSpec,
    Spacing,
    StyleTokens,
    Typography,
    Whitespace,
)
from slidespec.utils.text import dedupe_key, truncate

DEFAULT_WEIGHTS = {"regular": 400, "medium": 500, "semibold": 600, "bold": 700}
DEFAULT_LINE_HEIGHTS = {"compact": 1.2, "standard": 1.5}
DEFAULT_SPACING_STEPS = [4, 8, 12, 16, 24, 32, 48, 64]
DEFAULT_RADII = {"sm": 4, "md": 8, "lg": 16}
DEFAULT_SHADOWS = {
    "sm": "0 1px 2px rgba(0,0,0,0.05)",
    "md": "0 4px 6px rgba(0,0,0,0.1)",
    "lg": "0 10px 15px rgba(0,0,0,0.1)",
}


def design_grid() -> Grid:
    return Grid(rows=GRID_ROWS, cols=GRID_COLS, gutter=GRID_GUTTER, margin=Margin(**GRID_MARGIN))


def design_typography() -> Typography:
    return Typography(
        fonts=Fonts(sans=FONT_STACK_SANS),
        sizes=dict(TYPE_SCALE),
        weights=dict(DEFAULT_WEIGHTS),
        lineHeights=dict(DEFAULT_LINE_HEIGHTS),
    )


def default_style_tokens() -> StyleTokens:
    return StyleTokens(
        palette=Palette(primary=DEFAULT_PRIMARY, accent=DEFAULT_ACCENT, neutral=[]),
        typography=design_typography(),
        spacing=Spacing(base=8, steps=list(DEFAULT_SPACING_STEPS)),
        radii=dict(DEFAULT_RADII),
        shadows=dict(DEFAULT_SHADOWS),
        contrast=Contrast(minTextContrast=MIN_TEXT_CONTRAST, minUiContrast=MIN_UI_CONTRAST),
    )


def clamp_region(region: Region, rows: int = GRID_ROWS, cols: int = GRID_COLS) -> Region:
    """Clamp start to [1, max] and span so start + span - 1 <= max."""
    region.rowStart = max(1, min(region.rowStart, rows))
    region.colStart = max(1, min(region.colStart, cols))
    region.rowSpan = max(1, min(region.rowSpan, rows - region.rowStart + 1))
    region.colSpan = max(1, min(region.colSpan, cols - region.colStart + 1))
    return region


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------

def clamp_title(spec: SlideSpec) -> None:
    spec.content.title.text = truncate(spec.content.title.text, MAX_TITLE_LENGTH)


def clamp_subtitle(spec: SlideSpec) -> None:
    if spec.content.subtitle is not None:
        spec.content.subtitle.text = truncate(spec.content.subtitle.text, MAX_SUBTITLE_LENGTH)


def cap_bullets(spec: SlideSpec) -> None:
    groups = spec.content.bullets[:MAX_BULLET_GROUPS]
    for group in groups:
        group.items = group.items[:MAX_BULLET_ITEMS]
        for item in group.items:
            item.text = truncate(item.text, MAX_BULLET_TEXT_LENGTH)
    spec.content.bullets = groups


def dedupe_bullets(spec: SlideSpec) -> None:
    """Case-insensitive dedupe across all groups; emptied groups are dropped."""
    seen: Set[str] = set()
    for group in spec.content.bullets:
        kept = []
        for item in group.items:
            key = dedupe_key(item.text)
            if key in seen:
                continue
            seen.add(key)
            kept.append(item)
        group.items = kept
    spec.content.bullets = [g for g in spec.content.bullets if g.items]


def coerce_callout_variants(spec: SlideSpec) -> None:
    spec.content.callouts = spec.content.callouts[:MAX_CALLOUTS]
    for callout in spec.content.callouts:
        if callout.variant not in CALLOUT_VARIANTS:
            callout.variant = "note"


def design_defaults(spec: SlideSpec) -> None:
    if spec.design is None:
        spec.design = Design(pattern=DEFAULT_PATTERN)
    if spec.design.whitespace is None:
        spec.design.whitespace = Whitespace()
    if spec.design.whitespace.breathingRoom is None:
        spec.design.whitespace.breathingRoom = DEFAULT_BREATHING_ROOM


def meta_defaults(spec: SlideSpec) -> None:
    if not spec.meta.theme:
        spec.meta.theme = DEFAULT_THEME
    if not spec.meta.aspectRatio:
        spec.meta.aspectRatio = DEFAULT_ASPECT_RATIO


def enforce_grid(spec: SlideSpec) -> None:
    spec.layout.grid = design_grid()


def clamp_regions(spec: SlideSpec) -> None:
    for region in spec.layout.regions:
        clamp_region(region)


def enforce_style_tokens(spec: SlideSpec) -> None:
    if spec.styleTokens is None:
        spec.styleTokens = default_style_tokens()
        return
    tokens = spec.styleTokens
    # Design consistency beats generated variety
    tokens.typography.fonts = Fonts(sans=FONT_STACK_SANS)
    tokens.typography.sizes = dict(TYPE_SCALE)
    if not tokens.typography.weights:
        tokens.typography.weights = dict(DEFAULT_WEIGHTS)
    if not tokens.typography.lineHeights:
        tokens.typography.lineHeights = dict(DEFAULT_LINE_HEIGHTS)
    if not tokens.spacing.steps:
        tokens.spacing = Spacing(base=8, steps=list(DEFAULT_SPACING_STEPS))
    if not tokens.radii:
        tokens.radii = dict(DEFAULT_RADII)
    if not tokens.shadows:
        tokens.shadows = dict(DEFAULT_SHADOWS)


Rule = Tuple[str, Callable[[SlideSpec], None]]

RULES: List[Rule] = [
    ("title_length", clamp_title),
    ("subtitle_length", clamp_subtitle),
    ("bullet_caps", cap_bullets),
    ("bullet_dedupe", dedupe_bullets),
    ("callout_variants", coerce_callout_variants),
    ("design_defaults", design_defaults),
    ("meta_defaults", meta_defaults),
    ("grid", enforce_grid),
    ("region_bounds", clamp_regions),
    ("style_tokens", enforce_style_tokens),
]


def enforce_slide_spec_rules(spec: SlideSpec) -> SlideSpec:
    """Apply every rule in order; returns the same (mutated) specification."""
    for _name, rule in RULES:
        rule(spec)
    return spec
