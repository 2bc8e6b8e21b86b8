import pytest

from slidespec.agents.config import MIN_TEXT_CONTRAST, MIN_UI_CONTRAST, NEUTRAL_RAMP_STEPS
from slidespec.agents.generation.color_contrast_manager import get_contrast_ratio, is_valid_hex
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.slide_spec import Palette
from slidespec.services.palette_service import (
    ACCENT_RAMP,
    PALETTE_PRESETS,
    choose_base_palette,
    detect_brand,
    detect_sector,
    ensure_accessible_accent,
    generate_neutral_ramp,
    repair_palette,
    select_palette_by_context,
)


def assert_palette_invariants(palette: Palette):
    assert is_valid_hex(palette.primary)
    assert is_valid_hex(palette.accent)
    assert len(palette.neutral) == NEUTRAL_RAMP_STEPS
    assert all(is_valid_hex(c) for c in palette.neutral)
    assert get_contrast_ratio(palette.neutral[0], palette.neutral[-1]) >= MIN_TEXT_CONTRAST
    assert get_contrast_ratio(palette.primary, palette.accent) >= MIN_UI_CONTRAST


class TestPaletteSources:

    def test_brand_from_prompt(self):
        choice = detect_brand(["Board update in the McKinsey style"])
        assert choice.source == "brand:mckinsey"
        assert choice.primary == PALETTE_PRESETS["mckinsey"].primary

    def test_brand_from_color_table(self):
        choice = detect_brand(["", "Spotify"])
        assert (choice.primary, choice.accent) == ("#191414", "#1DB954")

    def test_no_brand(self):
        assert detect_brand(["quarterly review"]) is None

    def test_sector_detection_first_match_wins(self):
        # "revenue" (finance) is listed before "software" (tech)
        assert detect_sector("software revenue outlook").source == "sector:finance"
        assert detect_sector("hospital staffing plan").source == "sector:healthcare"
        assert detect_sector("a quiet afternoon") is None

    def test_context_scoring(self):
        assert select_palette_by_context("solar battery rollout") == "energy"
        assert select_palette_by_context("") == "corporate"

    def test_plan_brand_hints_take_priority(self):
        plan = IntentPlan(intent="action", audience="board", tone="executive",
                          slidePattern="overview", brandHints=["Bain"])
        choice = choose_base_palette("banking outlook", plan, "")
        assert choice.source == "brand:bain"

    def test_generator_used_when_nothing_detected(self):
        choice = choose_base_palette("quarterly review", None, "executive dashboard metrics")
        assert choice.source.startswith("generated:")


class TestNeutralRamp:

    def test_default_ramp(self):
        ramp = generate_neutral_ramp()
        assert len(ramp) == NEUTRAL_RAMP_STEPS
        assert ramp[0] == "#0F172A"
        assert ramp[-1] == "#F8FAFC"


class TestAccentRamp:

    def test_ramp_closes_with_white_and_black(self):
        assert ACCENT_RAMP[-2:] == ("#FFFFFF", "#000000")

    def test_existing_accent_kept_when_compliant(self):
        assert ensure_accessible_accent("#0F172A", "#10B981") == "#10B981"


class TestRepairPalette:

    @pytest.mark.parametrize("palette", [
        Palette(),
        Palette(primary="blue", accent="#12", neutral=["#000000"]),
        Palette(primary="#777777", accent="#787878", neutral=["#777777"] * 9),
        Palette(primary="#ffffff", accent="#fefefe", neutral=[]),
        Palette(primary="#1E40AF", accent="#1E3A8A", neutral=["#0F172A"] * 9),
    ])
    def test_invariants_hold_for_any_input(self, palette):
        repair_palette(palette, prompt="Q1 revenue growth strategy")
        assert_palette_invariants(palette)

    def test_idempotent(self):
        palette = Palette(primary="#1E40AF", accent="#1E3A8A")
        repair_palette(palette)
        snapshot = palette.model_dump()
        repair_palette(palette)
        assert palette.model_dump() == snapshot

    def test_low_contrast_accent_takes_first_passing_ramp_entry(self):
        palette = Palette(primary="#1E40AF", accent="#1E3A8A", neutral=generate_neutral_ramp())
        repair_palette(palette)
        expected = next(c for c in ACCENT_RAMP if get_contrast_ratio("#1E40AF", c) >= MIN_UI_CONTRAST)
        assert palette.accent == expected

    def test_flat_neutral_ends_forced_to_black_and_white(self):
        palette = Palette(primary="#0F172A", accent="#F59E0B", neutral=["#777777"] * 9)
        repair_palette(palette)
        assert palette.neutral[0] == "#000000"
        assert palette.neutral[-1] == "#FFFFFF"
        assert palette.neutral[1:-1] == ["#777777"] * 7

    def test_valid_colors_are_uppercased(self):
        palette = Palette(primary="#0f172a", accent="#f59e0b", neutral=[c.lower() for c in generate_neutral_ramp()])
        repair_palette(palette)
        assert palette.primary == "#0F172A"
        assert palette.accent == "#F59E0B"
        assert palette.neutral == generate_neutral_ramp()
