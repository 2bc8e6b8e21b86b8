"""
Configuration settings for the agents package.
"""

import os

#==============================================================================
# MODELS
#==============================================================================

PRIMARY_MODEL = os.getenv("AI_MODEL_PRIMARY", "gpt-4o")
FALLBACK_MODEL = os.getenv("AI_MODEL_FALLBACK", "gpt-4o-mini")
PLANNER_MODEL = os.getenv("AI_MODEL_PLANNER", "gpt-4o-mini")

# Planner is near-deterministic, generator gets a little room
PLANNER_TEMPERATURE = 0.1
GENERATOR_TEMPERATURE = 0.3
DEFAULT_TOP_P = 0.9

PLANNER_MAX_TOKENS = 600
GENERATOR_MAX_TOKENS = 2500

#==============================================================================
# STRUCTURED OUTPUT CLIENT
#==============================================================================

AI_REQUEST_TIMEOUT_SECONDS = 30.0
AI_MAX_RETRIES = 3
AI_RETRY_BASE_DELAY_SECONDS = 1.0
MAX_RESPONSE_BYTES = 200 * 1024
MAX_REPORTED_ISSUES = 5
STOP_SEQUENCES = ["```"]

#==============================================================================
# PROMPT SANITATION / MODERATION
#==============================================================================

MIN_PROMPT_LENGTH = 3
DEFAULT_MAX_PROMPT_LENGTH = 1200
MAX_REQUEST_PROMPT_LENGTH = 5000

MODERATION_BLOCK_SCORE = 2
MAX_MODERATION_CHARS = 8000
MAX_WORD_REPETITION_RATIO = 0.4
MIN_CHARACTER_ENTROPY_BITS = 2.5

#==============================================================================
# CONTENT CAPS
#==============================================================================

MAX_TITLE_LENGTH = 60
MAX_SUBTITLE_LENGTH = 100
MAX_BULLET_GROUPS = 3
MAX_BULLET_ITEMS = 7
MAX_BULLET_TEXT_LENGTH = 80
MAX_CALLOUTS = 4
MAX_INFERRED_CALLOUTS = 3
CALLOUT_PREVIEW_LENGTH = 60
MIN_CHART_LABELS = 2
MAX_CHART_LABELS = 12
ELLIPSIS = "..."

CALLOUT_VARIANTS = ("note", "success", "warning", "danger")

#==============================================================================
# DESIGN SYSTEM
#==============================================================================

GRID_ROWS = 8
GRID_COLS = 12
# Gutter/margins are expressed in px at 96 dpi
GRID_GUTTER = 0.125 * 96
GRID_MARGIN = {"t": 57.6, "r": 86.4, "b": 57.6, "l": 86.4}

DEFAULT_THEME = "Professional"
DEFAULT_ASPECT_RATIO = "16:9"
DEFAULT_BREATHING_ROOM = 0.35
DEFAULT_PATTERN = "hero"

FONT_STACK_SANS = "Aptos, Calibri, Arial, sans-serif"
TYPE_SCALE = {
    "step_-2": 12,
    "step_-1": 14,
    "step_0": 16,
    "step_1": 20,
    "step_2": 24,
    "step_3": 44,
}

# WCAG thresholds
MIN_TEXT_CONTRAST = 7.0
MIN_UI_CONTRAST = 4.5

NEUTRAL_RAMP_STEPS = 9
NEUTRAL_RAMP_DARK = "#0F172A"
NEUTRAL_RAMP_LIGHT = "#F8FAFC"
HIGH_CONTRAST_DARK = "#000000"
HIGH_CONTRAST_LIGHT = "#FFFFFF"

DEFAULT_PRIMARY = "#1E40AF"
DEFAULT_ACCENT = "#F59E0B"

#==============================================================================
# SHARED STATE
#==============================================================================

BACKGROUND_CACHE_SIZE = 50
RATE_LIMIT_PER_MINUTE = 100
