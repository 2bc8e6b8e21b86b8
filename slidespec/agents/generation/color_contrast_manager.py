"""
Color Contrast Manager: WCAG luminance/contrast math and color arithmetic.
All functions are pure and operate on #RRGGBB strings.
"""

import re
from typing import Iterable, Tuple

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_valid_hex(value: object) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR.match(value))


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert #RRGGBB to an RGB tuple.

    Raises:
        ValueError: not a 6-digit hex color.
    """
    if not is_valid_hex(hex_color):
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    value = hex_color.lstrip("#")
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def rgb_to_hex(rgb: Iterable[float]) -> str:
    return "#" + "".join(f"{max(0, min(255, int(round(c)))):02X}" for c in rgb)


def get_luminance(rgb: Tuple[int, int, int]) -> float:
    """Calculate relative luminance of a color according to WCAG."""
    channels = []
    for value in rgb:
        c = value / 255.0
        # Gamma correction
        channels.append(c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4)
    r, g, b = channels
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def relative_luminance(hex_color: str) -> float:
    return get_luminance(hex_to_rgb(hex_color))


def get_contrast_ratio(color1: str, color2: str) -> float:
    """WCAG contrast ratio between two colors (1.0 .. 21.0)."""
    lum1 = relative_luminance(color1)
    lum2 = relative_luminance(color2)
    if lum1 < lum2:
        lum1, lum2 = lum2, lum1
    return (lum1 + 0.05) / (lum2 + 0.05)


def meets_contrast(color1: str, color2: str, minimum: float) -> bool:
    """False for invalid colors instead of raising."""
    if not (is_valid_hex(color1) and is_valid_hex(color2)):
        return False
    return get_contrast_ratio(color1, color2) >= minimum


def mix(color1: str, color2: str, weight: float) -> str:
    """Linear RGB interpolation; weight 0 -> color1, 1 -> color2."""
    rgb1 = hex_to_rgb(color1)
    rgb2 = hex_to_rgb(color2)
    return rgb_to_hex(a + (b - a) * weight for a, b in zip(rgb1, rgb2))


def lighten(hex_color: str, amount: float) -> str:
    return mix(hex_color, "#FFFFFF", amount)


def darken(hex_color: str, amount: float) -> str:
    return mix(hex_color, "#000000", amount)


