"""Approximate text widths for legend layout.

There are no real glyph metrics here: each character is assigned a relative
width (as a fraction of the font size) based on a handful of character
classes roughly matching a proportional sans-serif font. Callers must treat
the result as an estimate and let svg ``textLength`` squash text that does
not fit.
"""

# Relative widths (fraction of the font size) per character class
NARROW_CHARS = "il.,:;!|'`"
SEMI_NARROW_CHARS = "fjrtI()[]{}-/\\\"*"
WIDE_CHARS = "mwMW@%"
SPACE_WIDTH = 0.28
NARROW_WIDTH = 0.25
SEMI_NARROW_WIDTH = 0.34
WIDE_WIDTH = 0.86
UPPER_WIDTH = 0.68
DIGIT_WIDTH = 0.56
DEFAULT_WIDTH = 0.55


def char_width(char: str) -> float:
    """Relative width of a single character."""
    if char == " ":
        return SPACE_WIDTH
    if char in NARROW_CHARS:
        return NARROW_WIDTH
    if char in SEMI_NARROW_CHARS:
        return SEMI_NARROW_WIDTH
    if char in WIDE_CHARS:
        return WIDE_WIDTH
    if char.isdigit():
        return DIGIT_WIDTH
    if char.isupper():
        return UPPER_WIDTH
    return DEFAULT_WIDTH


def get_approximate_text_width(text: str, font_size: float) -> float:
    """Estimate the rendered width of ``text`` in pixels at ``font_size``."""
    if not text:
        return 0.0
    return sum(char_width(c) for c in text) * font_size
