"""Parsing of metric command output into numbers."""

from __future__ import annotations

import math
import re

_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_FLOAT = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_INFINITY = re.compile(r"[+-]?(?:inf|infinity)", re.IGNORECASE)
_NAN = re.compile(r"nan", re.IGNORECASE)


def parse_number(output: str) -> float:
    """Parse command output as a number.

    Surrounding whitespace is ignored. Raises ValueError when the output is
    empty or is not a decimal, hexadecimal-float or special (inf/nan) number.
    """
    text = output.strip()
    if not text:
        raise ValueError("empty output")

    if _DECIMAL.fullmatch(text):
        value = float(text)
        if math.isinf(value):
            # Out of float64 range.
            raise ValueError(f"output '{text}' is not a valid number")
        return value

    if _HEX_FLOAT.fullmatch(text):
        try:
            value = float.fromhex(text)
        except OverflowError:
            raise ValueError(f"output '{text}' is not a valid number") from None
        return value

    if _INFINITY.fullmatch(text) or _NAN.fullmatch(text):
        return float(text)

    raise ValueError(f"output '{text}' is not a valid number")