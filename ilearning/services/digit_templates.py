"""Reference bitmaps of the digits drawn by the iLearning captcha renderer.

Each digit is 21 rows of 13 pixels; ``1`` marks ink. ``DIGIT_TEMPLATES[d]``
is the bitmap of digit ``d``.
"""
from __future__ import annotations

from typing import Tuple


CODE_W = 13
CODE_H = 21

Bitmap = Tuple[Tuple[int, ...], ...]

_RAW_TEMPLATES = (
    (  # 0
        "0000111110000",
        "0011111111100",
        "0111100011110",
        "0111000001110",
        "0110000000110",
        "1110000000111",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1110000000111",
        "0110000000110",
        "0111000001110",
        "0011111111100",
        "0000111110000",
        "0000000000000",
    ),
    (  # 1
        "0000000000000",
        "0000000000000",
        "0000000010000",
        "0000001110000",
        "0000111110000",
        "0001111110000",
        "0001110110000",
        "0001000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000110000",
        "0000000000000",
    ),
    (  # 2
        "0000111110000",
        "0011111111100",
        "0111100011110",
        "0111000001110",
        "1110000000111",
        "0000000000111",
        "0000000000111",
        "0000000001110",
        "0000000011110",
        "0000000111100",
        "0000001111000",
        "0000011110000",
        "0000111100000",
        "0001111000000",
        "0011110000000",
        "0111100000000",
        "0111000000000",
        "1110000000000",
        "1111111111111",
        "1111111111111",
        "0000000000000",
    ),
    (  # 3
        "0000111110000",
        "0011111111100",
        "0111100011110",
        "1110000000111",
        "0000000000111",
        "0000000000111",
        "0000000001110",
        "0000000011110",
        "0000011111100",
        "0000011111000",
        "0000000011110",
        "0000000000111",
        "0000000000011",
        "0000000000011",
        "0000000000011",
        "1100000000111",
        "1110000000111",
        "0111100011110",
        "0011111111100",
        "0000111110000",
        "0000000000000",
    ),
    (  # 4
        "0000000011000",
        "0000000111000",
        "0000001111000",
        "0000011111000",
        "0000111011000",
        "0000110011000",
        "0001110011000",
        "0011100011000",
        "0011000011000",
        "0111000011000",
        "1110000011000",
        "1100000011000",
        "1111111111111",
        "1111111111111",
        "0000000011000",
        "0000000011000",
        "0000000011000",
        "0000000011000",
        "0000000011000",
        "0000000011000",
        "0000000000000",
    ),
    (  # 5
        "0011111111110",
        "0011111111110",
        "0011000000000",
        "0011000000000",
        "0110000000000",
        "0110000000000",
        "0110111110000",
        "0111111111100",
        "0111100011110",
        "0110000000111",
        "0000000000011",
        "0000000000011",
        "0000000000011",
        "0000000000011",
        "1100000000011",
        "1110000000111",
        "0111000001110",
        "0111100011110",
        "0011111111100",
        "0000111110000",
        "0000000000000",
    ),
    (  # 6
        "0000011111000",
        "0001111111110",
        "0011110000111",
        "0011100000011",
        "0111000000000",
        "0110000000000",
        "1110000000000",
        "1100111110000",
        "1101111111100",
        "1111100011110",
        "1111000000111",
        "1110000000011",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1110000000011",
        "0110000000111",
        "0111100011110",
        "0011111111100",
        "0000111110000",
        "0000000000000",
    ),
    (  # 7
        "1111111111111",
        "1111111111111",
        "0000000000011",
        "0000000000110",
        "0000000001110",
        "0000000001100",
        "0000000011100",
        "0000000011000",
        "0000000111000",
        "0000000110000",
        "0000001110000",
        "0000001100000",
        "0000001100000",
        "0000011100000",
        "0000011000000",
        "0000011000000",
        "0000011000000",
        "0000111000000",
        "0000110000000",
        "0000110000000",
        "0000000000000",
    ),
    (  # 8
        "0000111110000",
        "0011111111100",
        "0111100011110",
        "0111000001110",
        "0110000000110",
        "0110000000110",
        "0111000001110",
        "0011100011100",
        "0001111111000",
        "0011111111100",
        "0111100011110",
        "1110000000111",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1110000000111",
        "0111000001110",
        "0111100011110",
        "0011111111100",
        "0000111110000",
        "0000000000000",
    ),
    (  # 9
        "0000111110000",
        "0011111111100",
        "0111100011110",
        "1110000000110",
        "1100000000111",
        "1100000000011",
        "1100000000011",
        "1100000000011",
        "1110000000111",
        "0111100011111",
        "0011111111011",
        "0000111110011",
        "0000000000011",
        "0000000000111",
        "0000000000110",
        "0000000001110",
        "1110000011100",
        "0111100111100",
        "0011111110000",
        "0000111100000",
        "0000000000000",
    ),
)


def _parse(digit: int, rows: Tuple[str, ...]) -> Bitmap:
    if len(rows) != CODE_H or any(len(row) != CODE_W for row in rows):
        raise ValueError(f"template for digit {digit} is not {CODE_W}x{CODE_H}")
    return tuple(tuple(int(ch) for ch in row) for row in rows)


DIGIT_TEMPLATES: Tuple[Bitmap, ...] = tuple(
    _parse(digit, rows) for digit, rows in enumerate(_RAW_TEMPLATES)
)


__all__ = ["CODE_W", "CODE_H", "Bitmap", "DIGIT_TEMPLATES"]
