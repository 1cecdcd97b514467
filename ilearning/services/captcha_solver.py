"""Fixed-template decoder for the six-digit iLearning login captcha."""
from __future__ import annotations

from io import BytesIO
from typing import List, Optional, Sequence

from loguru import logger
from PIL import Image, UnidentifiedImageError

from ilearning.clients.lms_http import LMSHttpClient
from ilearning.config import CAPTCHA_PARAMS, CAPTCHA_PATH
from ilearning.errors import CaptchaDecodeFailed, CaptchaFetchFailed
from ilearning.services.digit_templates import CODE_H, CODE_W, DIGIT_TEMPLATES, Bitmap
from ilearning.utils.retry import RetryPolicy


THRESHOLD = 115
LEFT_ALIGN = 11
TOP_ALIGN = 2
CODE_COUNT = 6

Matrix = List[List[int]]


def to_grayscale(image: Image.Image) -> Matrix:
    """Unweighted mean of the R, G and B channels of every pixel."""
    rgb = image.convert("RGB")
    width, height = rgb.size
    raw = rgb.tobytes()
    rows: Matrix = []
    for y in range(height):
        offset = y * width * 3
        rows.append(
            [
                (raw[i] + raw[i + 1] + raw[i + 2]) // 3
                for i in range(offset, offset + width * 3, 3)
            ]
        )
    return rows


def binarize(gray: Sequence[Sequence[int]], threshold: int = THRESHOLD) -> Matrix:
    return [[1 if pixel < threshold else 0 for pixel in row] for row in gray]


def crop2d(mat: Sequence[Sequence[int]], x: int, y: int, w: int, h: int) -> Matrix:
    """Rows ``y..y+h`` and columns ``x..x+w`` of ``mat``; the region must fit inside it."""
    if x < 0 or y < 0 or w < 0 or h < 0:
        raise ValueError("crop region must have non-negative origin and size")
    if y + h > len(mat) or any(x + w > len(mat[row]) for row in range(y, y + h)):
        raise ValueError(f"crop region {w}x{h}+{x}+{y} exceeds the matrix bounds")
    return [list(mat[row][x:x + w]) for row in range(y, y + h)]


def template_distance(cell: Sequence[Sequence[int]], template: Bitmap) -> int:
    return sum(
        abs(cell[i][j] - template[i][j])
        for i in range(CODE_H)
        for j in range(CODE_W)
    )


def predict_code(cell: Sequence[Sequence[int]], templates: Sequence[Bitmap] = DIGIT_TEMPLATES) -> int:
    """Digit whose template is nearest to ``cell``; ties go to the smallest digit."""
    best_digit = 0
    best_distance: Optional[int] = None
    for digit, template in enumerate(templates):
        distance = template_distance(cell, template)
        if best_distance is None or distance < best_distance:
            best_digit, best_distance = digit, distance
    return best_digit


def decode_bitmap(bits: Sequence[Sequence[int]], templates: Sequence[Bitmap] = DIGIT_TEMPLATES) -> str:
    strip = crop2d(bits, LEFT_ALIGN, TOP_ALIGN, CODE_W * CODE_COUNT, CODE_H)
    digits = []
    for index in range(CODE_COUNT):
        cell = crop2d(strip, CODE_W * index, 0, CODE_W, CODE_H)
        digits.append(str(predict_code(cell, templates)))
    return "".join(digits)


def decode_captcha(image_bytes: bytes, templates: Sequence[Bitmap] = DIGIT_TEMPLATES) -> str:
    """Read the six digits drawn on a captcha image."""
    if not image_bytes:
        raise CaptchaDecodeFailed("驗證碼圖片為空")
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            gray = to_grayscale(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise CaptchaDecodeFailed(f"無法解析驗證碼圖片：{exc}") from exc

    try:
        return decode_bitmap(binarize(gray), templates)
    except ValueError as exc:
        height = len(gray)
        width = len(gray[0]) if gray else 0
        raise CaptchaDecodeFailed(f"驗證碼圖片尺寸不符 ({width}x{height})") from exc


class CaptchaSolver:
    """Fetches captcha images from the portal and decodes them."""

    def __init__(
        self,
        http: LMSHttpClient,
        retry_policy: Optional[RetryPolicy] = None,
        templates: Sequence[Bitmap] = DIGIT_TEMPLATES,
    ) -> None:
        self.http = http
        self.retry_policy = retry_policy or RetryPolicy()
        self.templates = templates

    async def fetch_captcha_image(self) -> bytes:
        return await self.retry_policy.run(self._fetch_once, label="captcha fetch")

    async def _fetch_once(self) -> bytes:
        response = await self.http.get(CAPTCHA_PATH, params=CAPTCHA_PARAMS)
        if response.status_code != 200:
            raise CaptchaFetchFailed(f"驗證碼獲取失敗 (HTTP {response.status_code})")
        return response.content

    def decode(self, image_bytes: bytes) -> str:
        code = decode_captcha(image_bytes, self.templates)
        logger.debug("Captcha decoded ({} digits)", len(code))
        return code

    async def solve(self) -> str:
        return self.decode(await self.fetch_captcha_image())


__all__ = [
    "THRESHOLD",
    "LEFT_ALIGN",
    "TOP_ALIGN",
    "CODE_COUNT",
    "CaptchaSolver",
    "to_grayscale",
    "binarize",
    "crop2d",
    "template_distance",
    "predict_code",
    "decode_bitmap",
    "decode_captcha",
]
