"""Error taxonomy for the iLearning login and dashboard flow."""
from __future__ import annotations

from typing import Optional


class LMSError(Exception):
    """Base class for every failure raised by the LMS automation."""

    kind = "unknown"
    default_message = "未知錯誤"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class CsrfNotFound(LMSError):
    kind = "csrf_not_found"
    default_message = "CSRF Token 未找到"


class CaptchaFetchFailed(LMSError):
    kind = "captcha_fetch_failed"
    default_message = "驗證碼獲取失敗"


class CaptchaDecodeFailed(LMSError):
    kind = "captcha_decode_failed"
    default_message = "驗證碼處理失敗"


class InvalidResponse(LMSError):
    kind = "invalid_response"
    default_message = "伺服器回應無效"


class CredentialsNotFound(LMSError):
    kind = "credentials_not_found"
    default_message = "找不到已儲存的帳號密碼"


class NetworkError(LMSError):
    kind = "network_error"
    default_message = "網路連線失敗"


class UnknownError(LMSError):
    kind = "unknown"


def error_payload(exc: LMSError) -> dict[str, object]:
    """Structured failure body returned by the MCP tools and REST endpoints."""
    return {"success": False, "error": exc.kind, "message": exc.message}


__all__ = [
    "LMSError",
    "CsrfNotFound",
    "CaptchaFetchFailed",
    "CaptchaDecodeFailed",
    "InvalidResponse",
    "CredentialsNotFound",
    "NetworkError",
    "UnknownError",
    "error_payload",
]
