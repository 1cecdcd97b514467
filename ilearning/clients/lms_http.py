"""Async HTTP client bound to the iLearning portal."""
from __future__ import annotations

import asyncio
from typing import Mapping, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from ilearning.config import LMS_BASE_URL, REQUEST_TIMEOUT, RESOURCE_TIMEOUT, default_headers
from ilearning.errors import NetworkError


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def encode_form(fields: Mapping[str, str]) -> str:
    """Build a form body where every key and value is fully percent-encoded."""
    return "&".join(f"{quote(key, safe='')}={quote(value, safe='')}" for key, value in fields.items())


class LMSHttpClient:
    """
    One cookie jar and connection pool shared by every request of a session.

    Each request is bounded by ``REQUEST_TIMEOUT`` at the socket level and by
    ``RESOURCE_TIMEOUT`` overall. Transport failures surface as ``NetworkError``.
    """

    def __init__(
        self,
        base_url: str = LMS_BASE_URL,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_timeout: float = REQUEST_TIMEOUT,
        resource_timeout: float = RESOURCE_TIMEOUT,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.resource_timeout = resource_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=dict(headers or default_headers()),
            timeout=httpx.Timeout(request_timeout),
            transport=transport,
            trust_env=False,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def cookie(self, name: str) -> Optional[str]:
        """First cookie called ``name`` in the jar, whatever its domain."""
        for item in self._client.cookies.jar:
            if item.name == name:
                return item.value
        return None

    async def get(self, path: str, params: Optional[Mapping[str, str]] = None) -> httpx.Response:
        return await self._send("GET", path, params=params)

    async def post_form(self, path: str, fields: Mapping[str, str]) -> httpx.Response:
        return await self._send(
            "POST",
            path,
            content=encode_form(fields).encode("ascii"),
            headers={"Content-Type": FORM_CONTENT_TYPE},
        )

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        logger.debug("{} {}{}", method, self.base_url, path)
        try:
            response = await asyncio.wait_for(
                self._client.request(method, path, **kwargs),
                timeout=self.resource_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("{} {} exceeded {}s", method, path, self.resource_timeout)
            raise NetworkError(f"請求逾時：{method} {path}") from exc
        except httpx.HTTPError as exc:
            logger.error("{} {} failed: {}", method, path, exc)
            raise NetworkError(f"網路連線失敗：{exc}") from exc
        logger.debug("{} {} -> {}", method, path, response.status_code)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LMSHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = ["LMSHttpClient", "encode_form", "FORM_CONTENT_TYPE"]
