"""Login and dashboard session against the iLearning portal."""
from __future__ import annotations

import base64
from typing import Any, Optional, Union

import httpx
from loguru import logger

from ilearning.clients.lms_http import LMSHttpClient
from ilearning.config import DASHBOARD_EVENTS_PATH, LOGIN_PATH, SESSION_COOKIE
from ilearning.errors import InvalidResponse
from ilearning.schemas.dashboard import CaptchaPreview, DashboardResult
from ilearning.schemas.login import (
    LOGIN_FAILURE_MESSAGE,
    Authenticated,
    Credentials,
    Rejected,
)
from ilearning.services.captcha_solver import CaptchaSolver
from ilearning.services.html_extractor import extract_csrf_token, parse_dashboard_events
from ilearning.utils.credential_store import CredentialStore, FileCredentialStore
from ilearning.utils.logger import mask
from ilearning.utils.retry import RetryPolicy


# Constant fields the portal expects on every login form submission.
LOGIN_FORM_CONSTANTS = {
    "_fmSubmit": "yes",
    "formVer": "3.0",
    "formId": "login_form",
    "next": "/dashboard",
}


class LoginService:
    """
    Drives the portal's login form and the authenticated dashboard fetch.

    One instance owns one cookie jar, so it represents one account's session.
    Calls are expected to be issued one at a time; concurrent logins on the
    same instance share and overwrite the jar.
    """

    def __init__(
        self,
        http: Optional[LMSHttpClient] = None,
        credential_store: Optional[CredentialStore] = None,
        captcha_solver: Optional[CaptchaSolver] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.http = http or LMSHttpClient()
        self.credential_store = credential_store or FileCredentialStore()
        self.retry_policy = retry_policy or RetryPolicy()
        self.captcha_solver = captcha_solver or CaptchaSolver(self.http, retry_policy=self.retry_policy)

    # -- credentials ---------------------------------------------------------

    def save_credentials(self, account: str, password: str) -> None:
        self.credential_store.save(account, password)

    def get_credentials(self) -> Credentials:
        return self.credential_store.get()

    def delete_credentials(self) -> None:
        self.credential_store.delete()

    # -- login ---------------------------------------------------------------

    async def login_with_saved_credentials(self) -> Union[Authenticated, Rejected]:
        credentials = self.credential_store.get()
        return await self.login(credentials.username, credentials.password)

    async def login(self, account: str, password: str) -> Union[Authenticated, Rejected]:
        """
        Log in with a fresh CSRF token and captcha on every attempt.

        Returns ``Rejected`` when the portal refuses the credentials or captcha;
        raises an ``LMSError`` when a protocol step fails on every attempt.
        """
        logger.info("Logging in to iLearning as {}", account)

        async def attempt() -> Union[Authenticated, Rejected]:
            token = await self._fetch_login_token()
            captcha = await self.captcha_solver.solve()
            return await self._submit_login_form(account, password, token, captcha)

        outcome = await self.retry_policy.run(attempt, label="login")
        if isinstance(outcome, Authenticated):
            logger.info("Login succeeded for {} (session {})", account, mask(outcome.session_id, 4))
        else:
            logger.warning("Login rejected for {}: {}", account, outcome.message)
        return outcome

    async def _fetch_login_token(self) -> str:
        response = await self.http.get(LOGIN_PATH)
        html = self._read_text(response, "login page")
        token = extract_csrf_token(html)
        logger.debug("CSRF token received ({})", mask(token))
        return token

    async def _submit_login_form(
        self,
        account: str,
        password: str,
        csrf_token: str,
        captcha: str,
    ) -> Union[Authenticated, Rejected]:
        fields = {
            "account": account,
            "password": password,
            "csrf-t": csrf_token,
            "captcha": captcha,
            **LOGIN_FORM_CONSTANTS,
        }
        response = await self.http.post_form(LOGIN_PATH, fields)
        if response.status_code != 200:
            raise InvalidResponse(f"登入請求失敗 (HTTP {response.status_code})")
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise InvalidResponse("登入回應不是有效的 JSON") from exc

        ret = payload.get("ret") if isinstance(payload, dict) else None
        if not isinstance(ret, dict) or not isinstance(ret.get("status"), str):
            raise InvalidResponse("登入回應缺少 ret.status")

        if ret["status"] == "true":
            return Authenticated(session_id=self.http.cookie(SESSION_COOKIE))

        message = ret.get("msg")
        if not isinstance(message, str) or not message:
            message = LOGIN_FAILURE_MESSAGE
        return Rejected(message=message)

    # -- captcha -------------------------------------------------------------

    async def fetch_captcha_image(self) -> bytes:
        return await self.captcha_solver.fetch_captcha_image()

    def decode_captcha(self, image_bytes: bytes) -> str:
        return self.captcha_solver.decode(image_bytes)

    async def preview_captcha(self) -> CaptchaPreview:
        """Fetch one captcha and return it with the code the solver reads."""
        image = await self.fetch_captcha_image()
        return CaptchaPreview(
            image_base64=base64.b64encode(image).decode("ascii"),
            code=self.decode_captcha(image),
        )

    # -- dashboard -----------------------------------------------------------

    async def get_dashboard_last_event(self) -> DashboardResult:
        async def fetch() -> DashboardResult:
            response = await self.http.get(DASHBOARD_EVENTS_PATH)
            html = self._read_text(response, "dashboard")
            return parse_dashboard_events(html, base_url=self.http.base_url)

        return await self.retry_policy.run(fetch, label="dashboard fetch")

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _read_text(response: httpx.Response, what: str) -> str:
        if response.status_code != 200:
            raise InvalidResponse(f"{what} 回應錯誤 (HTTP {response.status_code})")
        try:
            return response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidResponse(f"{what} 內容無法解碼") from exc

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "LoginService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = ["LoginService", "LOGIN_FORM_CONSTANTS"]
