"""Pydantic models for login outcomes."""
from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


LOGIN_SUCCESS_MESSAGE = "登入成功"
LOGIN_FAILURE_MESSAGE = "登入失敗"


class Credentials(BaseModel):
    username: str = Field(..., description="iLearning account (student number)")
    password: str = Field(..., repr=False)


class Authenticated(BaseModel):
    state: Literal["authenticated"] = "authenticated"
    session_id: Optional[str] = Field(
        default=None,
        description="PHPSESSID cookie value, None if the server did not set one",
    )
    message: str = LOGIN_SUCCESS_MESSAGE

    @property
    def success(self) -> bool:
        return True


class Rejected(BaseModel):
    """The portal answered but refused the login (wrong password, wrong captcha...)."""

    state: Literal["rejected"] = "rejected"
    message: str = Field(default=LOGIN_FAILURE_MESSAGE, description="Message supplied by the portal")

    @property
    def success(self) -> bool:
        return False


LoginOutcome = Annotated[Union[Authenticated, Rejected], Field(discriminator="state")]


class LoginResponse(BaseModel):
    success: bool
    outcome: LoginOutcome

    @classmethod
    def from_outcome(cls, outcome: Union[Authenticated, Rejected]) -> "LoginResponse":
        return cls(success=outcome.success, outcome=outcome)
