"""Pydantic models for dashboard content."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field


class DashboardEvent(BaseModel):
    title: str = Field(..., description="Event title (assignment, quiz...)")
    title_link: str = Field(..., description="Absolute URL of the event page")
    source: str = Field(..., description="Course the event belongs to")
    source_link: str = Field(..., description="Absolute URL of the course page")
    deadline: str = Field(..., description="Deadline text as rendered by the portal")


class DashboardResult(BaseModel):
    success: bool
    events: List[DashboardEvent] = Field(default_factory=list)


class CaptchaPreview(BaseModel):
    """A freshly fetched captcha together with the code the solver reads from it."""

    image_base64: str
    code: str
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
