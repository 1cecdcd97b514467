"""Schemas for the assignment refresh workflow."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Assignment(BaseModel):
    id: str = Field(..., description="Stable identifier derived from the event fields")
    title: str
    course_name: str
    due_date: str = Field(..., description="Deadline text exactly as shown by the portal")
    due_at: Optional[datetime] = Field(
        default=None,
        description="Parsed deadline (Asia/Taipei), None when the text is not a known date format",
    )
    link: str
    course_link: str


class RefreshState(BaseModel):
    """Throttle state owned by the caller and threaded through each refresh."""

    last_refresh_at: Optional[datetime] = None


class RefreshResult(BaseModel):
    success: bool
    skipped: bool = False
    message: Optional[str] = None
    state: RefreshState
    assignments: List[Assignment] = Field(default_factory=list)
