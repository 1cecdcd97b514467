"""Throttled refresh that turns dashboard events into assignments."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from loguru import logger

from ilearning.config import MIN_REFRESH_INTERVAL
from ilearning.errors import CredentialsNotFound, LMSError
from ilearning.schemas.assignment import Assignment, RefreshResult, RefreshState
from ilearning.schemas.dashboard import DashboardEvent
from ilearning.schemas.login import Rejected
from ilearning.services.login_service import LoginService
from ilearning.utils.deadline import parse_deadline


MISSING_CREDENTIALS_MESSAGE = "請先登入並儲存帳號密碼"
DASHBOARD_FAILED_MESSAGE = "無法獲取最新事件"


def assignment_id(event: DashboardEvent) -> str:
    key = "\x1f".join((event.title, event.title_link, event.source, event.source_link, event.deadline))
    return str(uuid.uuid5(uuid.NAMESPACE_URL, key))


def events_to_assignments(events: Iterable[DashboardEvent]) -> List[Assignment]:
    """Convert events in page order, dropping repeats of an identical event."""
    seen: set[str] = set()
    assignments: List[Assignment] = []
    for event in events:
        identifier = assignment_id(event)
        if identifier in seen:
            continue
        seen.add(identifier)
        assignments.append(
            Assignment(
                id=identifier,
                title=event.title,
                course_name=event.source,
                due_date=event.deadline,
                due_at=parse_deadline(event.deadline),
                link=event.title_link,
                course_link=event.source_link,
            )
        )
    return assignments


def _as_utc(moment: datetime) -> datetime:
    """Aware UTC copy of ``moment``; naive values are taken as local time."""
    return moment.astimezone(timezone.utc)


class AssignmentService:
    """Logs in with the saved account and collects the latest assignments."""

    def __init__(
        self,
        login_service: LoginService,
        min_interval: float = MIN_REFRESH_INTERVAL,
    ) -> None:
        self.login_service = login_service
        self.min_interval = timedelta(seconds=min_interval)

    async def refresh(self, state: RefreshState, now: Optional[datetime] = None) -> RefreshResult:
        now = _as_utc(now or datetime.now(timezone.utc))
        last = _as_utc(state.last_refresh_at) if state.last_refresh_at is not None else None
        if last is not None and now - last < self.min_interval:
            logger.info("Skipping refresh, last one ran at {}", last.isoformat())
            return RefreshResult(success=True, skipped=True, state=state)

        try:
            outcome = await self.login_service.login_with_saved_credentials()
            if isinstance(outcome, Rejected):
                return RefreshResult(success=False, message=outcome.message, state=state)

            dashboard = await self.login_service.get_dashboard_last_event()
        except CredentialsNotFound:
            return RefreshResult(success=False, message=MISSING_CREDENTIALS_MESSAGE, state=state)
        except LMSError as exc:
            logger.error("Assignment refresh failed: {}", exc.message)
            return RefreshResult(success=False, message=exc.message, state=state)

        if not dashboard.success:
            return RefreshResult(success=False, message=DASHBOARD_FAILED_MESSAGE, state=state)

        assignments = events_to_assignments(dashboard.events)
        logger.info("Refreshed {} assignments", len(assignments))
        return RefreshResult(
            success=True,
            state=RefreshState(last_refresh_at=now),
            assignments=assignments,
        )


__all__ = [
    "AssignmentService",
    "assignment_id",
    "events_to_assignments",
    "MISSING_CREDENTIALS_MESSAGE",
    "DASHBOARD_FAILED_MESSAGE",
]
