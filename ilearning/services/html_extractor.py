"""HTML extraction for the login form and the dashboard events table."""
from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup, Tag
from loguru import logger

from ilearning.config import LMS_BASE_URL
from ilearning.errors import CsrfNotFound
from ilearning.schemas.dashboard import DashboardEvent, DashboardResult


CSRF_FIELD = "csrf-t"
EVENTS_TABLE_ID = "recentEventTable"


class MalformedRow(ValueError):
    """A dashboard row is missing one of the cells or elements it should carry."""


def extract_csrf_token(html: str) -> str:
    """Return the value of the ``csrf-t`` input of the login form."""
    soup = BeautifulSoup(html, "html.parser")
    field = soup.find("input", attrs={"name": CSRF_FIELD})
    if field is None:
        raise CsrfNotFound()
    return field.get("value", "")


def parse_dashboard_events(html: str, base_url: str = LMS_BASE_URL) -> DashboardResult:
    """
    Read the recent events table of ``/dashboard/latestEvent``.

    Rows are returned in page order. If any row is malformed the whole result
    is reported as failed with no events; a page without the table yields a
    successful, empty result.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find(id=EVENTS_TABLE_ID)
    if table is None:
        logger.info("Dashboard page has no #{} table", EVENTS_TABLE_ID)
        return DashboardResult(success=True, events=[])

    events: List[DashboardEvent] = []
    try:
        for index, row in enumerate(_body_rows(table)):
            events.append(_parse_row(row, index, base_url))
    except MalformedRow as exc:
        logger.warning("Dashboard table could not be parsed: {}", exc)
        return DashboardResult(success=False, events=[])

    logger.info("Parsed {} dashboard events", len(events))
    return DashboardResult(success=True, events=events)


def _body_rows(table: Tag) -> List[Tag]:
    bodies = table.find_all("tbody")
    if bodies:
        return [row for body in bodies for row in body.find_all("tr")]
    return [row for row in table.find_all("tr") if row.find_parent(["thead", "tfoot"]) is None]


def _parse_row(row: Tag, index: int, base_url: str) -> DashboardEvent:
    cells = row.find_all("td")
    if len(cells) < 3:
        raise MalformedRow(f"row {index} has {len(cells)} cells, expected 3")

    title, title_link = _link_cell(cells[0], index, "title")
    source, source_link = _link_cell(cells[1], index, "source")

    deadline_cell = cells[2]
    marker = deadline_cell.select_one("div.text-overflow")
    if marker is not None and marker.has_attr("title"):
        deadline = str(marker["title"]).strip()
    else:
        deadline = _text(marker if marker is not None else deadline_cell)

    return DashboardEvent(
        title=title,
        title_link=absolute_url(base_url, title_link),
        source=source,
        source_link=absolute_url(base_url, source_link),
        deadline=deadline,
    )


def _link_cell(cell: Tag, index: int, name: str) -> tuple[str, str]:
    anchor = cell.find("a")
    if anchor is None:
        raise MalformedRow(f"row {index} has no {name} link")
    label = anchor.select_one("span.text")
    if label is None:
        raise MalformedRow(f"row {index} {name} link has no text span")
    href = anchor.get("href")
    if href is None:
        raise MalformedRow(f"row {index} {name} link has no href")
    return _text(label), str(href).strip()


def _text(node: Tag) -> str:
    return " ".join(node.get_text().split())


def absolute_url(base_url: str, href: str) -> str:
    if href.startswith(("http://", "https://")):
        return href
    base = base_url.rstrip("/")
    if href.startswith("/"):
        return base + href
    return f"{base}/{href}"


__all__ = ["extract_csrf_token", "parse_dashboard_events", "absolute_url", "MalformedRow"]
