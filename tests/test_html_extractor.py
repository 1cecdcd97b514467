"""Tests for CSRF token and dashboard event extraction."""

import pytest

from ilearning.errors import CsrfNotFound
from ilearning.services.html_extractor import (
    absolute_url,
    extract_csrf_token,
    parse_dashboard_events,
)


BASE = "https://lms2020.nchu.edu.tw"


def event_row(title="HW1", title_href="/a", source="Course1", source_href="/b", deadline_cell=None):
    if deadline_cell is None:
        deadline_cell = '<div class="text-overflow" title="2024-01-01 23:59">01-01 23:59</div>'
    return (
        "<tr>"
        f'<td><a href="{title_href}"><span class="text">{title}</span></a></td>'
        f'<td><a href="{source_href}"><span class="text">{source}</span></a></td>'
        f"<td>{deadline_cell}</td>"
        "</tr>"
    )


def dashboard(*rows, header=True):
    head = "<thead><tr><th>標題</th><th>來源</th><th>期限</th></tr></thead>" if header else ""
    return (
        "<html><body>"
        f'<table id="recentEventTable">{head}<tbody>{"".join(rows)}</tbody></table>'
        "</body></html>"
    )


class TestExtractCsrfToken:

    def test_returns_value(self):
        assert extract_csrf_token('<input name="csrf-t" value="abc123">') == "abc123"

    def test_finds_token_inside_full_form(self):
        html = (
            "<form><input name='account'>"
            "<input type='hidden' name='csrf-t' value='tok-9'></form>"
        )
        assert extract_csrf_token(html) == "tok-9"

    def test_missing_input_raises(self):
        with pytest.raises(CsrfNotFound):
            extract_csrf_token('<form><input name="account"></form>')

    def test_missing_value_is_empty(self):
        assert extract_csrf_token('<input name="csrf-t">') == ""


class TestParseDashboardEvents:

    def test_single_row(self):
        result = parse_dashboard_events(dashboard(event_row()), base_url=BASE)

        assert result.success is True
        assert len(result.events) == 1
        event = result.events[0]
        assert event.title == "HW1"
        assert event.title_link == BASE + "/a"
        assert event.source == "Course1"
        assert event.source_link == BASE + "/b"
        assert event.deadline == "2024-01-01 23:59"

    def test_rows_keep_page_order(self):
        html = dashboard(
            event_row(title="HW1"),
            event_row(title="Quiz 2"),
            event_row(title="Report"),
        )
        result = parse_dashboard_events(html, base_url=BASE)
        assert [event.title for event in result.events] == ["HW1", "Quiz 2", "Report"]

    def test_deadline_falls_back_to_text(self):
        cell = '<div class="text-overflow">  2024/03/05\n 09:00 </div>'
        result = parse_dashboard_events(dashboard(event_row(deadline_cell=cell)), base_url=BASE)
        assert result.events[0].deadline == "2024/03/05 09:00"

    def test_deadline_without_marker_uses_cell_text(self):
        result = parse_dashboard_events(dashboard(event_row(deadline_cell="明天")), base_url=BASE)
        assert result.events[0].deadline == "明天"

    def test_nested_title_text_is_joined(self):
        title = "Lab <b>3</b>"
        result = parse_dashboard_events(dashboard(event_row(title=title)), base_url=BASE)
        assert result.events[0].title == "Lab 3"

    def test_absolute_href_is_kept(self):
        row = event_row(title_href="https://example.edu/hw")
        result = parse_dashboard_events(dashboard(row), base_url=BASE)
        assert result.events[0].title_link == "https://example.edu/hw"

    def test_malformed_row_fails_whole_table(self):
        broken = (
            "<tr><td>no link here</td>"
            '<td><a href="/b"><span class="text">Course1</span></a></td>'
            "<td>2024-01-01</td></tr>"
        )
        result = parse_dashboard_events(dashboard(event_row(), broken), base_url=BASE)
        assert result.success is False
        assert result.events == []

    def test_short_row_fails(self):
        result = parse_dashboard_events(dashboard("<tr><td>only one</td></tr>"), base_url=BASE)
        assert result.success is False

    def test_missing_text_span_fails(self):
        row = (
            '<tr><td><a href="/a">HW1</a></td>'
            '<td><a href="/b"><span class="text">Course1</span></a></td>'
            "<td>2024-01-01</td></tr>"
        )
        result = parse_dashboard_events(dashboard(row), base_url=BASE)
        assert result.success is False

    def test_empty_table(self):
        result = parse_dashboard_events(dashboard(), base_url=BASE)
        assert result.success is True
        assert result.events == []

    def test_page_without_table(self):
        result = parse_dashboard_events("<html><body>沒有事件</body></html>", base_url=BASE)
        assert result.success is True
        assert result.events == []

    def test_table_without_tbody_skips_header(self):
        html = (
            '<table id="recentEventTable">'
            "<thead><tr><th>a</th><th>b</th><th>c</th></tr></thead>"
            f"{event_row()}</table>"
        )
        result = parse_dashboard_events(html, base_url=BASE)
        assert result.success is True
        assert [event.title for event in result.events] == ["HW1"]


@pytest.mark.parametrize(
    "href,expected",
    [
        ("/course/1", BASE + "/course/1"),
        ("course/1", BASE + "/course/1"),
        ("http://other.host/x", "http://other.host/x"),
    ],
)
def test_absolute_url(href, expected):
    assert absolute_url(BASE + "/", href) == expected
