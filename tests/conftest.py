"""
Pytest configuration and shared fixtures for all tests.
"""

import sys
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image

# Add the project root to sys.path so the root-level modules import
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from ilearning.clients.lms_http import LMSHttpClient  # noqa: E402
from ilearning.services.captcha_solver import LEFT_ALIGN, TOP_ALIGN  # noqa: E402
from ilearning.services.digit_templates import CODE_H, CODE_W, DIGIT_TEMPLATES  # noqa: E402
from ilearning.services.login_service import LoginService  # noqa: E402
from ilearning.utils.credential_store import FileCredentialStore  # noqa: E402
from ilearning.utils.retry import RetryPolicy  # noqa: E402


BASE_URL = "https://lms2020.nchu.edu.tw"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def render_captcha(code, size=(100, 30), ink=(20, 20, 20), paper=(255, 255, 255), image_format="PNG"):
    """Draw ``code`` with the digit templates at the position the portal uses."""
    image = Image.new("RGB", size, paper)
    for index, char in enumerate(code):
        template = DIGIT_TEMPLATES[int(char)]
        for row in range(CODE_H):
            for col in range(CODE_W):
                if template[row][col]:
                    image.putpixel((LEFT_ALIGN + CODE_W * index + col, TOP_ALIGN + row), ink)
    buffer = BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


def login_page(token="abc123"):
    return (
        "<html><body><form id='login_form'>"
        f"<input type='hidden' name='csrf-t' value='{token}'>"
        "<input name='account'><input name='password' type='password'>"
        "</form></body></html>"
    )


DASHBOARD_HTML = (
    '<table id="recentEventTable"><tbody><tr>'
    '<td><a href="/a"><span class="text">HW1</span></a></td>'
    '<td><a href="/b"><span class="text">Course1</span></a></td>'
    '<td><div class="text-overflow" title="2024-01-01 23:59">01-01</div></td>'
    "</tr></tbody></table>"
)


class FakePortal:
    """Routes requests the way the iLearning portal answers them."""

    def __init__(self, login_result=None, captcha="031415"):
        self.login_result = login_result or {"ret": {"status": "true"}}
        self.captcha = captcha
        self.requests = []
        self.login_page_html = login_page()
        self.login_page_status = 200
        self.login_status = 200
        self.captcha_status = 200
        self.dashboard_status = 200
        self.dashboard_html = DASHBOARD_HTML
        self.raw_login_body = None

    def count(self, method, path):
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.path
        if path == "/index/login" and request.method == "GET":
            return httpx.Response(self.login_page_status, text=self.login_page_html)
        if path == "/sys/libs/class/capcha/secimg.php":
            if self.captcha_status != 200:
                return httpx.Response(self.captcha_status)
            return httpx.Response(200, content=render_captcha(self.captcha))
        if path == "/index/login" and request.method == "POST":
            if self.raw_login_body is not None:
                return httpx.Response(self.login_status, text=self.raw_login_body)
            return httpx.Response(
                self.login_status,
                json=self.login_result,
                headers={"Set-Cookie": "PHPSESSID=xyz; Path=/"},
            )
        if path == "/dashboard/latestEvent":
            if isinstance(self.dashboard_html, bytes):
                return httpx.Response(self.dashboard_status, content=self.dashboard_html)
            return httpx.Response(self.dashboard_status, text=self.dashboard_html)
        return httpx.Response(404)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep):
    return RetryPolicy(max_attempts=3, backoff_base=2, sleep=recording_sleep)


@pytest.fixture
def make_http():
    """Build an LMSHttpClient whose requests are answered by ``handler``."""

    def factory(handler, **kwargs):
        return LMSHttpClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.fixture
def credential_store(tmp_path):
    return FileCredentialStore(tmp_path / "credentials.json")


@pytest.fixture
def portal():
    return FakePortal()


@pytest.fixture
def make_service(make_http, credential_store, retry_policy):
    def factory(handler):
        return LoginService(
            http=make_http(handler),
            credential_store=credential_store,
            retry_policy=retry_policy,
        )

    return factory


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
