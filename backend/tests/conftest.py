"""Shared fixtures: a scripted stand-in for a Playwright page and session."""

import io

import pytest
from PIL import Image

from pagereplica.config import Settings
from pagereplica.errors import NavigationTimeout


class FakeLocator:
    async def scroll_into_view_if_needed(self, timeout=None):
        return None


class FakePage:
    """Answers page.evaluate() from a {script: value-or-callable} table."""

    def __init__(self, html="<html><head></head><body></body></html>", responses=None,
                 title="Test page", present=()):
        self.html = html
        self.responses = dict(responses or {})
        self._title = title
        self.present = set(present)
        self.calls = []
        self.styles = []

    async def evaluate(self, script, arg=None):
        self.calls.append(script)
        value = self.responses.get(script)
        if callable(value):
            return value(arg)
        return value

    async def content(self):
        return self.html

    async def title(self):
        return self._title

    async def wait_for_timeout(self, ms):
        return None

    async def wait_for_selector(self, selector, state=None, timeout=None):
        if selector in self.present:
            return object()
        raise RuntimeError(f"Timeout waiting for {selector}")

    async def add_style_tag(self, content=None):
        self.styles.append(content)

    def locator(self, selector):
        return FakeLocator()


class FakeSession:
    """Drop-in for BrowserSession driven by a FakePage."""

    def __init__(self, page, navigate_error=None, screenshot=None, alive=True):
        self.page = page
        self.navigate_error = navigate_error
        self._screenshot = screenshot
        self.alive = alive
        self.closed = False

    def __call__(self, settings):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def navigate(self, url):
        if self.navigate_error:
            raise self.navigate_error

    async def screenshot(self):
        return self._screenshot

    def is_alive(self):
        return self.alive


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        output_dir=str(tmp_path / "out"),
        job_timeout=30,
        widget_wait_timeout=50,
        settle_delay=0,
        dom_quiet_window=0.0,
        dom_stability_timeout=1.0,
        stability_poll_interval=0.01,
    )


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (40, 120), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def timeout_error():
    return NavigationTimeout("https://shop.example.com did not load within 60000ms")
