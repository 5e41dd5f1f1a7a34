"""
Headless browser session for one extraction job.

One browser, one context, one page. Requests for fonts, decorative images
and analytics are aborted at the route level so pages settle faster.
"""

import re

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from pagereplica.config import Settings, get_settings
from pagereplica.errors import NavigationError, NavigationTimeout

try:
    from playwright_stealth import Stealth
    _stealth = Stealth()
except ImportError:
    _stealth = None

ANALYTICS_HOSTS = (
    "google-analytics.com",
    "googletagmanager.com",
    "doubleclick.net",
    "facebook.net",
    "connect.facebook.net",
    "hotjar.com",
    "clarity.ms",
    "segment.io",
    "analytics.tiktok.com",
)

KEEP_IMAGE_HINTS = re.compile(r"thumbnail|preview|poster", re.I)
FONT_STYLESHEET_HINTS = re.compile(r"fonts\.googleapis|typekit|/fonts?/|font-awesome|fontawesome", re.I)


def should_block(resource_type: str, url: str, settings: Settings) -> bool:
    """Route policy: True means abort the request."""
    if settings.block_analytics and any(host in url for host in ANALYTICS_HOSTS):
        return True
    if settings.block_fonts:
        if resource_type == "font":
            return True
        if resource_type == "stylesheet" and FONT_STYLESHEET_HINTS.search(url):
            return True
    if settings.block_decorative_images and resource_type == "image":
        return not KEEP_IMAGE_HINTS.search(url)
    return False


class BrowserSession:
    """Async context manager around a Playwright Chromium page."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._playwright = None
        self.browser = None
        self.context = None
        self.page = None
        self.blocked = 0

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        s = self.settings
        self._playwright = await async_playwright().start()
        try:
            self.browser = await self._playwright.chromium.launch(
                headless=s.headless,
                args=["--disable-blink-features=AutomationControlled", "--no-sandbox"],
            )
            self.context = await self.browser.new_context(
                viewport={"width": s.viewport_width, "height": s.viewport_height},
                user_agent=s.user_agent,
                bypass_csp=True,
                ignore_https_errors=True,
            )
            self.page = await self.context.new_page()
            self.page.set_default_timeout(s.default_timeout)
            self.page.set_default_navigation_timeout(s.navigation_timeout)

            # Apply stealth to avoid bot detection
            if _stealth and s.stealth:
                await _stealth.apply_stealth_async(self.page)

            await self.page.route("**/*", self._handle_route)
        except Exception:
            await self.close()
            raise

    async def _handle_route(self, route: Route):
        request = route.request
        if should_block(request.resource_type, request.url, self.settings):
            self.blocked += 1
            await route.abort()
        else:
            await route.continue_()

    async def navigate(self, url: str):
        """Load url. Raises NavigationTimeout / NavigationError; the DOM may still be usable."""
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=self.settings.navigation_timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(f"{url} did not load within {self.settings.navigation_timeout}ms") from e
        except PlaywrightError as e:
            raise NavigationError(f"{url}: {e}") from e

    async def screenshot(self) -> bytes | None:
        try:
            return await self.page.screenshot(full_page=True, type="png")
        except Exception as e:
            print(f"  [session] Screenshot failed (continuing): {e}")
            return None

    def is_alive(self) -> bool:
        if self.page is None or self.browser is None:
            return False
        try:
            return self.browser.is_connected() and not self.page.is_closed()
        except Exception:
            return False

    async def close(self):
        for name in ("context", "browser"):
            target = getattr(self, name)
            if target is None:
                continue
            try:
                await target.close()
            except Exception as e:
                print(f"  [session] Closing {name} failed: {e}")
            setattr(self, name, None)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                print(f"  [session] Stopping playwright failed: {e}")
            self._playwright = None
        if self.blocked:
            print(f"  [session] Closed ({self.blocked} request(s) blocked)")
