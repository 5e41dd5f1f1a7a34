import pytest

from pagereplica.browser import BrowserSession, should_block
from pagereplica.config import Settings


@pytest.mark.parametrize("resource_type, url, blocked", [
    ("script", "https://www.googletagmanager.com/gtm.js?id=GTM-1", True),
    ("font", "https://cdn.example.com/brand.woff2", True),
    ("stylesheet", "https://fonts.googleapis.com/css2?family=Inter", True),
    ("stylesheet", "https://shop.example.com/theme.css", False),
    ("image", "https://shop.example.com/banner.jpg", True),
    ("image", "https://cdn.example.com/video-thumbnail.jpg", False),
    ("document", "https://shop.example.com/", False),
])
def test_route_policy(resource_type, url, blocked):
    assert should_block(resource_type, url, Settings()) is blocked


def test_policy_switches():
    settings = Settings(block_fonts=False, block_decorative_images=False, block_analytics=False)
    assert not should_block("font", "https://cdn.example.com/a.woff2", settings)
    assert not should_block("image", "https://shop.example.com/banner.jpg", settings)
    assert not should_block("script", "https://www.google-analytics.com/analytics.js", settings)


def test_unstarted_session_is_not_alive():
    assert not BrowserSession(Settings()).is_alive()
