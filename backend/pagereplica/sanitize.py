"""
Strip third-party cruft from the captured HTML and absolutize its URLs.

Runs after video tagging: anything carrying (or wrapping) a
data-video-placeholder marker survives, so the reconstructor can still
find it.
"""

from urllib.parse import urljoin

from bs4 import BeautifulSoup

from pagereplica.videos import PLACEHOLDER_ATTR, VIDEO_HOSTS

DEFAULT_REMOVAL_SELECTORS = (
    # Consent banners
    ".csm-cookie-consent",
    "#hs-eu-cookie-confirmation",
    "#onetrust-consent-sdk",
    "#CybotCookiebotDialog",
    # Cart drawers and loaders
    "#shopify-section-cart-drawer",
    "cart-drawer",
    "#ssloader",
    # Chat widgets
    "#gorgias-chat-container",
    'style[data-emotion="gorgias-chat-key"]',
    "#hubspot-messages-iframe-container",
    "#intercom-container",
    ".intercom-lightweight-app",
    # Vendor injections
    "#czvdo-global-style",
    "#web-pixels-manager-sandbox-container",
    "#swym-plugin",
    "#swym-container",
    'div[id*="shopify-block-"]',
    "noscript",
    # Resource hints
    'link[rel="prefetch"]',
    'link[rel="preconnect"]',
    'link[rel="dns-prefetch"]',
)

URL_ATTRIBUTES = ("href", "src", "poster")
SKIP_PREFIXES = ("data:", "blob:", "#", "javascript:", "mailto:", "tel:", "about:")


class DomSanitizer:
    def __init__(self, removal_selectors=DEFAULT_REMOVAL_SELECTORS, video_hosts=VIDEO_HOSTS):
        self.removal_selectors = tuple(removal_selectors)
        self.video_hosts = tuple(video_hosts)

    def _keeps_placeholder(self, el) -> bool:
        return el.has_attr(PLACEHOLDER_ATTR) or el.find(attrs={PLACEHOLDER_ATTR: True}) is not None

    def _is_video_script(self, script) -> bool:
        if script.has_attr(PLACEHOLDER_ATTR):
            return True
        src = script.get("src") or ""
        return any(host in src for host in self.video_hosts)

    def sanitize(self, html: str, base_url: str) -> str:
        soup = BeautifulSoup(html, "lxml")
        removed = 0

        for selector in self.removal_selectors:
            for el in soup.select(selector):
                if el.decomposed or self._keeps_placeholder(el):
                    continue
                el.decompose()
                removed += 1

        for script in soup.find_all("script"):
            if not self._is_video_script(script):
                script.decompose()
                removed += 1

        for style in soup.find_all("style"):
            if not style.get_text(strip=True):
                style.decompose()
                removed += 1

        rewritten = absolutize_urls(soup, base_url)
        print(f"  [sanitize] Removed {removed} node(s), absolutized {rewritten} URL(s)")
        return str(soup)


def _absolute(value: str, base_url: str) -> str:
    value = value.strip()
    if not value or value.startswith(SKIP_PREFIXES):
        return value
    return urljoin(base_url, value)


def absolutize_urls(soup, base_url: str) -> int:
    """Rewrite href/src/poster/srcset in place against base_url."""
    count = 0
    for attr in URL_ATTRIBUTES:
        for el in soup.find_all(attrs={attr: True}):
            value = el.get(attr)
            if not isinstance(value, str):
                continue
            new = _absolute(value, base_url)
            if new != value:
                el[attr] = new
                count += 1

    for el in soup.find_all(attrs={"srcset": True}):
        parts = []
        for candidate in el["srcset"].split(","):
            candidate = candidate.strip()
            if not candidate:
                continue
            url, _, descriptor = candidate.partition(" ")
            parts.append(f"{_absolute(url, base_url)} {descriptor}".strip())
        new = ", ".join(parts)
        if new != el["srcset"]:
            el["srcset"] = new
            count += 1
    return count


def sanitize_html(html: str, base_url: str) -> str:
    return DomSanitizer().sanitize(html, base_url)
