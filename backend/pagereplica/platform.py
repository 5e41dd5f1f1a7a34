"""
Platform and framework detection from the rendered HTML.

Landing-page builders are checked before e-commerce and CMS signatures:
a Shopify store running a PageFly landing page is treated as PageFly,
because that decides which product-card selectors work.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Signature:
    name: str
    pattern: re.Pattern
    url_hint: str | None = None

    def matches(self, html: str, url: str) -> bool:
        if self.pattern.search(html):
            return True
        return bool(self.url_hint and self.url_hint in url)


@dataclass(frozen=True)
class SignatureTable:
    landing: tuple[Signature, ...]
    ecommerce: tuple[Signature, ...]
    cms: tuple[Signature, ...]
    framework: tuple[Signature, ...]


@dataclass(frozen=True)
class PlatformProfile:
    platform: str = "custom"
    framework: str = "vanilla"


def _sig(name: str, pattern: str, url_hint: str | None = None) -> Signature:
    return Signature(name, re.compile(pattern, re.I), url_hint)


DEFAULT_SIGNATURES = SignatureTable(
    landing=(
        _sig("unbounce", r"unbounce|ub-page|lp-pom", "unbounce"),
        _sig("instapage", r"instapage", "instapage"),
        _sig("optimizely", r"optimizely", "optimizely"),
        _sig("leadpages", r"leadpages|lp-wrap", "leadpages"),
        _sig("clickfunnels", r"clickfunnels|cf-section", "clickfunnels"),
        _sig("webflow", r"webflow|wf-page", "webflow"),
        _sig("carrd", r"carrd", "carrd"),
        _sig("pagefly", r"pagefly|__pf", "pagefly"),
        _sig("shogun", r"shogun|shg-c", "shogun"),
        _sig("gempages", r"gempages|gp-section", "gempages"),
    ),
    ecommerce=(
        _sig("shopify", r"shopify", "myshopify.com"),
        _sig("woocommerce", r"woocommerce"),
        _sig("magento", r"magento|mage-init"),
        _sig("bigcommerce", r"bigcommerce", "mybigcommerce.com"),
    ),
    cms=(
        _sig("wordpress", r"wp-content|wp-includes|wordpress"),
        _sig("drupal", r"drupal"),
        _sig("joomla", r"joomla"),
        _sig("squarespace", r"squarespace", "squarespace.com"),
        _sig("wix", r"wix\.com|wixstatic", "wixsite.com"),
    ),
    framework=(
        _sig("react", r"data-reactroot|__next_data__|_next/static|react-dom"),
        _sig("vue", r"data-v-[0-9a-f]{6,}|__nuxt|vue(?:\.runtime)?(?:\.min)?\.js"),
        _sig("angular", r"ng-version|ng-app|angular(?:\.min)?\.js"),
        _sig("svelte", r"svelte-[a-z0-9]{5,}|__sveltekit"),
    ),
)


class PlatformClassifier:
    """Ordered, first-match-wins classification against a signature table."""

    def __init__(self, signatures: SignatureTable = DEFAULT_SIGNATURES):
        self.signatures = signatures

    def classify(self, html: str, url: str) -> PlatformProfile:
        html = (html or "").lower()
        url = (url or "").lower()

        platform = "custom"
        for group in (self.signatures.landing, self.signatures.ecommerce, self.signatures.cms):
            hit = next((sig.name for sig in group if sig.matches(html, url)), None)
            if hit:
                platform = hit
                break

        framework = next(
            (sig.name for sig in self.signatures.framework if sig.matches(html, url)),
            "vanilla",
        )
        return PlatformProfile(platform=platform, framework=framework)


def classify_platform(html: str, url: str) -> PlatformProfile:
    return PlatformClassifier().classify(html, url)
