"""
Product card resolution for ProductGrid blocks.

Tier 1 tries a platform-specific selector list against the live DOM and
stops at the first selector that matches anything. Tier 2 (no selector
matched) scans every element whose class looks card-ish. Both tiers score
elements on the same product clues; a selector match earns nothing.
Scoring happens here in Python so it can be tested without a browser;
the page only reports raw features.

    +2  product-shaped link (not "#", not the current page)
    +2  purchase action (buy / add to cart / shop now / order)
    +2  image, heading and price together
    +1  product keyword in class/id

A card is kept at score >= threshold with at least one asset.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from urllib.parse import urlparse

from pydantic import ValidationError

from pagereplica.errors import SelectorNotFound
from pagereplica.models import Asset, ProductCard

DEFAULT_CARD_SELECTORS = MappingProxyType({
    "optimizely": ('[class*="product-card"]', ".clp-keurig-product-card"),
    "shopify": (".product-card", ".grid__item", ".product-grid-item"),
    "woocommerce": ("li.product", ".type-product"),
    "bigcommerce": (".productGrid .product", ".card"),
    "default": ('[class*="product-card"]', ".product-card", ".card", ".item", ".tile", ".sku", ".listing"),
})

CARD_CLASS_PATTERN = "product-card|card|item|tile|sku|listing"

PRODUCT_LINK_RE = re.compile(r"/products?(?:/|$|\?|-)|/items?/|/shop/|/detail|/sku|/cart|/buy|/add", re.I)
PURCHASE_RE = re.compile(r"\bbuy\b|add to (?:cart|bag|basket)|shop now|\bcart\b|\border\b|purchase", re.I)
KEYWORD_RE = re.compile(r"product|sku|listing", re.I)


@dataclass
class CardResolution:
    cards: list[ProductCard] = field(default_factory=list)
    selector_used: str | None = None
    debug: list[str] = field(default_factory=list)


def _is_product_link(href: str, page_url: str) -> bool:
    if not href or href.strip().startswith(("#", "javascript:", "mailto:", "tel:")):
        return False
    target = urlparse(href)
    current = urlparse(page_url or "")
    if target.netloc == current.netloc and target.path.rstrip("/") == current.path.rstrip("/"):
        return False
    return bool(PRODUCT_LINK_RE.search(target.path or href))


def score_candidate(candidate: dict, page_url: str = "") -> tuple[int, list[str]]:
    """Score one candidate element's product clues."""
    score = 0
    clues = []

    links = candidate.get("links") or []
    if any(_is_product_link(link.get("href") or "", page_url) for link in links):
        score += 2
        clues.append("product-link")

    actions = candidate.get("actions") or []
    if any(PURCHASE_RE.search(text or "") for text in actions):
        score += 2
        clues.append("purchase-action")

    if candidate.get("has_image") and candidate.get("has_heading") and candidate.get("has_price"):
        score += 2
        clues.append("image-heading-price")

    identity = " ".join([candidate.get("class_name") or "", candidate.get("element_id") or ""])
    if KEYWORD_RE.search(identity):
        score += 1
        clues.append("class-keyword")

    return score, clues


def _parse_assets(raw_assets) -> list[Asset]:
    assets = []
    for item in raw_assets or []:
        try:
            assets.append(Asset.model_validate(item))
        except ValidationError:
            continue
    return assets


def accept_candidates(candidates: list[dict], page_url: str = "", threshold: int = 3) -> list[ProductCard]:
    """Score candidates, keep the ones over threshold, drop cards nested in kept cards."""
    scored = {}
    for i, cand in enumerate(candidates or []):
        score, clues = score_candidate(cand, page_url)
        assets = _parse_assets(cand.get("assets"))
        if score >= threshold and assets:
            scored[i] = (score, clues, assets)

    cards = []
    for i, (score, clues, assets) in scored.items():
        parent = candidates[i].get("parent", -1)
        nested = False
        while parent is not None and parent >= 0:
            if parent in scored:
                nested = True
                break
            parent = candidates[parent].get("parent", -1)
        if nested:
            continue

        cand = candidates[i]
        product_links = [l.get("href") for l in cand.get("links") or []
                         if _is_product_link(l.get("href") or "", page_url)]
        any_links = [l.get("href") for l in cand.get("links") or [] if l.get("href")]
        cards.append(ProductCard(
            assets=assets,
            score=score,
            clues=clues,
            title=cand.get("title"),
            url=(product_links or any_links or [None])[0],
            price=cand.get("price"),
            description=cand.get("description"),
            markup=cand.get("markup") or "",
        ))
    return cards


class ProductCardResolver:
    def __init__(self, selectors=DEFAULT_CARD_SELECTORS, threshold: int = 3,
                 max_cards: int = 60, markup_cap: int = 300):
        self.selectors = selectors
        self.threshold = threshold
        self.max_cards = max_cards
        self.markup_cap = markup_cap

    def selectors_for(self, platform: str) -> tuple[str, ...]:
        return self.selectors.get(platform) or self.selectors["default"]

    async def _collect(self, page, selector: str | None) -> dict:
        try:
            return await page.evaluate(COLLECT_CARDS_JS, {
                "selector": selector,
                "classPattern": CARD_CLASS_PATTERN,
                "maxCards": self.max_cards,
                "markupCap": self.markup_cap,
            }) or {}
        except Exception as e:
            if selector is None:
                raise
            raise SelectorNotFound(f"{selector}: {e}") from e

    async def resolve(self, page, platform: str) -> CardResolution:
        result = CardResolution()

        for selector in self.selectors_for(platform):
            try:
                payload = await self._collect(page, selector)
            except SelectorNotFound as e:
                result.debug.append(f"Selector unusable, skipped ({e})")
                continue
            candidates = payload.get("candidates") or []
            result.debug.append(f"Tried selector {selector}: {len(candidates)} match(es)")
            if candidates:
                result.selector_used = selector
                result.cards = accept_candidates(candidates, payload.get("page_url", ""), self.threshold)
                result.debug.append(f"Used selector {selector}, kept {len(result.cards)} card(s)")
                print(f"  [products] {selector} matched {len(candidates)}, kept {len(result.cards)}")
                return result

        payload = await self._collect(page, None)
        candidates = payload.get("candidates") or []
        result.cards = accept_candidates(candidates, payload.get("page_url", ""), self.threshold)
        result.debug.append(
            f"No platform selector matched; clue scan over {len(candidates)} element(s), "
            f"kept {len(result.cards)} card(s)"
        )
        print(f"  [products] Clue scan: {len(candidates)} candidate(s), kept {len(result.cards)}")
        return result


COLLECT_CARDS_JS = '''(opts) => {
    const cap = opts.markupCap;
    let nodes;
    if (opts.selector) {
        nodes = Array.from(document.querySelectorAll(opts.selector));
    } else {
        const re = new RegExp(opts.classPattern, 'i');
        nodes = Array.from(document.querySelectorAll('[class]')).filter(el => {
            const c = el.getAttribute('class') || '';
            return re.test(c) && el.tagName !== 'BODY' && el.tagName !== 'HTML';
        });
    }
    nodes = nodes.slice(0, opts.selector ? opts.maxCards : opts.maxCards * 5);

    const clean = (s) => (s || '').trim().replace(/\\s+/g, ' ');
    const text = (el) => el ? clean(el.innerText || el.textContent).substring(0, 200) : null;
    const PRICE = '[class*="price" i], [data-price], [itemprop="price"]';

    function asset(el, kind) {
        const a = {
            type: kind,
            tag: el.tagName.toLowerCase(),
            element_id: el.id || null,
            class_name: el.getAttribute('class'),
            markup: (el.outerHTML || '').substring(0, cap),
        };
        if (kind === 'image') { a.src = el.currentSrc || el.src || el.getAttribute('data-src'); a.alt = el.getAttribute('alt'); }
        if (kind === 'heading' || kind === 'button') a.text = text(el);
        if (kind === 'link') { a.href = el.href; a.text = text(el); }
        return a;
    }

    const candidates = nodes.map(el => {
        const images = Array.from(el.querySelectorAll('img'));
        const headings = Array.from(el.querySelectorAll('h1, h2, h3, h4, h5, h6, [class*="title" i], [class*="name" i]'));
        const links = Array.from(el.querySelectorAll('a[href]'));
        if (el.matches('a[href]')) links.unshift(el);
        const actions = Array.from(el.querySelectorAll('button, a, input[type="submit"], [role="button"]'));
        const price = el.querySelector(PRICE);
        const description = el.querySelector('p, [class*="description" i]');

        let parent = -1;
        for (let node = el.parentElement; node; node = node.parentElement) {
            const idx = nodes.indexOf(node);
            if (idx !== -1) { parent = idx; break; }
        }

        const assets = [];
        images.slice(0, 3).forEach(i => assets.push(asset(i, 'image')));
        headings.filter(h => /^H[1-6]$/.test(h.tagName)).slice(0, 2).forEach(h => assets.push(asset(h, 'heading')));
        links.slice(0, 3).forEach(l => assets.push(asset(l, 'link')));
        actions.filter(b => b.tagName !== 'A').slice(0, 2).forEach(b => assets.push(asset(b, 'button')));

        return {
            tag: el.tagName.toLowerCase(),
            class_name: el.getAttribute('class'),
            element_id: el.id || null,
            links: links.map(l => ({ href: l.href, text: text(l) })),
            actions: actions.map(b => text(b) || b.value || b.getAttribute('aria-label') || ''),
            has_image: images.length > 0,
            has_heading: headings.length > 0,
            has_price: !!price,
            title: headings.length ? text(headings[0]) : (images[0] ? images[0].alt || null : null),
            price: price ? text(price) : null,
            description: description ? text(description) : null,
            assets: assets,
            markup: (el.outerHTML || '').substring(0, cap),
            parent: parent,
        };
    });

    return { page_url: location.href, candidates: candidates };
}'''
