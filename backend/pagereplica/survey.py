"""
Single-pass content survey of the live page.

SURVEY_JS walks the document once (descending into open shadow roots) and
classifies each element into at most one asset kind. Alongside the flat
asset list it returns a few raw collections (carousels, forms, CTA-ish
buttons, native videos) that end up in the metadata as-is.
"""

from dataclasses import dataclass, field

from pydantic import ValidationError

from pagereplica.models import (
    Asset,
    ButtonSummary,
    Carousel,
    Collections,
    FormSummary,
    VideoSummary,
)

# First match wins, so submit inputs are buttons and a.btn is not a link.
SURVEY_SELECTORS = (
    ("button", 'button, input[type="button"], input[type="submit"], [role="button"], .btn'),
    ("input", "input, textarea, select"),
    ("image", "img"),
    ("icon", 'svg, i[class*="icon"], span[class*="icon"]'),
    ("heading", "h1, h2, h3, h4, h5, h6"),
    ("link", "a[href]"),
    ("video", "video"),
)

CAROUSEL_SELECTORS = (
    ".keen-slider",
    ".swiper",
    ".swiper-container",
    ".slick-slider",
    ".flickity-enabled",
    ".splide",
    ".owl-carousel",
    '[class*="carousel"]',
)


@dataclass
class SurveyResult:
    assets: list[Asset] = field(default_factory=list)
    collections: Collections = field(default_factory=Collections)

    def count(self, kind: str) -> int:
        return sum(1 for a in self.assets if a.type == kind)


def parse_survey(raw: dict | None, markup_cap: int = 300) -> SurveyResult:
    """Validate the browser payload into models, enforcing the markup cap."""
    raw = raw or {}
    assets = []
    for item in raw.get("assets") or []:
        item = dict(item)
        item["markup"] = (item.get("markup") or "")[:markup_cap]
        try:
            assets.append(Asset.model_validate(item))
        except ValidationError as e:
            print(f"  [survey] Skipping malformed asset: {e.errors()[0].get('msg')}")

    collections_raw = raw.get("collections") or {}
    collections = Collections(
        carousels=[Carousel(**c) for c in collections_raw.get("carousels") or []],
        forms=[FormSummary(**f) for f in collections_raw.get("forms") or []],
        buttons=[ButtonSummary(**b) for b in collections_raw.get("buttons") or []],
        videos=[VideoSummary(**v) for v in collections_raw.get("videos") or []],
    )
    return SurveyResult(assets=assets, collections=collections)


async def survey_page(page, markup_cap: int = 300) -> SurveyResult:
    raw = await page.evaluate(SURVEY_JS, {
        "selectors": [list(pair) for pair in SURVEY_SELECTORS],
        "carouselSelectors": list(CAROUSEL_SELECTORS),
        "markupCap": markup_cap,
    })
    result = parse_survey(raw, markup_cap)
    kinds = {}
    for asset in result.assets:
        kinds[asset.type] = kinds.get(asset.type, 0) + 1
    print(f"  [survey] {len(result.assets)} assets {kinds}, "
          f"{len(result.collections.forms)} forms, "
          f"{len(result.collections.carousels)} carousels")
    return result


SURVEY_JS = '''(opts) => {
    const assets = [];
    const cap = opts.markupCap;
    const SECTIONING = ['SECTION', 'DIV', 'HEADER', 'FOOTER', 'NAV', 'MAIN', 'ARTICLE', 'ASIDE', 'FORM', 'UL', 'LI'];

    const text = (el) => ((el.innerText || el.textContent || '').trim().replace(/\\s+/g, ' ')).substring(0, 200) || null;
    const attr = (el, name) => el.getAttribute(name) || null;
    const className = (el) => {
        const c = el.getAttribute('class');
        return c ? c.trim().replace(/\\s+/g, ' ') : null;
    };

    function parentKey(el) {
        let node = el.parentElement || (el.getRootNode && el.getRootNode().host) || null;
        while (node && node !== document.body && node !== document.documentElement) {
            if (SECTIONING.includes(node.tagName)) {
                if (node.id) return node.tagName.toLowerCase() + ':#' + node.id;
                const c = className(node);
                if (c) return node.tagName.toLowerCase() + ':' + c;
            }
            node = node.parentElement || (node.getRootNode && node.getRootNode().host) || null;
        }
        return 'root';
    }

    function labelFor(el) {
        if (el.labels && el.labels.length) return text(el.labels[0]);
        if (el.id) {
            const l = document.querySelector('label[for="' + CSS.escape(el.id) + '"]');
            if (l) return text(l);
        }
        return null;
    }

    function assetFor(el, kind) {
        const a = {
            type: kind,
            tag: el.tagName.toLowerCase(),
            element_id: el.id || null,
            class_name: className(el),
            aria_label: attr(el, 'aria-label'),
            title: attr(el, 'title'),
            parent_key: parentKey(el),
            markup: (el.outerHTML || '').substring(0, cap),
        };
        if (kind === 'input') {
            a.input_type = (attr(el, 'type') || (el.tagName === 'INPUT' ? 'text' : el.tagName.toLowerCase())).toLowerCase();
            a.name = attr(el, 'name');
            a.placeholder = attr(el, 'placeholder');
            a.label = labelFor(el);
        } else if (kind === 'button') {
            a.input_type = (attr(el, 'type') || '').toLowerCase() || null;
            a.text = text(el) || attr(el, 'value');
            a.href = el.tagName === 'A' ? el.href : null;
        } else if (kind === 'image') {
            a.src = el.currentSrc || el.src || attr(el, 'data-src');
            a.alt = attr(el, 'alt');
        } else if (kind === 'heading' || kind === 'icon') {
            a.text = text(el);
        } else if (kind === 'link') {
            a.text = text(el);
            a.href = el.href;
        } else if (kind === 'video') {
            a.src = el.currentSrc || el.src || null;
            a.poster = el.poster || null;
        }
        return a;
    }

    function visit(root) {
        root.querySelectorAll('*').forEach(el => {
            for (const [kind, sel] of opts.selectors) {
                if (el.matches(sel)) {
                    // svg internals are part of the icon, not assets of their own
                    if (kind !== 'icon' && el.closest('svg')) break;
                    if (kind === 'icon' && el.parentElement && el.parentElement.closest('svg')) break;
                    assets.push(assetFor(el, kind));
                    break;
                }
            }
            if (el.shadowRoot) visit(el.shadowRoot);
        });
    }
    visit(document);

    const carousels = [];
    opts.carouselSelectors.forEach(sel => {
        document.querySelectorAll(sel).forEach(el => {
            if (carousels.some(c => c.el === el || c.el.contains(el))) return;
            const slides = el.querySelectorAll('[class*="slide"], [class*="item"]').length;
            carousels.push({ el: el, selector: sel, slides: slides });
        });
    });

    const forms = Array.from(document.querySelectorAll('form')).map(f => ({
        action: f.action || '',
        method: (f.method || 'get').toLowerCase(),
        fields: Array.from(f.querySelectorAll('input, textarea, select'))
            .map(i => i.name || i.id || i.type || i.tagName.toLowerCase()),
    }));

    const buttons = [];
    document.querySelectorAll('button, a.btn, [role="button"], input[type="submit"]').forEach(b => {
        const t = (b.innerText || b.value || '').trim();
        if (t && t.length < 50) buttons.push({ text: t, href: b.href || null });
    });

    const videos = Array.from(document.querySelectorAll('video')).map(v => ({
        src: v.currentSrc || v.src || null,
        poster: v.poster || null,
    }));

    return {
        assets: assets,
        collections: {
            carousels: carousels.map(c => ({
                selector: c.selector,
                slides: c.slides,
                sample: (c.el.outerHTML || '').substring(0, cap),
            })),
            forms: forms,
            buttons: buttons,
            videos: videos,
        },
    };
}'''
