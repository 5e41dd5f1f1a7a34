"""
Search box detection and synthesis.

A replica has no backend, so every search box on it must submit straight
to the original site's search page. Three pieces:

  * classification shared with the block classifier: what counts as a
    search input, and which inputs are newsletter/email boxes that must
    never be treated as search even when they say "search";
  * a SearchDescriptor taken from the live DOM for the metadata;
  * HTML authoring on the sanitized document: wrap inputs in a GET form
    that targets the origin's search endpoint, plus an inline script that
    keeps trying to wire the box up after replay (widgets that re-render
    the header, lazily injected search flyouts).
"""

import json
import re
from dataclasses import dataclass
from types import MappingProxyType
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from pagereplica.models import Asset, SearchDescriptor

SEARCH_VOCABULARY = re.compile(r"search", re.I)
EMAIL_VOCABULARY = re.compile(r"e-?mail|newsletter|subscribe|sign-?up", re.I)
SEARCH_PARAM_NAMES = frozenset({"q", "query", "s", "search", "keyword", "keywords"})

ORIGIN_ATTR = "data-replica-origin"
FALLBACK_ATTR = "data-replica-search"

CONTAINER_CLASSES = ("search-container", "search-flyout-area", "desktop-search", "search-form", "site-search")


@dataclass(frozen=True)
class SearchRoute:
    action: str
    param: str = "q"


DEFAULT_SEARCH_OVERRIDES = MappingProxyType({
    "keurig.com": SearchRoute("https://www.keurig.com/search", "text"),
})


# =============================================================================
# Classification
# =============================================================================

def _attr_text(*values) -> str:
    return " ".join(v for v in values if v)


def is_email_like(input_type=None, name=None, placeholder=None, aria_label=None,
                  element_id=None, class_name=None, title=None) -> bool:
    if (input_type or "").lower() == "email":
        return True
    return bool(EMAIL_VOCABULARY.search(
        _attr_text(name, placeholder, aria_label, element_id, class_name, title)
    ))


def is_search_like(input_type=None, name=None, placeholder=None, aria_label=None,
                   element_id=None, class_name=None, title=None) -> bool:
    """Search-looking and not an email/newsletter box."""
    if is_email_like(input_type, name, placeholder, aria_label, element_id, class_name, title):
        return False
    if (input_type or "").lower() == "search":
        return True
    if (name or "").lower() in SEARCH_PARAM_NAMES:
        return True
    return bool(SEARCH_VOCABULARY.search(
        _attr_text(name, placeholder, aria_label, element_id, class_name, title)
    ))


def is_search_asset(asset: Asset) -> bool:
    if asset.type != "input":
        return False
    if asset.input_type in ("hidden", "submit", "button", "checkbox", "radio"):
        return False
    return is_search_like(
        asset.input_type, asset.name, asset.placeholder, asset.aria_label,
        asset.element_id, asset.class_name, asset.title,
    )


def _tag_is_search_input(tag) -> bool:
    if tag.name not in ("input", "textarea"):
        return False
    input_type = (tag.get("type") or "text").lower()
    if input_type in ("hidden", "submit", "button", "checkbox", "radio", "image", "reset"):
        return False
    return is_search_like(
        input_type,
        tag.get("name"),
        tag.get("placeholder"),
        tag.get("aria-label"),
        tag.get("id"),
        " ".join(tag.get("class") or []),
        tag.get("title"),
    )


# =============================================================================
# Descriptor (live DOM)
# =============================================================================

def select_search_descriptor(candidates: list[dict], fallback_action: str = "") -> SearchDescriptor | None:
    """Pick the first candidate input that is a search box and not an email box."""
    for cand in candidates or []:
        if not is_search_like(
            cand.get("input_type"), cand.get("name"), cand.get("placeholder"),
            cand.get("aria_label"), cand.get("element_id"), cand.get("class_name"),
            cand.get("title"),
        ):
            continue
        return SearchDescriptor(
            input_markup=cand.get("input_markup") or "",
            submit_button_markup=cand.get("submit_markup"),
            icon_markup=cand.get("icon_markup"),
            form_action=cand.get("form_action") or fallback_action,
            form_method=(cand.get("form_method") or "get").lower(),
            container_markup=cand.get("container_markup") or "",
        )
    return None


async def extract_search_descriptor(page, route: SearchRoute, container_cap: int = 4000) -> SearchDescriptor | None:
    candidates = await page.evaluate(SEARCH_CANDIDATES_JS, {"containerCap": container_cap})
    descriptor = select_search_descriptor(candidates or [], route.action)
    if descriptor:
        print(f"  [search] Search box found (form action: {descriptor.form_action})")
    else:
        print(f"  [search] No search box among {len(candidates or [])} candidate input(s)")
    return descriptor


# =============================================================================
# Authoring (sanitized HTML)
# =============================================================================

class SearchSynthesizer:
    """Makes every search input on the replica submit to the origin's search page."""

    def __init__(self, overrides=DEFAULT_SEARCH_OVERRIDES):
        self.overrides = overrides

    @classmethod
    def from_settings(cls, settings) -> "SearchSynthesizer":
        overrides = dict(DEFAULT_SEARCH_OVERRIDES)
        for domain, target in (settings.search_overrides or {}).items():
            action, _, param = target.partition("?")
            overrides[domain.lower()] = SearchRoute(action, param or "q")
        return cls(MappingProxyType(overrides))

    def route_for(self, page_url: str) -> SearchRoute:
        parsed = urlparse(page_url)
        host = (parsed.hostname or "").lower()
        bare = host[4:] if host.startswith("www.") else host
        for domain, route in self.overrides.items():
            if bare == domain or bare.endswith("." + domain):
                return route
        scheme = parsed.scheme if parsed.scheme in ("http", "https") else "https"
        return SearchRoute(f"{scheme}://{parsed.netloc.lower()}/search", "q")

    def ensure_search_forms(self, html: str, page_url: str) -> str:
        """Put every search input inside a GET form aimed at the origin's search page."""
        soup = BeautifulSoup(html, "lxml")
        route = self.route_for(page_url)
        wired = 0

        for field in [t for t in soup.find_all(["input", "textarea"]) if _tag_is_search_input(t)]:
            form = field.find_parent("form")
            if form is None:
                form = self._wrap_in_form(soup, field)
            form["action"] = route.action
            form["method"] = "get"
            field["name"] = route.param

            if not form.select_one('button[type="submit"], input[type="submit"], button:not([type])'):
                submit = soup.new_tag("button", attrs={"type": "submit", "aria-hidden": "true", "tabindex": "-1"})
                submit["style"] = "display:none"
                form.append(submit)
            wired += 1

        print(f"  [search] {wired} search input(s) wired to {route.action}?{route.param}=")
        return str(soup)

    def _wrap_in_form(self, soup, field):
        container = None
        for parent in field.parents:
            if parent.name in ("body", "html", "[document]"):
                break
            classes = parent.get("class") or []
            if parent.get("role") == "search" or any(c in CONTAINER_CLASSES for c in classes):
                container = parent
                break

        if container is None:
            parent = field.parent
            # Never wrap the whole document
            if parent is not None and parent.name not in ("body", "html", "[document]", "header", "nav", "main"):
                container = parent
            else:
                container = field

        form = soup.new_tag("form", attrs={"role": "search"})
        container.wrap(form)
        return form

    def synthesize(self, html: str, page_url: str) -> str:
        return self.inject_fallback(self.ensure_search_forms(html, page_url), page_url)

    def inject_fallback(self, html: str, page_url: str) -> str:
        """Mark the body with the origin and append the replay-time search script."""
        soup = BeautifulSoup(html, "lxml")
        route = self.route_for(page_url)
        parsed = urlparse(page_url)
        origin = f"{parsed.scheme or 'https'}://{parsed.netloc.lower()}"

        body = soup.body
        if body is None:
            body = soup.new_tag("body")
            (soup.html or soup).append(body)
        body[ORIGIN_ATTR] = origin

        # Same-origin routes go in as a path; the script rebuilds them from the marker
        action = route.action
        if action.startswith(origin + "/"):
            action = action[len(origin):]

        for old in soup.select(f"script[{FALLBACK_ATTR}]"):
            old.decompose()

        script = soup.new_tag("script", attrs={FALLBACK_ATTR: "fallback"})
        script.string = (
            SEARCH_FALLBACK_JS
            .replace("__ORIGIN_ATTR__", json.dumps(ORIGIN_ATTR))
            .replace("__ACTION__", json.dumps(action))
            .replace("__PARAM__", json.dumps(route.param))
        )
        body.append(script)
        return str(soup)


# =============================================================================
# JS
# =============================================================================

SEARCH_CANDIDATES_JS = '''(opts) => {
    const INPUTS = [
        'input[type="search"]',
        'input[name="q"]', 'input[name="query"]', 'input[name="search"]', 'input[name="s"]', 'input[name="text"]',
        'input[placeholder*="search" i]', 'input[aria-label*="search" i]',
        'input[id*="search" i]', 'input[class*="search" i]', 'input[title*="search" i]',
        'textarea[placeholder*="search" i]',
        'input[type="email"]', 'input[placeholder*="email" i]',
    ].join(', ');
    const cap = opts.containerCap;
    const out = [];

    document.querySelectorAll(INPUTS).forEach(input => {
        if (out.length >= 20) return;
        let container = input.closest('header, nav, [role="search"], .search-container, .search-flyout-area, .desktop-search');
        if (!container) {
            container = input;
            while (container.parentElement && container.parentElement !== document.body) {
                container = container.parentElement;
            }
        }
        const form = input.closest('form');
        const scope = form || container;
        const submit = scope.querySelector('button[type="submit"], input[type="submit"], button[aria-label*="search" i]');
        const icon = scope.querySelector('svg[class*="search" i], svg[class*="magnif" i], i[class*="search" i], [class*="icon-search"], [class*="search-icon"]');

        out.push({
            input_type: (input.getAttribute('type') || 'text').toLowerCase(),
            name: input.getAttribute('name'),
            placeholder: input.getAttribute('placeholder'),
            aria_label: input.getAttribute('aria-label'),
            element_id: input.id || null,
            class_name: input.getAttribute('class'),
            title: input.getAttribute('title'),
            input_markup: input.outerHTML,
            submit_markup: submit ? submit.outerHTML : null,
            icon_markup: icon ? icon.outerHTML : null,
            form_action: form ? (form.getAttribute('action') ? form.action : '') : '',
            form_method: form ? (form.getAttribute('method') || 'get') : 'get',
            container_markup: (container.outerHTML || '').substring(0, cap),
        });
    });
    return out;
}'''

SEARCH_FALLBACK_JS = '''(function () {
    var ORIGIN_ATTR = __ORIGIN_ATTR__;
    var ACTION = __ACTION__;
    var PARAM = __PARAM__;
    var INPUTS = 'input[type="search"], input[name="' + PARAM + '"], input[placeholder*="search" i], ' +
        'input[aria-label*="search" i], input[id*="search" i], input[class*="search" i]';
    var EMAIL = /e-?mail|newsletter|subscribe|sign-?up/i;

    function origin() {
        return (document.body && document.body.getAttribute(ORIGIN_ATTR)) || window.location.origin;
    }

    function target(query) {
        var base = /^https?:/.test(ACTION) ? ACTION : origin() + ACTION;
        return base + (base.indexOf('?') === -1 ? '?' : '&') + encodeURIComponent(PARAM) + '=' + encodeURIComponent(query);
    }

    function isEmail(input) {
        if ((input.type || '').toLowerCase() === 'email') return true;
        return EMAIL.test([input.name, input.placeholder, input.id, input.className,
            input.getAttribute('aria-label')].join(' '));
    }

    function visible(input) {
        return input.offsetParent !== null || input.getClientRects().length > 0;
    }

    function wire(input) {
        if (input.__replicaSearch || isEmail(input)) return false;
        input.__replicaSearch = true;
        input.addEventListener('keydown', function (e) {
            if (e.key !== 'Enter') return;
            var q = (input.value || '').trim();
            if (!q) return;
            e.preventDefault();
            e.stopPropagation();
            window.location.href = target(q);
        }, true);
        var form = input.closest('form');
        if (form && !form.__replicaSearch) {
            form.__replicaSearch = true;
            form.addEventListener('submit', function (e) {
                var q = (input.value || '').trim();
                e.preventDefault();
                if (q) window.location.href = target(q);
            }, true);
        }
        return true;
    }

    function attach() {
        var found = 0;
        document.querySelectorAll(INPUTS).forEach(function (input) {
            if (!isEmail(input) && visible(input)) {
                wire(input);
                found++;
            }
        });
        return found;
    }

    function injectBar() {
        if (document.querySelector('[data-replica-search-bar]')) return;
        var bar = document.createElement('form');
        bar.setAttribute('data-replica-search-bar', '');
        bar.setAttribute('role', 'search');
        bar.style.cssText = 'display:flex;gap:8px;max-width:480px;margin:12px auto;padding:0 12px;';
        var template = document.querySelector('[role="search"], .search-container, .search-flyout-area, .desktop-search');
        if (template) {
            var clone = template.cloneNode(true);
            bar.appendChild(clone);
        } else {
            var input = document.createElement('input');
            input.type = 'search';
            input.name = PARAM;
            input.placeholder = 'Search';
            input.style.cssText = 'flex:1;padding:8px 12px;border:1px solid #ccc;border-radius:4px;';
            var button = document.createElement('button');
            button.type = 'submit';
            button.textContent = 'Search';
            button.style.cssText = 'padding:8px 16px;border:0;border-radius:4px;background:#222;color:#fff;';
            bar.appendChild(input);
            bar.appendChild(button);
        }
        bar.addEventListener('submit', function (e) {
            e.preventDefault();
            var field = bar.querySelector('input');
            var q = field ? (field.value || '').trim() : '';
            if (q) window.location.href = target(q);
        });
        document.body.insertBefore(bar, document.body.firstChild);
        attach();
    }

    var tries = 0;
    var timer = setInterval(function () {
        tries++;
        var found = attach();
        if (!found && tries > 6) injectBar();
        if (found || tries >= 10) clearInterval(timer);
    }, 500);

    if (window.MutationObserver) {
        var pending = false;
        new MutationObserver(function () {
            if (pending) return;
            pending = true;
            setTimeout(function () { pending = false; attach(); }, 100);
        }).observe(document.documentElement, { childList: true, subtree: true });
    }
})();'''
