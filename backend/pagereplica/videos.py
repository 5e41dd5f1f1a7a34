"""
Video and widget resolution.

Two halves:
  1. RESOLVE_VIDEOS_JS runs in the page. It numbers every video-bearing
     element, tags it with data-video-placeholder="<index>" and returns the
     raw evidence it found (video/source src, iframe src, schema.org meta,
     data-* attributes, inline script and JSON config text), including what
     sits inside open shadow roots.
  2. build_video_records() turns that evidence into VideoRecords: URLs are
     pulled out with the media-file / YouTube / Vimeo / Wistia patterns,
     canonicalised and de-duplicated in evidence order.

Tagged elements stay in the DOM; the reconstructor swaps them out later.
"""

import re

from pagereplica.models import Dimensions, Playback, VideoRecord

PLACEHOLDER_ATTR = "data-video-placeholder"

SLIDE_SELECTORS = (
    ".keen-slider__slide",
    ".swiper-slide[data-video]",
)

WIDGET_SELECTORS = (
    ".reeview-app-widget",
    "[data-videowise]",
    '[class*="videowise"]:not(.keen-slider__slide)',
    '[id*="videowise"]',
    '[class*="video-widget"]',
    '[data-widget-type="video"]',
    '[data-app="videowise"]',
    ".video-reviews-widget",
    ".product-videos-widget",
)

DATA_ATTRIBUTES = (
    "data-video-url",
    "data-video-src",
    "data-src",
    "data-video-id",
    "data-youtube-id",
    "data-vimeo-id",
    "data-wistia-id",
    "data-video-embed",
    "data-embed-url",
    "data-media-url",
)

VIDEO_HOSTS = ("youtube.com", "youtube-nocookie.com", "youtu.be", "vimeo.com", "wistia.com", "wistia.net")

SLIDE_DIMENSIONS = Dimensions(width=200, height=355)
WIDGET_DIMENSIONS = Dimensions(width=640, height=360)

MEDIA_FILE_RE = re.compile(
    r"https?://[^\s\"'`<>()]+?\.(?:mp4|webm|ogg|ogv|mov|m4v|m3u8)(?:\?[^\s\"'`<>()]*)?(?=[\s\"'`<>(),]|$)",
    re.I,
)
YOUTUBE_RE = re.compile(
    r"(?:youtube(?:-nocookie)?\.com/(?:watch\?(?:[^\s\"'&]*&)*v=|embed/|shorts/|v/)|youtu\.be/)([A-Za-z0-9_-]{11})"
)
VIMEO_RE = re.compile(r"vimeo\.com/(?:video/)?(\d+)")
WISTIA_RE = re.compile(r"wistia\.(?:net|com)/(?:embed/(?:iframe/)?|medias/)([A-Za-z0-9]+)")

MIME_TYPES = {
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "webm": "video/webm",
    "ogg": "video/ogg",
    "ogv": "video/ogg",
    "mov": "video/quicktime",
    "m3u8": "application/x-mpegURL",
}


# =============================================================================
# URL helpers
# =============================================================================

def embed_url(platform: str, video_id: str) -> str:
    if platform == "youtube":
        return f"https://www.youtube.com/embed/{video_id}"
    if platform == "vimeo":
        return f"https://player.vimeo.com/video/{video_id}"
    if platform == "wistia":
        return f"https://fast.wistia.net/embed/iframe/{video_id}"
    raise ValueError(f"unknown video host: {platform}")


def video_host(url: str) -> tuple[str, str] | None:
    """Return (platform, video_id) for a YouTube/Vimeo/Wistia URL."""
    if not url:
        return None
    for platform, pattern in (("youtube", YOUTUBE_RE), ("vimeo", VIMEO_RE), ("wistia", WISTIA_RE)):
        match = pattern.search(url)
        if match:
            return platform, match.group(1)
    return None


def is_media_file(url: str) -> bool:
    return bool(url) and MEDIA_FILE_RE.fullmatch(url.strip()) is not None


def media_type(url: str) -> str:
    path = url.split("?", 1)[0].lower()
    ext = path.rsplit(".", 1)[-1] if "." in path else ""
    return MIME_TYPES.get(ext, "video/mp4")


def _normalise_text(text: str) -> str:
    # JSON blobs escape forward slashes
    return text.replace("\\/", "/").replace("\\u002F", "/").replace("\\u0026", "&")


def extract_video_urls(text: str) -> list[str]:
    """Every recognisable video URL in a blob of text, canonicalised, in order."""
    if not text:
        return []
    text = _normalise_text(text)
    found = []
    for match in MEDIA_FILE_RE.finditer(text):
        found.append(match.group(0))
    for platform, pattern in (("youtube", YOUTUBE_RE), ("vimeo", VIMEO_RE), ("wistia", WISTIA_RE)):
        for match in pattern.finditer(text):
            found.append(embed_url(platform, match.group(1)))
    return _ordered_unique(found)


def canonical_url(url: str) -> str | None:
    """Canonical form of a single URL, or None if it isn't a usable video source."""
    if not url:
        return None
    url = _normalise_text(url.strip())
    if url.startswith("//"):
        url = "https:" + url
    if url.startswith("blob:"):
        return None
    host = video_host(url)
    if host:
        return embed_url(*host)
    if url.startswith(("http://", "https://")):
        return url
    return None


def expand_data_attribute(attr: str, value: str) -> str | None:
    """Resolve one data-* attribute to a video URL.

    Bare IDs only make sense on platform-specific attributes, e.g.
    data-youtube-id="dQw4w9WgXcQ".
    """
    if not value:
        return None
    value = value.strip()
    for platform in ("youtube", "vimeo", "wistia"):
        if platform in attr and not value.startswith(("http", "//")):
            return embed_url(platform, value)

    if value.startswith(("http://", "https://", "//")):
        url = canonical_url(value)
        if not url:
            return None
        if is_media_file(url) or video_host(url) or "video" in attr or "embed" in attr:
            return url
        return None

    # Bare value on a generic attribute: only accept something that already
    # looks like a video URL.
    urls = extract_video_urls(value)
    return urls[0] if urls else None


def _ordered_unique(items) -> list:
    seen = set()
    out = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


# =============================================================================
# Evidence -> records
# =============================================================================

def resolve_sources(evidence: dict) -> list[str]:
    """Ordered, de-duplicated source URLs from collected evidence.

    Order: native video/source, host iframes, schema.org contentUrl,
    data-* attributes, inline script text, JSON configuration.
    """
    urls = []
    for src in evidence.get("video_srcs", []):
        urls.append(canonical_url(src))
    for src in evidence.get("iframe_srcs", []):
        url = canonical_url(src)
        if url and video_host(url):
            urls.append(url)
    for src in evidence.get("content_urls", []):
        urls.append(canonical_url(src))
    for attr, value in evidence.get("data_attrs", []):
        urls.append(expand_data_attribute(attr, value))
    for text in evidence.get("script_texts", []):
        urls.extend(extract_video_urls(text))
    for text in evidence.get("json_texts", []):
        urls.extend(extract_video_urls(text))
    return _ordered_unique(urls)


def _first(values) -> str | None:
    for value in values or []:
        if value and str(value).strip():
            return str(value).strip()
    return None


def _dimensions(raw: dict | None, default: Dimensions) -> Dimensions:
    raw = raw or {}
    width = int(raw.get("width") or 0)
    height = int(raw.get("height") or 0)
    if width <= 0 or height <= 0:
        return default.model_copy()
    return Dimensions(width=width, height=height)


def build_video_record(candidate: dict) -> VideoRecord:
    """Turn one in-page candidate into a VideoRecord."""
    kind = candidate.get("kind", "widget")
    evidence = candidate.get("evidence") or {}
    sources = resolve_sources(evidence)
    thumbnail = _first(evidence.get("thumbnail_urls")) or _first(evidence.get("posters"))
    title = _first(evidence.get("names")) or _first([candidate.get("title")])
    playback = Playback(**(candidate.get("playback") or {}))

    if kind == "slide":
        video_type = "keen-slide"
        dimensions = _dimensions(candidate.get("dimensions"), SLIDE_DIMENSIONS)
    elif kind == "video":
        video_type = "html5"
        dimensions = _dimensions(candidate.get("dimensions"), WIDGET_DIMENSIONS)
        if not playback.poster:
            playback.poster = canonical_thumbnail(thumbnail)
    elif kind == "iframe":
        host = video_host(_first(evidence.get("iframe_srcs")) or "")
        video_type = host[0] if host else "widget"
        dimensions = _dimensions(candidate.get("dimensions"), WIDGET_DIMENSIONS)
    else:
        video_type = "widget"
        dimensions = _dimensions(candidate.get("dimensions"), WIDGET_DIMENSIONS)

    return VideoRecord(
        index=int(candidate["index"]),
        type=video_type,
        source_urls=sources,
        thumbnail_url=canonical_thumbnail(thumbnail),
        title=title,
        dimensions=dimensions,
        playback=playback,
        sample=candidate.get("sample") or "",
    )


def canonical_thumbnail(url: str | None) -> str | None:
    if not url:
        return None
    url = url.strip()
    if url.startswith("//"):
        return "https:" + url
    if url.startswith(("http://", "https://", "data:image/")):
        return url
    return None


def build_video_records(candidates: list[dict]) -> list[VideoRecord]:
    records = [build_video_record(c) for c in candidates or []]
    records.sort(key=lambda r: r.index)
    return records


async def resolve_videos(page, sample_cap: int = 1000) -> list[VideoRecord]:
    """Tag every video-bearing element in the live page and return its records."""
    candidates = await page.evaluate(RESOLVE_VIDEOS_JS, {
        "slideSelectors": list(SLIDE_SELECTORS),
        "widgetSelectors": list(WIDGET_SELECTORS),
        "dataAttributes": list(DATA_ATTRIBUTES),
        "videoHosts": list(VIDEO_HOSTS),
        "sampleCap": sample_cap,
    })
    records = build_video_records(candidates or [])
    by_type = {}
    for record in records:
        by_type[record.type] = by_type.get(record.type, 0) + 1
    print(f"  [videos] {len(records)} video record(s): {by_type}")
    return records


# =============================================================================
# In-page tagging + evidence collection
# =============================================================================

RESOLVE_VIDEOS_JS = '''(opts) => {
    const ATTR = 'data-video-placeholder';
    const out = [];
    let index = 0;

    const hostMatch = (src) => !!src && opts.videoHosts.some(h => src.includes(h));
    const tagged = (el) => !!(el.closest && el.closest('[' + ATTR + ']'));
    const sample = (el) => (el.outerHTML || '').substring(0, opts.sampleCap);

    function emptyEvidence() {
        return {
            video_srcs: [], iframe_srcs: [], content_urls: [], thumbnail_urls: [],
            names: [], posters: [], data_attrs: [], script_texts: [], json_texts: [],
        };
    }

    function scope(root, sel) {
        const list = Array.from(root.querySelectorAll(sel));
        if (root.matches && root.matches(sel)) list.unshift(root);
        return list;
    }

    function collect(root, ev) {
        scope(root, 'video').forEach(v => {
            if (v.currentSrc) ev.video_srcs.push(v.currentSrc);
            if (v.getAttribute('src')) ev.video_srcs.push(v.src);
            v.querySelectorAll('source[src]').forEach(s => ev.video_srcs.push(s.src));
            if (v.poster) ev.posters.push(v.poster);
        });
        scope(root, 'iframe[src]').forEach(f => {
            if (hostMatch(f.src)) ev.iframe_srcs.push(f.src);
        });
        root.querySelectorAll('meta[itemprop="contentUrl"], meta[itemprop="embedUrl"]').forEach(m => {
            if (m.content) ev.content_urls.push(m.content);
        });
        root.querySelectorAll('meta[itemprop="thumbnailUrl"]').forEach(m => {
            if (m.content) ev.thumbnail_urls.push(m.content);
        });
        root.querySelectorAll('meta[itemprop="name"]').forEach(m => {
            if (m.content) ev.names.push(m.content);
        });
        root.querySelectorAll('img').forEach(img => {
            const src = img.currentSrc || img.src || img.getAttribute('data-src') || '';
            if (/thumbnail|preview|poster/i.test(src)) ev.thumbnail_urls.push(src);
        });
        const withData = [];
        if (root.getAttribute) withData.push(root);
        root.querySelectorAll('*').forEach(el => withData.push(el));
        withData.forEach(el => {
            opts.dataAttributes.forEach(attr => {
                const value = el.getAttribute && el.getAttribute(attr);
                if (value) ev.data_attrs.push([attr, value]);
            });
        });
        root.querySelectorAll('script:not([type="application/json"])').forEach(s => {
            const text = s.textContent || '';
            if (text.trim()) ev.script_texts.push(text.substring(0, 20000));
        });
        scope(root, 'script[type="application/json"], [data-config], [data-settings]').forEach(el => {
            if (el.tagName === 'SCRIPT') {
                ev.json_texts.push((el.textContent || '').substring(0, 20000));
            } else {
                ['data-config', 'data-settings'].forEach(a => {
                    const v = el.getAttribute(a);
                    if (v) ev.json_texts.push(v.substring(0, 20000));
                });
            }
        });
    }

    function evidenceFor(el) {
        const ev = emptyEvidence();
        if (el.shadowRoot) collect(el.shadowRoot, ev);
        collect(el, ev);
        el.querySelectorAll('*').forEach(child => {
            if (child.shadowRoot) collect(child.shadowRoot, ev);
        });
        return ev;
    }

    function dims(el) {
        const r = el.getBoundingClientRect();
        return { width: Math.round(r.width), height: Math.round(r.height) };
    }

    const usableUrl = (u) => !!u && !/^blob:/i.test(u) && /^(https?:)?\\/\\//i.test(u);

    function hasSource(ev) {
        if (ev.video_srcs.concat(ev.content_urls, ev.iframe_srcs).some(usableUrl)) return true;
        return ev.data_attrs.some(([attr, value]) =>
            attr.includes('video') && !!value.trim() && !/^blob:/i.test(value.trim()));
    }

    function tag(el, kind, extra) {
        const record = Object.assign({
            index: index,
            kind: kind,
            sample: sample(el),
            dimensions: dims(el),
        }, extra || {});
        if (!record.evidence) record.evidence = evidenceFor(el);
        el.setAttribute(ATTR, String(index));
        out.push(record);
        index++;
        return record;
    }

    // 1. Carousel slides, one record per slide whose video resolves to a real URL.
    // The rest are left for the widget pass.
    opts.slideSelectors.forEach(sel => {
        let nodes = [];
        try { nodes = document.querySelectorAll(sel); } catch (e) { return; }
        nodes.forEach(slide => {
            if (tagged(slide)) return;
            const hasVideo = slide.querySelector('meta[itemprop="contentUrl"], video') ||
                opts.dataAttributes.some(a => a.includes('video') && slide.querySelector('[' + a + ']'));
            if (!hasVideo) return;
            const ev = evidenceFor(slide);
            if (!hasSource(ev)) return;
            const titleEl = slide.querySelector('.vw-cmp__in-video-card--title, [class*="title"]');
            tag(slide, 'slide', { title: titleEl ? titleEl.textContent.trim() : null, evidence: ev });
        });
    });

    // 2. Widget containers, skipping any that wrap an already-tagged slide
    opts.widgetSelectors.forEach(sel => {
        let nodes = [];
        try { nodes = document.querySelectorAll(sel); } catch (e) { return; }
        nodes.forEach(widget => {
            if (tagged(widget)) return;
            if (widget.querySelector('[' + ATTR + ']')) return;
            const titleEl = widget.querySelector('h1, h2, h3, h4, [class*="title"]');
            tag(widget, 'widget', { title: titleEl ? titleEl.textContent.trim() : null });
        });
    });

    // 3. Standalone native videos
    document.querySelectorAll('video').forEach(v => {
        if (tagged(v)) return;
        tag(v, 'video', {
            playback: {
                controls: v.hasAttribute('controls'),
                autoplay: v.hasAttribute('autoplay'),
                loop: v.hasAttribute('loop'),
                muted: v.hasAttribute('muted') || v.muted,
                playsinline: v.hasAttribute('playsinline'),
                poster: v.poster || null,
            },
        });
    });

    // 4. Standalone video-host iframes
    document.querySelectorAll('iframe[src]').forEach(f => {
        if (tagged(f) || !hostMatch(f.src)) return;
        const record = tag(f, 'iframe', { title: f.title || null });
        if (!record.evidence.iframe_srcs.length) record.evidence.iframe_srcs.push(f.src);
    });

    return out;
}'''
