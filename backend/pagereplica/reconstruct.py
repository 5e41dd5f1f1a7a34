"""
Replace tagged video placeholders with portable markup.

Rendering is chosen from the record's evidence, best first:
native <video> for direct media files, a responsive iframe for
YouTube/Vimeo/Wistia, a thumbnail with a play overlay, and as a last
resort a labelled diagnostic box carrying a piece of the original markup.
"""

from html import escape

from bs4 import BeautifulSoup

from pagereplica.models import VideoRecord
from pagereplica.videos import PLACEHOLDER_ATTR, embed_url, is_media_file, media_type, video_host

PLAY_ICON = (
    '<svg viewBox="0 0 24 24" width="64" height="64" fill="#fff" aria-hidden="true">'
    '<path d="M8 5v14l11-7z"/></svg>'
)

DIAGNOSTIC_SAMPLE_CAP = 300


def _ratio(record: VideoRecord) -> float:
    width = record.dimensions.width or 640
    height = record.dimensions.height or 360
    return round(height / width * 100, 4)


def render_native(record: VideoRecord, sources: list[str]) -> str:
    flags = []
    if record.playback.controls or not record.playback.autoplay:
        flags.append("controls")
    if record.playback.autoplay:
        flags.append("autoplay")
    if record.playback.loop:
        flags.append("loop")
    if record.playback.muted or record.playback.autoplay:
        flags.append("muted")
    if record.playback.playsinline:
        flags.append("playsinline")

    poster = record.playback.poster or record.thumbnail_url
    attrs = " ".join(flags)
    if poster:
        attrs += f' poster="{escape(poster)}"'
    source_tags = "".join(
        f'<source src="{escape(src)}" type="{media_type(src)}">' for src in sources
    )
    return (
        f'<video data-replica-video="{record.index}" {attrs} preload="metadata" '
        f'style="display:block;width:100%;max-width:{record.dimensions.width}px;height:auto">'
        f"{source_tags}</video>"
    )


def render_embed(record: VideoRecord, platform: str, video_id: str) -> str:
    src = embed_url(platform, video_id)
    title = escape(record.title or f"{platform} video")
    return (
        f'<div data-replica-video="{record.index}" class="replica-video replica-video--{platform}" '
        f'style="position:relative;width:100%;max-width:{record.dimensions.width}px;'
        f'padding-bottom:{_ratio(record)}%;height:0;overflow:hidden">'
        f'<iframe src="{escape(src)}" title="{title}" frameborder="0" loading="lazy" '
        f'allow="autoplay; encrypted-media; picture-in-picture; fullscreen" allowfullscreen '
        f'style="position:absolute;top:0;left:0;width:100%;height:100%"></iframe>'
        f"</div>"
    )


def render_thumbnail(record: VideoRecord) -> str:
    alt = escape(record.title or "Video")
    return (
        f'<div data-replica-video="{record.index}" class="replica-video replica-video--thumbnail" '
        f'style="position:relative;display:inline-block;width:100%;max-width:{record.dimensions.width}px">'
        f'<img src="{escape(record.thumbnail_url)}" alt="{alt}" loading="lazy" '
        f'style="display:block;width:100%;height:auto">'
        f'<span style="position:absolute;top:50%;left:50%;transform:translate(-50%,-50%);'
        f'background:rgba(0,0,0,.55);border-radius:50%;padding:8px;line-height:0">{PLAY_ICON}</span>'
        f"</div>"
    )


def render_diagnostic(record: VideoRecord) -> str:
    sample = escape((record.sample or "")[:DIAGNOSTIC_SAMPLE_CAP])
    return (
        f'<div data-replica-video="{record.index}" data-replica-diagnostic="{record.type}" '
        f'class="replica-video replica-video--missing" '
        f'style="box-sizing:border-box;width:100%;max-width:{record.dimensions.width}px;'
        f'min-height:120px;padding:16px;border:2px dashed #c33;background:#fff5f5;'
        f'color:#611;font:13px/1.4 monospace">'
        f"<strong>Video unavailable</strong> ({record.type} #{record.index})"
        f'<pre style="white-space:pre-wrap;word-break:break-all;margin:8px 0 0">{sample}</pre>'
        f"</div>"
    )


def render_video(record: VideoRecord) -> str:
    media = [url for url in record.source_urls if is_media_file(url)]
    if record.type == "html5" and media:
        return render_native(record, media)

    for url in record.source_urls:
        if is_media_file(url):
            return render_native(record, [url])
        host = video_host(url)
        if host:
            return render_embed(record, *host)

    if record.thumbnail_url:
        return render_thumbnail(record)
    return render_diagnostic(record)


def reconstruct_videos(html: str, records: list[VideoRecord]) -> str:
    """Swap every tagged placeholder for its rendering. Missing markers are skipped."""
    soup = BeautifulSoup(html, "lxml")
    replaced = 0
    missing = []

    for record in records:
        targets = soup.select(f'[{PLACEHOLDER_ATTR}="{record.index}"]')
        if not targets:
            missing.append(record.index)
            continue
        for target in targets:
            fragment = BeautifulSoup(render_video(record), "html.parser").find(True)
            target.replace_with(fragment)
        replaced += 1

    # Markers with no record (or left inside replaced subtrees) must not survive
    for orphan in soup.find_all(attrs={PLACEHOLDER_ATTR: True}):
        del orphan[PLACEHOLDER_ATTR]

    if missing:
        print(f"  [reconstruct] Placeholder(s) gone after sanitize, skipped: {missing}")
    print(f"  [reconstruct] Replaced {replaced}/{len(records)} video placeholder(s)")
    return str(soup)
