from bs4 import BeautifulSoup

from pagereplica.models import Dimensions, Playback, VideoRecord
from pagereplica.reconstruct import reconstruct_videos, render_video


def _page(*fragments):
    return "<html><body><main>" + "".join(fragments) + "</main></body></html>"


class TestRenderVideo:

    def test_media_file_renders_native_video(self):
        record = VideoRecord(index=0, type="widget", source_urls=["https://cdn.example.com/a.mp4"])
        html = render_video(record)
        assert html.startswith("<video")
        assert 'src="https://cdn.example.com/a.mp4"' in html
        assert 'type="video/mp4"' in html

    def test_html5_keeps_flags_and_all_sources(self):
        record = VideoRecord(
            index=1, type="html5",
            source_urls=["https://cdn.example.com/a.webm", "https://cdn.example.com/a.mp4"],
            playback=Playback(controls=False, autoplay=True, loop=True, muted=True,
                              poster="https://cdn.example.com/a.jpg"),
        )
        video = BeautifulSoup(render_video(record), "html.parser").video
        assert video.has_attr("autoplay") and video.has_attr("loop") and video.has_attr("muted")
        assert video["poster"] == "https://cdn.example.com/a.jpg"
        assert [s["src"] for s in video.find_all("source")] == [
            "https://cdn.example.com/a.webm", "https://cdn.example.com/a.mp4",
        ]

    def test_host_renders_responsive_iframe(self):
        record = VideoRecord(index=2, type="vimeo", source_urls=["https://player.vimeo.com/video/76979871"],
                             dimensions=Dimensions(width=800, height=450))
        soup = BeautifulSoup(render_video(record), "html.parser")
        assert soup.iframe["src"] == "https://player.vimeo.com/video/76979871"
        assert "padding-bottom:56.25%" in soup.div["style"]

    def test_thumbnail_gets_play_overlay(self):
        record = VideoRecord(index=3, type="keen-slide", thumbnail_url="https://cdn.example.com/t.jpg")
        html = render_video(record)
        assert 'src="https://cdn.example.com/t.jpg"' in html
        assert "M8 5v14l11-7z" in html

    def test_diagnostic_placeholder_for_empty_widget(self):
        record = VideoRecord(index=4, type="widget", sample='<div class="reeview-app-widget"><script>x</script></div>')
        soup = BeautifulSoup(render_video(record), "html.parser")
        box = soup.find(attrs={"data-replica-diagnostic": True})
        assert box is not None
        assert "Video unavailable" in box.get_text()
        # sample is shown as text, never as live markup
        assert soup.find("script") is None
        assert "reeview-app-widget" in box.pre.get_text()


class TestReconstructVideos:

    def test_every_placeholder_replaced_and_no_markers_left(self):
        html = _page(
            '<div data-video-placeholder="0" class="reeview-app-widget"><span>junk</span></div>',
            '<video data-video-placeholder="1" src="https://cdn.example.com/b.mp4"></video>',
        )
        records = [
            VideoRecord(index=0, type="widget", source_urls=["https://www.youtube.com/embed/dQw4w9WgXcQ"]),
            VideoRecord(index=1, type="html5", source_urls=["https://cdn.example.com/b.mp4"]),
        ]
        soup = BeautifulSoup(reconstruct_videos(html, records), "lxml")
        assert soup.select("[data-video-placeholder]") == []
        assert soup.select_one('[data-replica-video="0"] iframe')["src"] == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert soup.select_one('video[data-replica-video="1"]') is not None
        assert "junk" not in soup.get_text()

    def test_missing_marker_is_skipped(self):
        html = _page("<p>nothing tagged</p>")
        records = [VideoRecord(index=7, type="widget", source_urls=["https://cdn.example.com/c.mp4"])]
        out = reconstruct_videos(html, records)
        assert "nothing tagged" in out
        assert "c.mp4" not in out

    def test_orphan_markers_are_stripped(self):
        html = _page('<div data-video-placeholder="9">kept content</div>')
        soup = BeautifulSoup(reconstruct_videos(html, []), "lxml")
        assert soup.select("[data-video-placeholder]") == []
        assert "kept content" in soup.get_text()

    def test_empty_widget_becomes_diagnostic(self):
        html = _page('<div data-video-placeholder="0" data-videowise="x"></div>')
        records = [VideoRecord(index=0, type="widget", sample='<div data-videowise="x"></div>')]
        soup = BeautifulSoup(reconstruct_videos(html, records), "lxml")
        assert soup.select_one('[data-replica-diagnostic="widget"]') is not None
