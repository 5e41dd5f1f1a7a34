import json

import pytest
from PIL import Image

from pagereplica.errors import WriteFailure
from pagereplica.models import Metadata
from pagereplica.search_index import build_index
from pagereplica.writer import OutputWriter

URL = "https://shop.example.com/"


@pytest.fixture
def writer(tmp_path):
    return OutputWriter(str(tmp_path / "out"), max_screenshot_height=100)


def _write(writer, screenshot=None):
    metadata = Metadata(url=URL, title="Shop")
    index = build_index([], "Shop", URL)
    return writer.write("shop", "<html><body>hi</body></html>", metadata, index, screenshot), metadata


class TestWrite:

    def test_all_artifacts(self, writer, png_bytes):
        paths, metadata = _write(writer, png_bytes)
        assert paths["html"].read_text() == "<html><body>hi</body></html>"
        assert paths["handler"].name == "search-handler.js"
        assert json.loads(paths["index"].read_text())["version"] == 1

        saved = json.loads(paths["metadata"].read_text())
        assert saved["screenshot_path"] == str(paths["screenshot"])
        assert saved["search_index_path"] == str(paths["index"])

        # 40x120 capture capped at 100px
        with Image.open(paths["screenshot"]) as img:
            assert img.size == (40, 100)

    def test_unusable_screenshot_skipped(self, writer):
        paths, metadata = _write(writer, b"not a png")
        assert paths["screenshot"] is None
        assert metadata.screenshot_path is None
        assert not (writer.output_dir / "shop.png").exists()
        assert paths["html"].exists()

    def test_failed_write_leaves_nothing(self, writer, monkeypatch):
        def broken_fsync(fd):
            raise OSError("disk full")

        monkeypatch.setattr("pagereplica.writer.os.fsync", broken_fsync)
        with pytest.raises(WriteFailure):
            _write(writer)
        assert list(writer.output_dir.iterdir()) == []

    def test_rewrite_replaces(self, writer):
        _write(writer)
        paths, _ = _write(writer)
        assert sorted(p.name for p in writer.output_dir.iterdir()) == [
            "search-handler.js", "shop-search-index.json", "shop.html", "shop.json",
        ]
        assert paths["html"].exists()


def test_install_static_assets(writer):
    target = writer.install_static_assets()
    assert target.exists()
    assert "lunr" in target.read_text()
