"""
Artifact writer.

Everything for a slug is written to temporary files in the output
directory first and renamed into place only once every write succeeded,
so a failed or cancelled job never leaves a half-written replica behind.
The screenshot is best-effort: if it can't be processed it is skipped and
the metadata says so.
"""

import json
import os
import tempfile
from pathlib import Path

from pagereplica.errors import WriteFailure
from pagereplica.image_utils import cap_screenshot, screenshot_size
from pagereplica.models import Metadata
from pagereplica.search_index import HANDLER_FILENAME, SearchIndex, handler_script


class OutputWriter:
    def __init__(self, output_dir: str, max_screenshot_height: int = 16000):
        self.output_dir = Path(output_dir).resolve()
        self.max_screenshot_height = max_screenshot_height

    def paths(self, slug: str) -> dict[str, Path]:
        return {
            "html": self.output_dir / f"{slug}.html",
            "metadata": self.output_dir / f"{slug}.json",
            "screenshot": self.output_dir / f"{slug}.png",
            "index": self.output_dir / f"{slug}-search-index.json",
            "handler": self.output_dir / HANDLER_FILENAME,
        }

    def _prepare_screenshot(self, screenshot: bytes | None) -> bytes | None:
        if not screenshot:
            return None
        try:
            capped = cap_screenshot(screenshot, self.max_screenshot_height)
            width, height = screenshot_size(capped)
            print(f"  [write] Screenshot {width}x{height}")
            return capped
        except Exception as e:
            print(f"  [write] Screenshot unusable, skipping: {e}")
            return None

    def install_static_assets(self) -> Path:
        """Write the slug-independent query handler next to the artifacts."""
        target = self.paths("_")["handler"]
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            source = handler_script()
            if not target.exists() or target.read_text(encoding="utf-8") != source:
                self._commit({target: source.encode("utf-8")})
        except OSError as e:
            raise WriteFailure(f"could not install {HANDLER_FILENAME}: {e}") from e
        return target

    def write(self, slug: str, html: str, metadata: Metadata, index: SearchIndex,
              screenshot: bytes | None = None) -> dict[str, Path | None]:
        paths = self.paths(slug)
        png = self._prepare_screenshot(screenshot)

        metadata.screenshot_path = str(paths["screenshot"]) if png else None
        metadata.search_index_path = str(paths["index"])

        payloads = {
            paths["html"]: html.encode("utf-8"),
            paths["metadata"]: metadata.model_dump_json(indent=2).encode("utf-8"),
            paths["index"]: json.dumps(index.serialize()).encode("utf-8"),
            paths["handler"]: handler_script().encode("utf-8"),
        }
        if png:
            payloads[paths["screenshot"]] = png

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteFailure(f"output directory {self.output_dir} unusable: {e}") from e
        self._commit(payloads)

        print(f"  [write] {slug}: {len(payloads)} file(s) in {self.output_dir}")
        return {
            "html": paths["html"],
            "metadata": paths["metadata"],
            "screenshot": paths["screenshot"] if png else None,
            "index": paths["index"],
            "handler": paths["handler"],
        }

    def _commit(self, payloads: dict[Path, bytes]):
        """Write every payload to a temp file, then rename them all into place."""
        staged = []
        try:
            for target, data in payloads.items():
                fd, tmp = tempfile.mkstemp(dir=self.output_dir, prefix=f".{target.name}.", suffix=".tmp")
                staged.append((tmp, target))
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                    fh.flush()
                    os.fsync(fh.fileno())
        except OSError as e:
            for tmp, _ in staged:
                try:
                    os.unlink(tmp)
                except OSError:
                    pass
            raise WriteFailure(f"staging output failed: {e}") from e

        try:
            for tmp, target in staged:
                os.replace(tmp, target)
        except OSError as e:
            for tmp, _ in staged:
                if os.path.exists(tmp):
                    os.unlink(tmp)
            raise WriteFailure(f"renaming output into place failed: {e}") from e
