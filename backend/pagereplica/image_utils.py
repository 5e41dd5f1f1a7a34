"""Screenshot post-processing: cap very tall full-page captures."""
from PIL import Image
import io


def cap_screenshot(screenshot_bytes: bytes, max_height: int = 16000) -> bytes:
    """
    Crop a full-page PNG to max_height and re-encode it.
    Infinite-scroll pages otherwise produce screenshots tens of
    thousands of pixels tall that some viewers refuse to open.
    """
    img = Image.open(io.BytesIO(screenshot_bytes))

    w, h = img.size
    if h > max_height:
        img = img.crop((0, 0, w, max_height))

    buf = io.BytesIO()
    img.save(buf, format='PNG', optimize=True)
    return buf.getvalue()


def screenshot_size(screenshot_bytes: bytes) -> tuple[int, int]:
    """Return (width, height) of an encoded image."""
    with Image.open(io.BytesIO(screenshot_bytes)) as img:
        return img.size
