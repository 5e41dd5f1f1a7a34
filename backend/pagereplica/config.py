from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    # Browser
    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )
    navigation_timeout: int = 60000  # milliseconds
    default_timeout: int = 30000  # milliseconds
    stealth: bool = True
    block_fonts: bool = True
    block_decorative_images: bool = True
    block_analytics: bool = True

    # Waits
    widget_wait_timeout: int = 15000  # milliseconds
    settle_delay: int = 1500  # milliseconds
    scroll_step: int = 400
    scroll_max: int = 15000
    dom_quiet_window: float = 1.0  # seconds
    dom_stability_timeout: float = 10.0  # seconds
    stability_poll_interval: float = 0.3  # seconds

    # Job
    job_timeout: float = 180  # seconds
    output_dir: str = os.path.join(os.path.dirname(__file__), "..", "..", "output", "landing-pages")

    # Extraction
    markup_cap: int = 300
    widget_sample_cap: int = 1000
    container_markup_cap: int = 4000
    product_card_threshold: int = 3
    max_product_cards: int = 60
    max_screenshot_height: int = 16000
    search_result_limit: int = 10
    # Extra per-domain search routes: {"example.com": "https://www.example.com/find?term"}
    search_overrides: dict[str, str] = {}

    # Delivery
    lunr_cdn_url: str = "https://cdn.jsdelivr.net/npm/lunr@2.3.9/lunr.min.js"
    handler_url: str = "search-handler.js"

    class Config:
        # Look for .env in the repo root (two levels up from backend/pagereplica/)
        env_file = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
        env_file_encoding = "utf-8"
        env_prefix = "PAGEREPLICA_"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()
