import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one acquisition pipeline.

    Attributes:
        headless: Launch the browser without a window
        navigation_timeout_ms: Timeout for every navigation and element wait
        fetch_timeout: Seconds before a credentialed fetch is abandoned
        acquisition_timeout: Caller-level timeout wrapping a whole pipeline run
        min_inline_image_px: Both sides of an inline <img> must reach this size
        page_width: Width of the standard page envelope in points
        page_height: Height of the standard page envelope in points
        max_concurrency: Pipelines allowed to run at once in acquire_many
        verify_tls: Verify portal certificates on credentialed fetches
        log_level: Level passed to logging.basicConfig
    """

    headless: bool = True
    navigation_timeout_ms: int = 30000
    fetch_timeout: float = 60.0
    acquisition_timeout: float = 180.0
    min_inline_image_px: int = 200
    page_width: float = 612.0
    page_height: float = 792.0
    max_concurrency: int = 2
    verify_tls: bool = True
    log_level: str = "INFO"

    @property
    def page_envelope(self) -> Tuple[float, float]:
        return (self.page_width, self.page_height)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from DEED_* environment variables (and a .env file, if present)."""
        return cls(
            headless=_env_bool("DEED_HEADLESS", "true"),
            navigation_timeout_ms=int(os.getenv("DEED_NAVIGATION_TIMEOUT_MS", "30000")),
            fetch_timeout=float(os.getenv("DEED_FETCH_TIMEOUT", "60")),
            acquisition_timeout=float(os.getenv("DEED_ACQUISITION_TIMEOUT", "180")),
            min_inline_image_px=int(os.getenv("DEED_MIN_INLINE_IMAGE_PX", "200")),
            page_width=float(os.getenv("DEED_PAGE_WIDTH", "612")),
            page_height=float(os.getenv("DEED_PAGE_HEIGHT", "792")),
            max_concurrency=int(os.getenv("DEED_MAX_CONCURRENCY", "2")),
            verify_tls=_env_bool("DEED_VERIFY_TLS", "true"),
            log_level=os.getenv("DEED_LOG_LEVEL", "INFO").upper(),
        )
