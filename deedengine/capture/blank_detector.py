import io
import logging
from dataclasses import dataclass
from typing import Sequence

from PIL import Image, ImageStat, UnidentifiedImageError

from ..exceptions import UnsupportedFormatError

logger = logging.getLogger(__name__)

# Anything smaller is an error icon, not a scanned page
MIN_DETAIL_PX = 100
# Largest gap between channel means that still counts as a single uniform colour
CHANNEL_SPREAD_TOLERANCE = 8.0
# Saturated dark / light bounds for the uniform value
DARK_CEILING = 10.0
LIGHT_FLOOR = 245.0
# A page whose busiest channel varies more than this has visible contrast
CONTRAST_FLOOR = 4.0


@dataclass(frozen=True)
class RasterStats:
    """Decoded raster statistics, one entry per colour channel."""

    width: int
    height: int
    channel_means: Sequence[float]
    channel_stddevs: Sequence[float] = ()


def stats_for_image(image: Image.Image) -> RasterStats:
    if image.mode not in ("L", "RGB"):
        image = image.convert("RGB")
    stat = ImageStat.Stat(image)
    return RasterStats(
        width=image.width,
        height=image.height,
        channel_means=tuple(stat.mean),
        channel_stddevs=tuple(stat.stddev),
    )


def is_blank(stats: RasterStats) -> bool:
    """
    Decide whether decoded raster content is effectively blank.

    A page is blank when it is too small to hold any detail, or when every channel
    mean sits on the same value, that value is saturated dark or light, and no
    channel shows visible contrast.

    Args:
        stats: Width, height and per-channel statistics of the decoded page

    Returns:
        bool: True for empty or placeholder renders
    """
    if stats.width < MIN_DETAIL_PX or stats.height < MIN_DETAIL_PX:
        return True

    means = list(stats.channel_means)
    if not means:
        return True

    if max(means) - min(means) > CHANNEL_SPREAD_TOLERANCE:
        return False

    uniform_value = sum(means) / len(means)
    saturated = uniform_value <= DARK_CEILING or uniform_value >= LIGHT_FLOOR
    if not saturated:
        return False

    if stats.channel_stddevs and max(stats.channel_stddevs) > CONTRAST_FLOOR:
        return False

    return True


def is_blank_image(data: bytes) -> bool:
    """Decode raster bytes and run :func:`is_blank` on them."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            stats = stats_for_image(image)
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedFormatError(f"Could not decode raster page: {e}") from e

    blank = is_blank(stats)
    if blank:
        logger.debug(f"Blank page detected ({stats.width}x{stats.height}, means={stats.channel_means})")
    return blank
