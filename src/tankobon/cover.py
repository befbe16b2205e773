"""Cover detection: volume starts are chapters whose first page is in color."""
from __future__ import annotations

import concurrent.futures
import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import Image

from .types_ import Chapter

logger = logging.getLogger(__name__)

MAX_DIMENSION = 500
SAMPLE_STEP = 10
CHANNEL_TOLERANCE = 10


def is_grayscale(image: Image.Image, sensitivity: float) -> bool:
    """Decide whether `image` is predominantly grayscale.

    Images larger than 500 px on a side are first thumbnailed. Every 10th
    pixel on both axes is sampled; a sample is gray when all of its RGB
    channels are within 10 of each other. The image is grayscale when the
    gray share, extrapolated to the whole image, exceeds `sensitivity`
    (clamped to [0, 1]). An image with no samples is not grayscale.

    >>> is_grayscale(Image.new('RGB', (40, 40), (128, 128, 128)), 0.9)
    True
    >>> is_grayscale(Image.new('RGB', (40, 40), (255, 0, 0)), 0.1)
    False
    """
    sensitivity = min(max(sensitivity, 0.0), 1.0)
    working = image
    width, height = image.size
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        scale = MAX_DIMENSION / max(width, height)
        working = image.copy()
        working.thumbnail((max(1, int(width * scale)), max(1, int(height * scale))))

    pixels = np.asarray(working.convert("RGB"), dtype=np.int16)
    samples = pixels[::SAMPLE_STEP, ::SAMPLE_STEP]
    sample_count = samples.shape[0] * samples.shape[1] if samples.ndim == 3 else 0
    if sample_count == 0:
        return False

    r, g, b = samples[..., 0], samples[..., 1], samples[..., 2]
    gray = (
        (np.abs(r - g) <= CHANNEL_TOLERANCE)
        & (np.abs(g - b) <= CHANNEL_TOLERANCE)
        & (np.abs(r - b) <= CHANNEL_TOLERANCE)
    )
    total = working.size[0] * working.size[1]
    estimated = int(gray.sum()) * total / sample_count
    return estimated > total * sensitivity


def is_grayscale_file(path: Path, sensitivity: float) -> bool:
    """Decode the image at `path` and run `is_grayscale` on it.

    Raises:
        OSError: if the file cannot be opened or decoded (PIL's
                 UnidentifiedImageError is an OSError).
    """
    with Image.open(path) as img:
        img.load()
        return is_grayscale(img, sensitivity)


def _start_index(index: int, cover: Path, sensitivity: float) -> Optional[int]:
    if is_grayscale_file(cover, sensitivity):
        return None
    logger.debug(f"[cover] color cover in chapter {index}: {cover.name}")
    return index


def determine_volume_start_chapters(
    chapters: List[Chapter], sensitivity: float, max_workers: int = 8
) -> List[int]:
    """Return the sorted, de-duplicated indices of chapters that open a volume.

    The first page of each non-empty chapter is checked on a thread pool;
    a color first page marks a volume start. Index 0 is always a start. A
    page that cannot be decoded is logged and treated as not a start.
    """
    starts = {0}
    candidates = [(i, c[0]) for i, c in enumerate(chapters) if c]
    if not candidates:
        return [0]

    workers = max(1, min(max_workers, len(candidates)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = {
            ex.submit(_start_index, i, cover, sensitivity): (i, cover) for i, cover in candidates
        }
        for fut in concurrent.futures.as_completed(futures):
            i, cover = futures[fut]
            try:
                idx = fut.result()
            except Exception as e:
                logger.warning(f"[cover] cannot analyze {cover}: {e}")
                continue
            if idx is not None:
                starts.add(idx)

    result = sorted(starts)
    logger.info(f"[cover] detected {len(result)} volume start(s): {result}")
    return result
