"""
Pixel Source - Supplies decoded pixel data for rendered frames

The decode and reprojection layer lives outside this package. Anything
implementing ``fetch`` can be plugged into the frame resolver.
"""

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import DataUnavailableError
from .roi import RegionOfInterest

logger = logging.getLogger(__name__)


class PixelSource(Protocol):
    """Returns cropped pixel data for a region of one datasource"""

    def fetch(
        self,
        roi: RegionOfInterest,
        labels: Sequence[str],
        source: Optional[Any] = None
    ) -> np.ndarray:
        """
        Fetch pixels covering ``roi``.

        Raises:
            DataUnavailableError: no data exists for the request
        """
        ...


class ImageFilePixelSource:
    """
    Crops the region of interest out of an image file.

    ``source`` is the path of the image, resolved against ``base_dir``
    when relative. ROI coordinates divided by the image scale give
    pixel positions from the image's top-left corner.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def _resolve(self, source: Any) -> Path:
        if source is None:
            raise DataUnavailableError("frame request has no source image")
        path = Path(source)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        return path

    def fetch(
        self,
        roi: RegionOfInterest,
        labels: Sequence[str],
        source: Optional[Any] = None
    ) -> np.ndarray:
        path = self._resolve(source)
        if not path.exists():
            raise DataUnavailableError(f"source image not found: {path}")

        try:
            with Image.open(path) as img:
                img.load()
                left, top, right, bottom = roi.pixel_box()
                box = (
                    max(0, left), max(0, top),
                    min(img.width, right), min(img.height, bottom),
                )
                if box[2] <= box[0] or box[3] <= box[1]:
                    raise DataUnavailableError(
                        f"region {roi.pixel_box()} does not intersect {path.name} "
                        f"({img.width}x{img.height})"
                    )
                cropped = img.crop(box)
                if cropped.mode not in ('L', 'RGB', 'RGBA'):
                    cropped = cropped.convert('RGBA')
                logger.debug(f"Cropped {box} from {path}")
                return np.asarray(cropped)
        except (UnidentifiedImageError, OSError) as e:
            raise DataUnavailableError(f"cannot decode {path}: {e}") from e


class ArrayPixelSource:
    """In-memory pixel source keyed by the frame request's ``source``"""

    def __init__(self, arrays: Mapping[Any, np.ndarray]):
        self.arrays = dict(arrays)

    def fetch(
        self,
        roi: RegionOfInterest,
        labels: Sequence[str],
        source: Optional[Any] = None
    ) -> np.ndarray:
        if source not in self.arrays:
            raise DataUnavailableError(f"no pixel data for source {source!r}")
        return self.arrays[source]
