"""
Region of interest on a source image
"""

from dataclasses import dataclass
from typing import Tuple, Dict, Any


@dataclass(frozen=True)
class RegionOfInterest:
    """
    Rectangle requested from a source image.

    Coordinates are in physical units (e.g. arcseconds) measured from the
    source image origin; ``image_scale`` is physical units per pixel.
    The derived pixel width and height may be zero or negative when no
    data intersects the requested view.
    """
    top: float
    left: float
    bottom: float
    right: float
    image_scale: float

    def __post_init__(self):
        if not self.image_scale > 0:
            raise ValueError(f"image_scale must be positive, got {self.image_scale}")

    @property
    def width(self) -> float:
        """Width in pixels"""
        return (self.right - self.left) / self.image_scale

    @property
    def height(self) -> float:
        """Height in pixels"""
        return (self.bottom - self.top) / self.image_scale

    @property
    def is_degenerate(self) -> bool:
        """True when the region has no area to render"""
        return self.width <= 0 or self.height <= 0

    def pixel_box(self) -> Tuple[int, int, int, int]:
        """Crop box (left, top, right, bottom) in source pixels"""
        return (
            int(round(self.left / self.image_scale)),
            int(round(self.top / self.image_scale)),
            int(round(self.right / self.image_scale)),
            int(round(self.bottom / self.image_scale)),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegionOfInterest":
        return cls(
            top=float(data['top']),
            left=float(data['left']),
            bottom=float(data['bottom']),
            right=float(data['right']),
            image_scale=float(data.get('image_scale', 1.0)),
        )
