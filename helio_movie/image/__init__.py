"""
Helio Movie Image Package
Frame image variants and their selection
"""

from .roi import RegionOfInterest
from .pixel_source import PixelSource, ImageFilePixelSource, ArrayPixelSource
from .variants import (
    Padding,
    RenderOptions,
    ImageRequest,
    ImageVariant,
    PlaceholderImage,
    RenderedImage,
    PLACEHOLDER_SIZE,
)
from .resolver import FrameVariantResolver

__all__ = [
    'RegionOfInterest',
    'PixelSource',
    'ImageFilePixelSource',
    'ArrayPixelSource',
    'Padding',
    'RenderOptions',
    'ImageRequest',
    'ImageVariant',
    'PlaceholderImage',
    'RenderedImage',
    'PLACEHOLDER_SIZE',
    'FrameVariantResolver',
]
