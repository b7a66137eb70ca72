"""
Frame Variant Resolver - Produces one frame file per movie timestamp
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Tuple, Type

from PIL import Image

from ..errors import FrameError, FrameRenderError
from .roi import RegionOfInterest
from .pixel_source import PixelSource
from .variants import ImageRequest, ImageVariant, PlaceholderImage, RenderedImage, RenderOptions

if TYPE_CHECKING:
    from ..video.frame_writer import Frame, FrameSequencer

logger = logging.getLogger(__name__)


def has_no_area(roi: RegionOfInterest) -> bool:
    return roi.is_degenerate


def always(roi: RegionOfInterest) -> bool:
    return True


class FrameVariantResolver:
    """
    Selects an image variant for each frame and writes its output.

    Selection walks ``VARIANT_TABLE`` and takes the first row whose
    predicate accepts the region. The last row always matches, so every
    region maps to exactly one variant.
    """

    VARIANT_TABLE: Tuple[Tuple[Callable[[RegionOfInterest], bool], Type], ...] = (
        (has_no_area, PlaceholderImage),
        (always, RenderedImage),
    )

    def __init__(self, pixel_source: PixelSource, options: Optional[RenderOptions] = None):
        self.pixel_source = pixel_source
        self.options = options or RenderOptions()

    def select(self, roi: RegionOfInterest) -> Type:
        """Return the variant class for a region"""
        for predicate, variant_cls in self.VARIANT_TABLE:
            if predicate(roi):
                return variant_cls
        raise LookupError(f"no image variant accepts {roi}")

    def create_variant(self, request: ImageRequest) -> ImageVariant:
        variant_cls = self.select(request.roi)
        return variant_cls(request, self.pixel_source, self.options)

    def render(self, request: ImageRequest) -> Image.Image:
        """Build the frame image for a request without writing it"""
        return self.create_variant(request).build()

    def resolve(self, request: ImageRequest, frame: "Frame", sequencer: "FrameSequencer") -> Path:
        """
        Materialize one frame file.

        Args:
            request: Region, labels, offset and output geometry
            frame: Slot assigned by the sequencer
            sequencer: Owner of the job's working directory

        Returns:
            Path of the written frame

        Raises:
            FrameRenderError: source data missing or corrupt
            FrameWriteError: frame file could not be written
            PaddingComputationError: invalid geometry for a rendered frame
        """
        variant = self.create_variant(request)

        try:
            image = variant.build()
        except FrameError as e:
            if e.index is None:
                raise type(e)(str(e), index=frame.index) from e
            raise
        except (ValueError, OSError) as e:
            raise FrameRenderError(str(e), index=frame.index) from e

        path = sequencer.write_frame(frame, image)
        logger.debug(f"Frame {frame.index}: {type(variant).__name__} -> {path.name}")
        return path
