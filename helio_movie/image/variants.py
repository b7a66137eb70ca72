"""
Image Variants - The two ways a movie frame image can be produced

This module handles:
- Padding computation (where the region lands on the output canvas)
- Rendering decoded pixel data onto the canvas
- Datasource watermark text
- Transparent placeholders for regions with no area

Both variants satisfy the ``ImageVariant`` protocol. They are a closed
set; the resolver picks one with a predicate on the region geometry.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from ..errors import DataUnavailableError, FrameRenderError, PaddingComputationError
from .roi import RegionOfInterest
from .pixel_source import PixelSource

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (512, 512)
TRANSPARENT = (0, 0, 0, 0)

GRAVITIES = ('northwest', 'center')


@dataclass(frozen=True)
class Padding:
    """Placement of the region content on the output canvas"""
    gravity: str
    width: float
    height: float
    offset_x: int = 0
    offset_y: int = 0

    def __post_init__(self):
        if self.gravity not in GRAVITIES:
            raise ValueError(f"Unknown gravity: {self.gravity}")

    def position(self, canvas_width: int, canvas_height: int) -> Tuple[int, int]:
        """Top-left corner at which the content is pasted"""
        if self.gravity == 'northwest':
            return self.offset_x, self.offset_y
        return (
            (canvas_width - int(self.width)) // 2 + self.offset_x,
            (canvas_height - int(self.height)) // 2 + self.offset_y,
        )


@dataclass(frozen=True)
class RenderOptions:
    """Options applied when rendering a frame"""
    watermark: bool = True
    watermark_color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    watermark_margin: int = 8


@dataclass(frozen=True)
class ImageRequest:
    """Everything a variant needs to produce one frame image"""
    roi: RegionOfInterest
    labels: Tuple[str, ...]
    width: int
    height: int
    offset_x: float = 0.0
    offset_y: float = 0.0
    source: Optional[Any] = None


class ImageVariant(Protocol):
    """Capability shared by every frame image variant"""

    def build(self) -> Image.Image:
        ...

    def compute_padding(self, roi: RegionOfInterest) -> Padding:
        ...

    def get_watermark_name(self) -> str:
        ...


class PlaceholderImage:
    """
    Stand-in for a region that has no width or height.

    Nothing is rendered; a transparent 512x512 image is substituted so
    the frame sequence stays dense.
    """

    def __init__(
        self,
        request: ImageRequest,
        pixel_source: Optional[PixelSource] = None,
        options: Optional[RenderOptions] = None
    ):
        self.request = request

    def build(self) -> Image.Image:
        return Image.new('RGBA', PLACEHOLDER_SIZE, TRANSPARENT)

    def compute_padding(self, roi: RegionOfInterest) -> Padding:
        # Width and height may be non-positive here; the canvas size does not depend on them.
        return Padding(
            gravity='northwest',
            width=roi.width,
            height=roi.height,
            offset_x=0,
            offset_y=0,
        )

    def get_watermark_name(self) -> str:
        return ''


class RenderedImage:
    """
    Frame image rendered from decoded pixel data.

    The region content is scaled to fit the output geometry, placed on a
    transparent canvas according to the computed padding, and labelled
    with the datasource name when watermarking is enabled.
    """

    def __init__(
        self,
        request: ImageRequest,
        pixel_source: PixelSource,
        options: Optional[RenderOptions] = None
    ):
        self.request = request
        self.pixel_source = pixel_source
        self.options = options or RenderOptions()

    def compute_padding(self, roi: RegionOfInterest) -> Padding:
        """
        Fit the region into the output canvas.

        The content keeps its aspect ratio and is centered, then shifted
        by the scaled pixel-center offset. The shift is clamped so the
        content always lies entirely inside the canvas.

        Args:
            roi: Region being rendered

        Returns:
            Padding with ``center`` gravity

        Raises:
            PaddingComputationError: non-positive output or region size
        """
        width, height = self.request.width, self.request.height
        if width <= 0 or height <= 0:
            raise PaddingComputationError(
                f"output geometry must be positive, got {width}x{height}"
            )

        src_width, src_height = roi.width, roi.height
        if src_width <= 0 or src_height <= 0:
            raise PaddingComputationError(
                f"region has no area ({src_width:.2f}x{src_height:.2f} px)"
            )

        scale = min(width / src_width, height / src_height)
        target_width = min(width, max(1, int(round(src_width * scale))))
        target_height = min(height, max(1, int(round(src_height * scale))))

        slack_x = width - target_width
        slack_y = height - target_height

        offset_x = _clamp(
            int(round(self.request.offset_x * scale)),
            -(slack_x // 2),
            slack_x - slack_x // 2,
        )
        offset_y = _clamp(
            int(round(self.request.offset_y * scale)),
            -(slack_y // 2),
            slack_y - slack_y // 2,
        )

        return Padding(
            gravity='center',
            width=target_width,
            height=target_height,
            offset_x=offset_x,
            offset_y=offset_y,
        )

    def get_watermark_name(self) -> str:
        return ' '.join(label for label in self.request.labels if label)

    def build(self) -> Image.Image:
        request = self.request
        padding = self.compute_padding(request.roi)

        try:
            pixels = self.pixel_source.fetch(request.roi, request.labels, request.source)
        except DataUnavailableError as e:
            raise FrameRenderError(f"source data unavailable: {e}") from e

        content = _to_image(pixels)
        content = content.resize((int(padding.width), int(padding.height)), Image.Resampling.LANCZOS)

        canvas = Image.new('RGBA', (request.width, request.height), TRANSPARENT)
        canvas.paste(content, padding.position(request.width, request.height), content)

        if self.options.watermark:
            self._draw_watermark(canvas)

        logger.debug(
            f"Rendered {content.width}x{content.height} content at "
            f"{padding.position(request.width, request.height)} on {request.width}x{request.height}"
        )

        return canvas

    def _draw_watermark(self, canvas: Image.Image):
        """Composite the datasource name onto the bottom-left corner"""
        text = self.get_watermark_name()
        if not text:
            return

        draw = ImageDraw.Draw(canvas)
        font = ImageFont.load_default()
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        margin = self.options.watermark_margin
        x = margin
        y = max(0, canvas.height - (bottom - top) - margin)
        draw.text((x, y), text, font=font, fill=self.options.watermark_color)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _to_image(pixels: Any) -> Image.Image:
    """
    Convert decoded pixel data into an RGBA image.

    Accepts [H, W], [H, W, C] or [C, H, W] arrays with 1, 3 or 4
    channels, either uint8 or float in [0, 1].
    """
    if pixels is None:
        raise FrameRenderError("pixel source returned no data")

    frame = np.asarray(pixels)

    if frame.size == 0:
        raise FrameRenderError("pixel data is empty")

    if frame.ndim == 3 and frame.shape[0] in (1, 3, 4) and frame.shape[-1] not in (1, 3, 4):
        # Likely [C, H, W] format
        frame = np.transpose(frame, (1, 2, 0))

    if frame.ndim == 2:
        frame = frame[:, :, np.newaxis]

    if frame.ndim != 3 or frame.shape[-1] not in (1, 3, 4):
        raise FrameRenderError(f"pixel data has unsupported shape {frame.shape}")

    if frame.shape[-1] == 1:
        frame = np.repeat(frame, 3, axis=-1)

    if np.issubdtype(frame.dtype, np.floating):
        if not np.all(np.isfinite(frame)):
            raise FrameRenderError("pixel data contains non-finite values")
        frame = (frame * 255).clip(0, 255).astype(np.uint8)
    elif frame.dtype != np.uint8:
        if not np.issubdtype(frame.dtype, np.integer):
            raise FrameRenderError(f"pixel data has unsupported dtype {frame.dtype}")
        frame = frame.clip(0, 255).astype(np.uint8)

    return Image.fromarray(np.ascontiguousarray(frame)).convert('RGBA')
