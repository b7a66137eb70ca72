"""
Frame Variant Tests
===================
Region geometry, variant selection, padding, rendering and watermarks.

Run:
    python -m pytest test_frame_variants.py -v
"""

import os
import sys

import numpy as np
import pytest
from PIL import Image

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from helio_movie.errors import FrameRenderError, FrameWriteError, PaddingComputationError
from helio_movie.image import (
    ArrayPixelSource,
    FrameVariantResolver,
    ImageFilePixelSource,
    ImageRequest,
    PlaceholderImage,
    RegionOfInterest,
    RenderedImage,
    RenderOptions,
    PLACEHOLDER_SIZE,
)
from helio_movie.video import FrameSequencer
from conftest import gradient


def roi(width, height, scale=1.0):
    return RegionOfInterest(top=0, left=0, bottom=height * scale, right=width * scale, image_scale=scale)


def request(region, width=256, height=256, offset=(0, 0), source='aia_171', labels=('SDO', 'AIA', '171')):
    return ImageRequest(
        roi=region,
        labels=labels,
        width=width,
        height=height,
        offset_x=offset[0],
        offset_y=offset[1],
        source=source,
    )


# ---------------------------------------------------------------------------
# 1. Region of interest
# ---------------------------------------------------------------------------

class TestRegionOfInterest:

    def test_dimensions_are_scaled(self):
        region = RegionOfInterest(top=-500, left=-1000, bottom=500, right=1000, image_scale=2.5)
        assert region.width == 800
        assert region.height == 400
        assert not region.is_degenerate

    @pytest.mark.parametrize("top,left,bottom,right", [
        (0, 0, 100, 0),      # zero width
        (0, 0, 0, 100),      # zero height
        (0, 50, 100, 10),    # negative width
        (90, 0, 10, 100),    # negative height
    ])
    def test_degenerate_regions(self, top, left, bottom, right):
        region = RegionOfInterest(top, left, bottom, right, image_scale=0.6)
        assert region.is_degenerate

    @pytest.mark.parametrize("scale", [0, -1.0])
    def test_scale_must_be_positive(self, scale):
        with pytest.raises(ValueError):
            RegionOfInterest(0, 0, 10, 10, image_scale=scale)

    def test_pixel_box(self):
        region = RegionOfInterest(top=20, left=10, bottom=60, right=50, image_scale=2.0)
        assert region.pixel_box() == (5, 10, 25, 30)


# ---------------------------------------------------------------------------
# 2. Variant selection
# ---------------------------------------------------------------------------

class TestVariantSelection:

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10), (10, -5), (0, 0), (-3, -3)])
    def test_no_area_selects_placeholder(self, width, height, pixel_source):
        resolver = FrameVariantResolver(pixel_source)
        region = RegionOfInterest(0, 0, height, width, image_scale=1.0)
        assert resolver.select(region) is PlaceholderImage

    @pytest.mark.parametrize("width,height", [(1, 1), (0.01, 5000), (4096, 4096)])
    def test_positive_area_selects_rendered(self, width, height, pixel_source):
        resolver = FrameVariantResolver(pixel_source)
        assert resolver.select(roi(width, height)) is RenderedImage

    def test_every_region_matches_exactly_one_row(self, pixel_source):
        resolver = FrameVariantResolver(pixel_source)
        for width in (-2, 0, 3):
            for height in (-2, 0, 3):
                region = RegionOfInterest(0, 0, height, width, image_scale=1.0)
                first_match = [cls for predicate, cls in resolver.VARIANT_TABLE if predicate(region)][0]
                assert resolver.select(region) is first_match


# ---------------------------------------------------------------------------
# 3. Placeholder variant
# ---------------------------------------------------------------------------

class TestPlaceholderImage:

    @pytest.mark.parametrize("width,height,out", [
        (0, 10, (256, 256)),
        (-40, 10, (1920, 1080)),
        (10, -1, (64, 32)),
    ])
    def test_fixed_transparent_image(self, width, height, out):
        region = RegionOfInterest(0, 0, height, width, image_scale=1.0)
        variant = PlaceholderImage(request(region, width=out[0], height=out[1]))
        image = variant.build()

        assert image.size == PLACEHOLDER_SIZE == (512, 512)
        assert image.mode == 'RGBA'
        assert np.asarray(image)[:, :, 3].max() == 0
        assert variant.get_watermark_name() == ''

    def test_build_never_touches_pixel_source(self):
        class ExplodingSource:
            def fetch(self, *args, **kwargs):
                raise AssertionError("placeholder must not fetch pixels")

        region = roi(0, 100)
        resolver = FrameVariantResolver(ExplodingSource())
        image = resolver.render(request(region))
        assert image.size == (512, 512)

    def test_padding_keeps_derived_geometry(self):
        region = RegionOfInterest(top=0, left=100, bottom=50, right=60, image_scale=2.0)
        padding = PlaceholderImage(request(region)).compute_padding(region)

        assert padding.gravity == 'northwest'
        assert padding.width == -20
        assert padding.height == 25
        assert (padding.offset_x, padding.offset_y) == (0, 0)


# ---------------------------------------------------------------------------
# 4. Rendered variant
# ---------------------------------------------------------------------------

class TestRenderedPadding:

    @pytest.mark.parametrize("src", [(1, 1), (64, 64), (4096, 100), (100, 4096), (0.5, 0.25), (333, 777)])
    @pytest.mark.parametrize("out", [(1, 1), (256, 256), (1280, 720), (31, 997)])
    @pytest.mark.parametrize("offset", [(0, 0), (50, -50), (-1e6, 1e6), (3.7, 0.2)])
    def test_content_fits_inside_canvas(self, src, out, offset, pixel_source):
        region = roi(*src)
        variant = RenderedImage(request(region, out[0], out[1], offset), pixel_source)
        padding = variant.compute_padding(region)

        x, y = padding.position(*out)
        assert padding.gravity == 'center'
        assert 1 <= padding.width <= out[0]
        assert 1 <= padding.height <= out[1]
        assert 0 <= x and x + padding.width <= out[0]
        assert 0 <= y and y + padding.height <= out[1]

    def test_aspect_ratio_preserved(self, pixel_source):
        region = roi(400, 200)
        padding = RenderedImage(request(region, 300, 300), pixel_source).compute_padding(region)
        assert (padding.width, padding.height) == (300, 150)
        assert padding.position(300, 300) == (0, 75)

    def test_offset_shifts_content(self, pixel_source):
        region = roi(100, 100)
        padding = RenderedImage(request(region, 400, 200, offset=(30, 0)), pixel_source).compute_padding(region)
        # scale 2: content is 200x200 centered at x=100, shifted 60px right
        assert padding.position(400, 200) == (160, 0)

    @pytest.mark.parametrize("out", [(0, 100), (100, 0), (-10, 100)])
    def test_non_positive_output_geometry(self, out, pixel_source):
        region = roi(100, 100)
        variant = RenderedImage(request(region, out[0], out[1]), pixel_source)
        with pytest.raises(PaddingComputationError):
            variant.compute_padding(region)

    def test_degenerate_region_rejected(self, pixel_source):
        region = roi(0, 100)
        variant = RenderedImage(request(region), pixel_source)
        with pytest.raises(PaddingComputationError):
            variant.compute_padding(region)


class TestRenderedBuild:

    def test_output_geometry_and_content(self, pixel_source):
        variant = RenderedImage(request(roi(64, 64), 128, 96), pixel_source, RenderOptions(watermark=False))
        image = variant.build()

        assert image.size == (128, 96)
        alpha = np.asarray(image)[:, :, 3]
        # 96x96 content centered: 16px transparent bars left and right
        assert alpha[:, :16].max() == 0
        assert alpha[:, 16:112].min() == 255
        assert alpha[:, 112:].max() == 0

    def test_watermark_name(self, pixel_source):
        variant = RenderedImage(request(roi(64, 64), labels=('SDO', 'AIA', '', '171')), pixel_source)
        assert variant.get_watermark_name() == 'SDO AIA 171'

    def test_watermark_is_drawn(self, pixel_source):
        region = roi(64, 64)
        plain = RenderedImage(request(region), pixel_source, RenderOptions(watermark=False)).build()
        marked = RenderedImage(request(region), pixel_source, RenderOptions(watermark=True)).build()

        diff = np.abs(np.asarray(plain, dtype=int) - np.asarray(marked, dtype=int))
        rows = np.nonzero(diff.sum(axis=(1, 2)))[0]
        assert rows.size > 0
        assert rows.min() > 256 // 2  # text sits in the lower part of the frame

    @pytest.mark.parametrize("pixels", [
        gradient()[:, :, 0],                                # grayscale
        np.transpose(gradient(), (2, 0, 1)),                # channels first
        gradient().astype(np.float32) / 255.0,              # float in [0, 1]
        np.dstack([gradient(), np.full((64, 64), 255, np.uint8)]),  # RGBA
        gradient().astype(np.uint16),
    ])
    def test_accepts_common_layouts(self, pixels):
        source = ArrayPixelSource({'x': pixels})
        image = RenderedImage(request(roi(64, 64), 64, 64, source='x'), source).build()
        assert image.size == (64, 64)

    def test_missing_data_is_render_error(self, pixel_source):
        variant = RenderedImage(request(roi(64, 64), source='hmi_magnetogram'), pixel_source)
        with pytest.raises(FrameRenderError):
            variant.build()

    @pytest.mark.parametrize("pixels", [
        None,
        np.zeros((0, 0, 3), dtype=np.uint8),
        np.zeros((8, 8, 2), dtype=np.uint8),
        np.zeros((2, 8, 8, 3), dtype=np.uint8),
        np.full((8, 8, 3), np.nan, dtype=np.float32),
        np.array([["a", "b"], ["c", "d"]]),
    ])
    def test_corrupt_data_is_render_error(self, pixels):
        source = ArrayPixelSource({'bad': pixels})
        variant = RenderedImage(request(roi(8, 8), source='bad'), source)
        with pytest.raises(FrameRenderError):
            variant.build()


# ---------------------------------------------------------------------------
# 5. Image file pixel source
# ---------------------------------------------------------------------------

class TestImageFilePixelSource:

    def test_crops_region(self, tmp_path):
        Image.fromarray(gradient(100, 200)).save(tmp_path / "aia.png")
        source = ImageFilePixelSource(tmp_path)
        region = RegionOfInterest(top=20, left=40, bottom=100, right=200, image_scale=2.0)

        pixels = source.fetch(region, ('SDO', 'AIA'), 'aia.png')
        assert pixels.shape == (40, 80, 3)

    def test_region_outside_image(self, tmp_path):
        Image.fromarray(gradient(10, 10)).save(tmp_path / "aia.png")
        source = ImageFilePixelSource(tmp_path)
        region = RegionOfInterest(top=100, left=100, bottom=200, right=200, image_scale=1.0)

        with pytest.raises(FrameRenderError):
            RenderedImage(request(region, source='aia.png'), source).build()

    def test_unreadable_file(self, tmp_path):
        (tmp_path / "broken.jp2").write_bytes(b"not an image")
        source = ImageFilePixelSource(tmp_path)
        with pytest.raises(FrameRenderError):
            RenderedImage(request(roi(8, 8), source='broken.jp2'), source).build()


# ---------------------------------------------------------------------------
# 6. Resolver output files
# ---------------------------------------------------------------------------

class TestResolver:

    def test_placeholder_frame_is_written(self, tmp_path, pixel_source):
        with FrameSequencer(tmp_path, "job", extension=".png") as sequencer:
            frame = sequencer.assign(1)[0]
            path = FrameVariantResolver(pixel_source).resolve(request(roi(0, 5)), frame, sequencer)

            with Image.open(path) as written:
                assert written.size == (512, 512)
                assert np.asarray(written.convert('RGBA'))[:, :, 3].max() == 0

    def test_render_error_carries_frame_index(self, tmp_path, pixel_source):
        with FrameSequencer(tmp_path, "job") as sequencer:
            frame = sequencer.assign(4)[3]
            with pytest.raises(FrameRenderError) as excinfo:
                FrameVariantResolver(pixel_source).resolve(request(roi(8, 8), source='nope'), frame, sequencer)
        assert excinfo.value.index == 3

    def test_unwritable_frame_path(self, tmp_path, pixel_source):
        with FrameSequencer(tmp_path, "job") as sequencer:
            frame = sequencer.assign(1)[0]
            frame.path.mkdir()  # a directory where the file should go
            with pytest.raises(FrameWriteError):
                FrameVariantResolver(pixel_source).resolve(request(roi(8, 8)), frame, sequencer)
