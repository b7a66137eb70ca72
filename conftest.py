"""
Shared pytest fixtures for the helio_movie tests.

The encoder tests run against a stand-in ``ffmpeg`` executable so they
do not depend on a real FFmpeg install. The stand-in reads the frame
pattern, counts the frames it can see, and writes that count into the
output file (the last argument).
"""

import os
import sys
import stat
import textwrap
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from helio_movie.config import MovieConfig
from helio_movie.image import ArrayPixelSource, RegionOfInterest
from helio_movie.jobs import FrameRequest


FAKE_FFMPEG_TEMPLATE = '''\
import os
import re
import sys
import time

FAIL_WHEN = {fail_when!r}
SLEEP = {sleep!r}
WRITE_OUTPUT = {write_output!r}
EXIT_CODE = {exit_code!r}
RAW_STDERR = {raw_stderr!r}

args = sys.argv[1:]
output = args[-1]
pattern = args[args.index('-i') + 1]
name = os.path.basename(output)

if SLEEP:
    time.sleep(SLEEP)

if FAIL_WHEN and re.search(FAIL_WHEN, name):
    if RAW_STDERR:
        sys.stderr.flush()
        sys.stderr.buffer.write(RAW_STDERR)
        sys.stderr.buffer.flush()
    sys.stderr.write("Error initializing output stream for " + name + "\\n")
    sys.exit(EXIT_CODE)

frame_dir = os.path.dirname(pattern)
prefix, _, rest = os.path.basename(pattern).partition('%')
suffix = rest[rest.index('d') + 1:]
frames = [
    f for f in os.listdir(frame_dir)
    if f.startswith(prefix) and f.endswith(suffix) and f[len(prefix):len(f) - len(suffix)].isdigit()
]

if WRITE_OUTPUT:
    with open(output, 'w') as f:
        f.write("frames=%d\\n" % len(frames))
        f.write("\\n".join(args))
'''


@pytest.fixture
def fake_ffmpeg(tmp_path):
    """Factory writing a stand-in ffmpeg executable; returns its path"""
    if sys.platform == 'win32':
        pytest.skip("stand-in ffmpeg needs a POSIX shell")

    counter = {'n': 0}

    def make(fail_when=None, sleep=0, write_output=True, exit_code=1, raw_stderr=None):
        counter['n'] += 1
        bin_dir = tmp_path / f"bin{counter['n']}"
        bin_dir.mkdir()

        script = bin_dir / "fake_ffmpeg.py"
        script.write_text(FAKE_FFMPEG_TEMPLATE.format(
            fail_when=fail_when,
            sleep=sleep,
            write_output=write_output,
            exit_code=exit_code,
            raw_stderr=raw_stderr,
        ))

        launcher = bin_dir / "ffmpeg"
        launcher.write_text(textwrap.dedent(f'''\
            #!/bin/sh
            exec "{sys.executable}" "{script}" "$@"
            '''))
        launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(launcher)

    return make


@pytest.fixture
def movie_config(tmp_path):
    return MovieConfig(
        working_root=str(tmp_path / "work"),
        output_dir=str(tmp_path / "movies"),
        poll_interval_seconds=0.05,
        encode_timeout_seconds=30,
    )


def gradient(height=64, width=64):
    """RGB test image with a horizontal gradient"""
    row = np.linspace(0, 255, width, dtype=np.uint8)
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :, 0] = row
    image[:, :, 1] = row[::-1]
    image[:, :, 2] = 128
    return image


@pytest.fixture
def pixel_source():
    return ArrayPixelSource({
        'aia_171': gradient(),
        'aia_304': gradient(32, 48),
    })


def frame_request(source='aia_171', size=2048.0, scale=32.0, labels=('SDO', 'AIA', '171')):
    """Frame request whose region is ``size / scale`` pixels square"""
    return FrameRequest(
        roi=RegionOfInterest(top=0, left=0, bottom=size, right=size, image_scale=scale),
        labels=tuple(labels),
        source=source,
    )


def empty_request():
    """Frame request whose region has no area"""
    return FrameRequest(
        roi=RegionOfInterest(top=100, left=100, bottom=100, right=50, image_scale=2.0),
        labels=('SOHO', 'LASCO', 'C2'),
    )


@pytest.fixture
def make_request():
    return frame_request


@pytest.fixture
def make_empty_request():
    return empty_request
