"""
Movie jobs - Build requests, per-profile outcomes and build results
"""

import re
import math
import time
import uuid
from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import JobValidationError
from .image.roi import RegionOfInterest
from .image.variants import ImageRequest

# Artifact base names end up in file paths and encoder arguments
NAME_PATTERN = re.compile(r'^[A-Za-z0-9_][A-Za-z0-9._-]*$')


class JobStatus(Enum):
    """Overall result of a movie build"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"    # every requested profile produced
    PARTIAL = "partial"        # some profiles produced
    FAILED = "failed"          # no frames, or every profile failed
    CANCELLED = "cancelled"


class BuildEventType(Enum):
    PROFILE_COMPLETED = "profile_completed"
    PROFILE_FAILED = "profile_failed"
    JOB_ABORTED = "job_aborted"


@dataclass(frozen=True)
class FrameRequest:
    """One timestamp of the movie"""
    roi: RegionOfInterest
    labels: Tuple[str, ...] = ()
    offset_x: float = 0.0
    offset_y: float = 0.0
    source: Optional[Any] = None

    def to_image_request(self, width: int, height: int) -> ImageRequest:
        return ImageRequest(
            roi=self.roi,
            labels=self.labels,
            width=width,
            height=height,
            offset_x=self.offset_x,
            offset_y=self.offset_y,
            source=self.source,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FrameRequest":
        offset = data.get('offset', (0, 0))
        if len(offset) != 2:
            raise JobValidationError(f"offset must be [x, y], got {offset!r}")
        return cls(
            roi=RegionOfInterest.from_dict(data['roi']),
            labels=_labels(data.get('labels', ())),
            offset_x=float(offset[0]),
            offset_y=float(offset[1]),
            source=data.get('source'),
        )


def _labels(value: Any) -> Tuple[str, ...]:
    # A bare string is one label, not a sequence of characters
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(label) for label in value)


def _generate_job_id() -> str:
    return f"movie_{time.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


@dataclass
class MovieJob:
    """A single movie render request"""
    frames: List[FrameRequest]
    frame_rate: float
    width: int
    height: int
    profiles: Tuple[str, ...] = ('web', 'ipod')
    id: str = field(default_factory=_generate_job_id)
    name: Optional[str] = None
    timeout: Optional[float] = None

    def __post_init__(self):
        self.profiles = tuple(self.profiles)
        if self.name is None:
            self.name = self.id
        self.validate()

    def validate(self):
        """
        Check the request before any work is done.

        Raises:
            JobValidationError: describing the first problem found
        """
        if not self.frames:
            raise JobValidationError("a movie needs at least one frame")
        if isinstance(self.frame_rate, bool) or not isinstance(self.frame_rate, (int, float)) \
                or not math.isfinite(self.frame_rate) or not self.frame_rate > 0:
            raise JobValidationError(f"frame_rate must be a positive finite number, got {self.frame_rate!r}")
        for dim in ('width', 'height'):
            value = getattr(self, dim)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise JobValidationError(f"{dim} must be a positive integer, got {value!r}")
        for label, value in (('id', self.id), ('name', self.name)):
            if not isinstance(value, str) or not NAME_PATTERN.match(value):
                raise JobValidationError(f"invalid job {label}: {value!r}")
        if not self.profiles:
            raise JobValidationError("at least one encoder profile is required")
        if len(set(self.profiles)) != len(self.profiles):
            raise JobValidationError(f"duplicate profiles: {list(self.profiles)}")

        from .video.profiles import PROFILES
        unknown = [name for name in self.profiles if name not in PROFILES]
        if unknown:
            raise JobValidationError(f"unknown profiles {unknown}, available: {sorted(PROFILES)}")
        if self.timeout is not None and (
                isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float))
                or not math.isfinite(self.timeout) or not self.timeout > 0):
            raise JobValidationError(f"timeout must be a positive finite number, got {self.timeout!r}")

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        default_profiles: Optional[List[str]] = None
    ) -> "MovieJob":
        """
        Create a job from an intake descriptor.

        Raises:
            JobValidationError: missing or malformed fields
        """
        try:
            frames = [FrameRequest.from_dict(item) for item in data['frames']]
            kwargs: Dict[str, Any] = {
                'frames': frames,
                'frame_rate': data['frame_rate'],
                'width': data['width'],
                'height': data['height'],
            }
        except KeyError as e:
            raise JobValidationError(f"missing field: {e}") from e
        except (TypeError, ValueError) as e:
            raise JobValidationError(f"malformed frame descriptor: {e}") from e

        profiles = data.get('profiles') or default_profiles
        if profiles:
            kwargs['profiles'] = tuple(profiles)
        for key in ('id', 'name', 'timeout'):
            if data.get(key) is not None:
                kwargs[key] = data[key]

        return cls(**kwargs)


@dataclass
class ProfileOutcome:
    """Result of producing one profile's artifact"""
    profile: str
    success: bool
    artifact_path: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    returncode: Optional[int] = None


@dataclass
class BuildEvent:
    """Progress/failure signal for job status tracking"""
    job_id: str
    type: BuildEventType
    profile: Optional[str] = None
    message: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class MovieBuildResult:
    """Result of a movie build"""
    job_id: str
    status: JobStatus
    outcomes: Dict[str, ProfileOutcome] = field(default_factory=dict)
    frame_count: int = 0
    error: Optional[str] = None
    cleanup_error: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None

    @property
    def success(self) -> bool:
        return self.status == JobStatus.COMPLETED

    @property
    def duration(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    def artifacts(self) -> Dict[str, Union[Path, str]]:
        """Profile name -> artifact path, or failure reason"""
        return {
            name: Path(outcome.artifact_path) if outcome.success else (outcome.error or "failed")
            for name, outcome in self.outcomes.items()
        }

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['status'] = self.status.value
        result['duration'] = self.duration
        return result
