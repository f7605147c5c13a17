"""
estimate.py

Result type shared by the lidar and camera TTC estimators.

An estimate is either a finite number of seconds or explicitly undefined,
together with the reason. NaN and infinity are never used as sentinels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TTCStatus(Enum):
    """Outcome of a TTC computation."""
    OK                  = "ok"
    INSUFFICIENT_DATA   = "insufficient_data"
    DEGENERATE_GEOMETRY = "degenerate_geometry"


class TTCError(ValueError):
    """Base class for conditions that prevent a TTC from being computed."""


class InsufficientDataError(TTCError):
    """Too few lidar points or keypoint pairs for a robust statistic."""


class DegenerateGeometryError(TTCError):
    """No relative motion, or a projection with non-positive depth."""


@dataclass(frozen=True)
class TTCEstimate:
    """
    Time-to-collision estimate.

    Attributes:
        seconds:      TTC in seconds, None unless status is OK. Negative
                      values mean the object is moving away.
        status:       TTCStatus.
        n_samples:    Number of lidar points / distance ratios used.
        median_ratio: Median distance ratio (camera estimator only).
        detail:       Human-readable reason for an undefined estimate.
    """
    seconds:      Optional[float]
    status:       TTCStatus = TTCStatus.OK
    n_samples:    int = 0
    median_ratio: Optional[float] = None
    detail:       str = ""

    @property
    def is_defined(self) -> bool:
        return self.status == TTCStatus.OK

    @classmethod
    def defined(cls, seconds: float, n_samples: int = 0,
                median_ratio: Optional[float] = None) -> "TTCEstimate":
        return cls(float(seconds), TTCStatus.OK, n_samples, median_ratio)

    @classmethod
    def undefined(cls, status: TTCStatus, detail: str = "", n_samples: int = 0,
                  median_ratio: Optional[float] = None) -> "TTCEstimate":
        if status == TTCStatus.OK:
            raise ValueError("An undefined estimate needs a failure status")
        return cls(None, status, n_samples, median_ratio, detail)

    @classmethod
    def from_error(cls, error: TTCError, n_samples: int = 0) -> "TTCEstimate":
        """Translate a TTCError into an undefined estimate."""
        if isinstance(error, InsufficientDataError):
            status = TTCStatus.INSUFFICIENT_DATA
        else:
            status = TTCStatus.DEGENERATE_GEOMETRY
        return cls.undefined(status, str(error), n_samples)

    def __str__(self) -> str:
        if self.is_defined:
            return f"{self.seconds:.2f} s"
        return f"undefined ({self.status.value})"


def check_frame_rate(frame_rate: float) -> float:
    """
    Raises:
        ValueError: If the frame rate is not a positive number.
    """
    if not frame_rate > 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")
    return float(frame_rate)
