"""
lidar_ttc.py

Lidar-based time-to-collision under a constant-velocity model.

With d0 and d1 the distances to the preceding object in two consecutive
frames and dT = 1 / frame_rate:

    v   = (d0 - d1) / dT
    TTC = d1 / v = d1 / ((d0 - d1) * frame_rate)

The closest point of a cluster is very sensitive to stray returns, so the
distance used is a low percentile of the forward coordinate instead of its
minimum.
"""

import logging
import numpy as np
from typing import Sequence

from ttc_fusion.data_types import LidarPoint
from ttc_fusion.ttc.estimate import (
    DegenerateGeometryError, InsufficientDataError, TTCError, TTCEstimate,
    check_frame_rate,
)

logger = logging.getLogger(__name__)

# |d0 - d1| below this (metres) is treated as no relative motion
MIN_DISTANCE_CHANGE = 1e-6


def robust_closest_distance(
    points: Sequence[LidarPoint],
    percentile: float = 10.0,
    min_points: int = 6,
) -> float:
    """
    Low-percentile forward distance of a point cluster.

    The value returned is an actual point's x coordinate: the order
    statistic at index floor(percentile / 100 * (n - 1)) of the sorted x
    values.

    Args:
        points:     Lidar points of one object.
        percentile: Percentile in [0, 100]; 0 gives the closest point.
        min_points: Minimum cluster size for the statistic to be trusted.

    Raises:
        ValueError:            If percentile is outside [0, 100].
        InsufficientDataError: If fewer than ``min_points`` points (and at
                               least one) are available.
    """
    if not 0.0 <= percentile <= 100.0:
        raise ValueError(f"percentile must be in [0, 100], got {percentile}")

    n = len(points)
    required = max(int(min_points), 1)
    if n < required:
        raise InsufficientDataError(
            f"{n} lidar points available, at least {required} required"
        )

    xs = np.sort(np.fromiter((p.x for p in points), dtype=np.float64, count=n))
    idx = int(np.floor(percentile / 100.0 * (n - 1)))
    return float(xs[idx])


def ttc_from_distances(d_prev: float, d_curr: float, frame_rate: float) -> TTCEstimate:
    """
    TTC from two robust distances.

    Returns:
        Defined estimate, or an undefined DEGENERATE_GEOMETRY estimate when
        the distance did not change.
    """
    frame_rate = check_frame_rate(frame_rate)
    delta = d_prev - d_curr
    if abs(delta) <= MIN_DISTANCE_CHANGE:
        return TTCEstimate.from_error(DegenerateGeometryError(
            f"no relative motion (d_prev={d_prev:.3f} m, d_curr={d_curr:.3f} m)"
        ))
    return TTCEstimate.defined(d_curr / (delta * frame_rate))


def compute_ttc_lidar(
    lidar_points_prev: Sequence[LidarPoint],
    lidar_points_curr: Sequence[LidarPoint],
    frame_rate: float,
    percentile: float = 10.0,
    min_points: int = 6,
) -> TTCEstimate:
    """
    Lidar TTC for one object tracked across two frames.

    Args:
        lidar_points_prev: Points owned by the object in the previous frame.
        lidar_points_curr: Points owned by the object in the current frame.
        frame_rate:        Sensor frame rate (Hz).
        percentile:        See ``robust_closest_distance``.
        min_points:        See ``robust_closest_distance``.

    Returns:
        TTCEstimate; undefined with INSUFFICIENT_DATA if either cluster is
        too small, DEGENERATE_GEOMETRY if the distance did not change.
    """
    frame_rate = check_frame_rate(frame_rate)
    n_samples = min(len(lidar_points_prev), len(lidar_points_curr))

    try:
        d_prev = robust_closest_distance(lidar_points_prev, percentile, min_points)
        d_curr = robust_closest_distance(lidar_points_curr, percentile, min_points)
    except TTCError as e:
        logger.warning("Lidar TTC undefined: %s", e)
        return TTCEstimate.from_error(e, n_samples)

    estimate = ttc_from_distances(d_prev, d_curr, frame_rate)
    if not estimate.is_defined:
        logger.warning("Lidar TTC undefined: %s", estimate.detail)
        return TTCEstimate.undefined(estimate.status, estimate.detail, n_samples)

    logger.debug("Lidar TTC: d_prev=%.3f m, d_curr=%.3f m, TTC=%.2f s",
                 d_prev, d_curr, estimate.seconds)
    return TTCEstimate.defined(estimate.seconds, n_samples)
