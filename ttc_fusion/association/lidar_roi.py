"""
lidar_roi.py

Grouping of lidar points by the 2D detection their projection falls into.

Each box is shrunk toward its centre before the containment test so that
returns from the road or from objects behind the target, which tend to
project onto the box border, are rejected. A point enclosed by more than
one shrunk box cannot be attributed reliably and is dropped, as is a point
enclosed by none.
"""

import logging
import numpy as np
from typing import List, Sequence

from ttc_fusion.calibration.projector import LidarProjector
from ttc_fusion.data_types import (
    BoundingBox, LidarPoint, Roi, lidar_points_to_array, rois_contain,
)

logger = logging.getLogger(__name__)


def _check_shrink_factor(shrink_factor: float) -> None:
    if not 0.0 <= shrink_factor < 1.0:
        raise ValueError(f"shrink_factor must be in [0, 1), got {shrink_factor}")


def shrink_roi(roi: Roi, shrink_factor: float) -> Roi:
    """
    Shrink a roi toward its centre.

    Each side moves inward by ``shrink_factor / 2`` of the box extent, so
    the resulting width and height are ``(1 - shrink_factor)`` of the
    original ones.

    Raises:
        ValueError: If ``shrink_factor`` is not in [0, 1).
    """
    _check_shrink_factor(shrink_factor)

    x, y, w, h = roi
    return (
        x + shrink_factor * w / 2.0,
        y + shrink_factor * h / 2.0,
        w * (1.0 - shrink_factor),
        h * (1.0 - shrink_factor),
    )


def cluster_lidar_with_roi(
    bounding_boxes: Sequence[BoundingBox],
    lidar_points: Sequence[LidarPoint],
    shrink_factor: float,
    projector: LidarProjector,
) -> List[LidarPoint]:
    """
    Assign every lidar point to the single box enclosing its projection.

    The points are appended to ``box.lidar_points`` in place.

    Args:
        bounding_boxes: Detections of the current frame.
        lidar_points:   Lidar points of the current frame.
        shrink_factor:  Fraction in [0, 1) by which each box is shrunk.
        projector:      Lidar-to-image projector.

    Returns:
        The points that were not assigned: behind the camera, outside every
        shrunk box, or inside more than one.

    Raises:
        ValueError: If ``shrink_factor`` is not in [0, 1), even with no boxes.
    """
    _check_shrink_factor(shrink_factor)

    shrunk = np.array(
        [shrink_roi(b.roi, shrink_factor) for b in bounding_boxes],
        dtype=np.float64,
    ).reshape(-1, 4)

    if len(lidar_points) == 0:
        return []
    if len(bounding_boxes) == 0:
        return list(lidar_points)

    uv, valid = projector.project_points(lidar_points)
    enclosing = rois_contain(shrunk, uv)                # N×B
    enclosing[~valid] = False
    n_enclosing = enclosing.sum(axis=1)

    unassigned = []
    for point, row, count in zip(lidar_points, enclosing, n_enclosing):
        if count == 1:
            bounding_boxes[int(np.argmax(row))].lidar_points.append(point)
        else:
            unassigned.append(point)

    logger.debug(
        "Lidar clustering: %d assigned, %d ambiguous, %d outside, %d behind camera",
        int((n_enclosing == 1).sum()),
        int((n_enclosing > 1).sum()),
        int(((n_enclosing == 0) & valid).sum()),
        int((~valid).sum()),
    )
    return unassigned


def crop_lidar_points(
    lidar_points: Sequence[LidarPoint],
    min_x: float = 2.0,
    max_x: float = 20.0,
    max_y: float = 2.0,
    min_z: float = -1.5,
    max_z: float = -0.9,
    min_r: float = 0.1,
) -> List[LidarPoint]:
    """
    Keep only points inside the ego-lane volume in front of the vehicle.

    The defaults select the rear of a preceding vehicle for a roof-mounted
    KITTI sensor: 2–20 m ahead, within ±2 m laterally, in a height band
    above the road surface, and with enough reflectivity to reject noise.

    Returns:
        Cropped list, order preserved.
    """
    arr = lidar_points_to_array(lidar_points)
    if arr.shape[0] == 0:
        return []

    x, y, z, r = arr[:, 0], arr[:, 1], arr[:, 2], arr[:, 3]
    keep = (
        (x >= min_x) & (x <= max_x)
        & (np.abs(y) <= max_y)
        & (z >= min_z) & (z <= max_z)
        & (r >= min_r)
    )
    return [p for p, k in zip(lidar_points, keep) if k]
