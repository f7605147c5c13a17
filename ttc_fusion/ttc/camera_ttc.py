"""
camera_ttc.py

Camera-based time-to-collision from the scale change of matched keypoints.

Under a pinhole model the image distance between two points on the
preceding object scales with the inverse of the object distance, so the
ratio h1 / h0 of a keypoint pair's distance in the current and previous
frame equals d0 / d1. Combined with a constant-velocity model:

    TTC = -dT / (1 - h1 / h0)

Every pair of matched keypoints gives one ratio; the median over all pairs
is used because mismatches produce wild ratios.
"""

import logging
import cv2
import numpy as np
from typing import Sequence

from ttc_fusion.data_types import keypoints_to_array
from ttc_fusion.ttc.estimate import (
    DegenerateGeometryError, InsufficientDataError, TTCEstimate, TTCStatus,
    check_frame_rate,
)

logger = logging.getLogger(__name__)

# |1 - median ratio| below this is treated as no scale change
MIN_SCALE_CHANGE = 1e-9


def compute_distance_ratios(
    kpts_prev: Sequence[cv2.KeyPoint],
    kpts_curr: Sequence[cv2.KeyPoint],
    kpt_matches: Sequence[cv2.DMatch],
    min_dist: float = 1.0,
) -> np.ndarray:
    """
    Distance ratios over all unordered pairs of distinct matches.

    A pair is kept when its previous-frame distance is not ~0 (division)
    and its current-frame distance is at least ``min_dist`` pixels (close
    keypoints carry little scale information).

    Returns:
        1D array of dist_curr / dist_prev values, possibly empty.
    """
    k = len(kpt_matches)
    if k < 2:
        return np.zeros(0, dtype=np.float64)

    prev_all = keypoints_to_array(kpts_prev)
    curr_all = keypoints_to_array(kpts_curr)
    prev = prev_all[[m.queryIdx for m in kpt_matches]]
    curr = curr_all[[m.trainIdx for m in kpt_matches]]

    i, j = np.triu_indices(k, 1)
    dist_prev = np.linalg.norm(prev[i] - prev[j], axis=1)
    dist_curr = np.linalg.norm(curr[i] - curr[j], axis=1)

    keep = (dist_prev > np.finfo(np.float64).eps) & (dist_curr >= min_dist)
    return dist_curr[keep] / dist_prev[keep]


def compute_ttc_camera(
    kpts_prev: Sequence[cv2.KeyPoint],
    kpts_curr: Sequence[cv2.KeyPoint],
    kpt_matches: Sequence[cv2.DMatch],
    frame_rate: float,
    min_dist: float = 1.0,
) -> TTCEstimate:
    """
    Camera TTC for the keypoint matches of one object.

    Args:
        kpts_prev:   Previous-frame keypoints (indexed by queryIdx).
        kpts_curr:   Current-frame keypoints (indexed by trainIdx).
        kpt_matches: Matches owned by the object.
        frame_rate:  Camera frame rate (Hz).
        min_dist:    Minimum current-frame pair distance in pixels.

    Returns:
        TTCEstimate; undefined with INSUFFICIENT_DATA if no ratio survives
        filtering, DEGENERATE_GEOMETRY if the median ratio is 1.
    """
    frame_rate = check_frame_rate(frame_rate)
    ratios = compute_distance_ratios(kpts_prev, kpts_curr, kpt_matches, min_dist)

    if ratios.size == 0:
        error = InsufficientDataError(
            f"no usable keypoint pair among {len(kpt_matches)} matches"
        )
        logger.warning("Camera TTC undefined: %s", error)
        return TTCEstimate.from_error(error)

    median_ratio = float(np.median(ratios))
    if abs(1.0 - median_ratio) <= MIN_SCALE_CHANGE:
        error = DegenerateGeometryError("median distance ratio is 1, no scale change")
        logger.warning("Camera TTC undefined: %s", error)
        return TTCEstimate.undefined(TTCStatus.DEGENERATE_GEOMETRY, str(error),
                                     ratios.size, median_ratio)

    dT = 1.0 / frame_rate
    ttc = -dT / (1.0 - median_ratio)
    logger.debug("Camera TTC: %d ratios, median=%.4f, TTC=%.2f s",
                 ratios.size, median_ratio, ttc)
    return TTCEstimate.defined(ttc, int(ratios.size), median_ratio)
