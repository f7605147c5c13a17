"""
keypoint_roi.py

Association of keypoint matches with a 2D detection.
"""

import logging
import cv2
import numpy as np
from typing import Optional, Sequence

from ttc_fusion.data_types import BoundingBox

logger = logging.getLogger(__name__)

# Lower bound of the outlier displacement limit, in pixels
MIN_SHIFT_LIMIT = 1.0


def cluster_kpt_matches_with_roi(
    bounding_box: BoundingBox,
    kpts_prev: Sequence[cv2.KeyPoint],
    kpts_curr: Sequence[cv2.KeyPoint],
    kpt_matches: Sequence[cv2.DMatch],
    max_shift_factor: Optional[float] = None,
) -> BoundingBox:
    """
    Collect the matches whose current keypoint lies inside the box.

    Matched keypoints on the same rigid object move coherently between two
    frames, so a match with a much larger displacement than its neighbours
    is most likely a mismatch. When ``max_shift_factor`` is given, matches
    whose displacement exceeds ``max_shift_factor`` times the median
    displacement inside the box are discarded. The limit never drops below
    ``MIN_SHIFT_LIMIT`` pixels.

    Args:
        bounding_box: Current-frame box, updated in place.
        kpts_prev:    Previous-frame keypoints (indexed by queryIdx).
        kpts_curr:    Current-frame keypoints (indexed by trainIdx).
        kpt_matches:  Matches between the two frames.
        max_shift_factor: Optional outlier threshold, see above.

    Returns:
        The same box, with ``kpt_matches`` and ``keypoints`` extended.
    """
    inside = []
    shifts = []
    for match in kpt_matches:
        kp_curr = kpts_curr[match.trainIdx]
        if bounding_box.contains(*kp_curr.pt):
            kp_prev = kpts_prev[match.queryIdx]
            inside.append((match, kp_curr))
            shifts.append(np.hypot(kp_curr.pt[0] - kp_prev.pt[0],
                                   kp_curr.pt[1] - kp_prev.pt[1]))

    if max_shift_factor is not None and inside:
        limit = max(max_shift_factor * float(np.median(shifts)), MIN_SHIFT_LIMIT)
        kept = [pair for pair, s in zip(inside, shifts) if s <= limit]
        logger.debug("Box %d: %d of %d matches rejected as outliers",
                     bounding_box.box_id, len(inside) - len(kept), len(inside))
        inside = kept

    for match, kp_curr in inside:
        bounding_box.kpt_matches.append(match)
        bounding_box.keypoints.append(kp_curr)

    return bounding_box
