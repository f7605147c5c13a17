"""
box_matcher.py

Frame-to-frame association of 2D detections through keypoint matches.

Every keypoint match votes for each (previous box, current box) pair whose
rois contain its previous and current keypoint respectively. A previous box
is then linked to the current box that collected the most votes. Ties go to
the lowest current box_id so that the result is reproducible.
"""

import logging
import cv2
import numpy as np
from typing import Dict, List, Sequence, Tuple

from ttc_fusion.data_types import DataFrame, keypoints_to_array, rois_contain

logger = logging.getLogger(__name__)


def count_box_votes(
    matches: Sequence[cv2.DMatch],
    prev_frame: DataFrame,
    curr_frame: DataFrame,
) -> Tuple[np.ndarray, List[int], List[int]]:
    """
    Build the vote table between previous and current boxes.

    Returns:
        (votes, prev_ids, curr_ids) where ``votes[i, j]`` is the number of
        matches supporting prev_ids[i] -> curr_ids[j]. Both id lists are
        sorted in ascending order.
    """
    prev_boxes = sorted(prev_frame.bounding_boxes, key=lambda b: b.box_id)
    curr_boxes = sorted(curr_frame.bounding_boxes, key=lambda b: b.box_id)
    prev_ids = [b.box_id for b in prev_boxes]
    curr_ids = [b.box_id for b in curr_boxes]

    votes = np.zeros((len(prev_boxes), len(curr_boxes)), dtype=np.int64)
    if len(matches) == 0 or votes.size == 0:
        return votes, prev_ids, curr_ids

    prev_pts = keypoints_to_array(prev_frame.keypoints)
    curr_pts = keypoints_to_array(curr_frame.keypoints)
    query = np.array([m.queryIdx for m in matches], dtype=np.int64)
    train = np.array([m.trainIdx for m in matches], dtype=np.int64)

    in_prev = rois_contain([b.roi for b in prev_boxes], prev_pts[query])   # M×P
    in_curr = rois_contain([b.roi for b in curr_boxes], curr_pts[train])   # M×C

    votes = in_prev.T.astype(np.int64) @ in_curr.astype(np.int64)
    return votes, prev_ids, curr_ids


def match_bounding_boxes(
    matches: Sequence[cv2.DMatch],
    prev_frame: DataFrame,
    curr_frame: DataFrame,
) -> Dict[int, int]:
    """
    Find the best current box for each previous box.

    Args:
        matches:    Keypoint matches from prev_frame (queryIdx) to
                    curr_frame (trainIdx).
        prev_frame: Previous step.
        curr_frame: Current step; its ``bb_matches`` is overwritten with
                    the result.

    Returns:
        Dict previous box_id -> current box_id. Previous boxes without any
        vote are absent.
    """
    votes, prev_ids, curr_ids = count_box_votes(matches, prev_frame, curr_frame)

    bb_best_matches = {}
    for i, prev_id in enumerate(prev_ids):
        row = votes[i]
        if row.size == 0 or row.max() == 0:
            continue
        # argmax returns the first maximum, i.e. the lowest current box_id
        bb_best_matches[prev_id] = curr_ids[int(np.argmax(row))]

    logger.debug("Box matching: %d of %d previous boxes matched",
                 len(bb_best_matches), len(prev_ids))

    curr_frame.bb_matches = dict(bb_best_matches)
    return bb_best_matches
