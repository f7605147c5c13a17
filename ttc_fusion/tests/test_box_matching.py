"""
Tests for frame-to-frame bounding box matching.
"""

import pytest
import numpy as np
import cv2
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ttc_fusion.association.box_matcher import count_box_votes, match_bounding_boxes
from ttc_fusion.data_types import BoundingBox, DataFrame


def build_frames(prev_rois, curr_rois, correspondences, prev_ids=None, curr_ids=None):
    """
    Build a previous/current frame pair.

    Args:
        prev_rois, curr_rois: rois of the boxes in each frame
        correspondences: list of ((u_prev, v_prev), (u_curr, v_curr)), one
                         match per entry
    """
    prev_ids = prev_ids or list(range(len(prev_rois)))
    curr_ids = curr_ids or list(range(len(curr_rois)))

    kpts_prev = [cv2.KeyPoint(float(p[0]), float(p[1]), 1.0) for p, _ in correspondences]
    kpts_curr = [cv2.KeyPoint(float(c[0]), float(c[1]), 1.0) for _, c in correspondences]
    matches = [cv2.DMatch(i, i, 0.0) for i in range(len(correspondences))]

    prev_frame = DataFrame(
        bounding_boxes=[BoundingBox(box_id=i, roi=r) for i, r in zip(prev_ids, prev_rois)],
        keypoints=kpts_prev,
    )
    curr_frame = DataFrame(
        bounding_boxes=[BoundingBox(box_id=i, roi=r) for i, r in zip(curr_ids, curr_rois)],
        keypoints=kpts_curr,
        kpt_matches=matches,
    )
    return matches, prev_frame, curr_frame


class TestCountBoxVotes:
    """Tests for count_box_votes."""

    def test_vote_table(self):
        matches, prev, curr = build_frames(
            prev_rois=[(0, 0, 100, 100), (200, 0, 100, 100)],
            curr_rois=[(0, 0, 100, 100), (200, 0, 100, 100)],
            correspondences=[((10, 10), (12, 10)),
                             ((20, 20), (22, 20)),
                             ((210, 10), (212, 10)),
                             ((30, 30), (230, 30))],
        )

        votes, prev_ids, curr_ids = count_box_votes(matches, prev, curr)

        assert prev_ids == [0, 1]
        assert curr_ids == [0, 1]
        np.testing.assert_array_equal(votes, [[2, 1], [0, 1]])

    def test_overlapping_boxes_all_receive_votes(self):
        matches, prev, curr = build_frames(
            prev_rois=[(0, 0, 100, 100), (50, 0, 100, 100)],
            curr_rois=[(0, 0, 100, 100)],
            correspondences=[((75, 10), (75, 10))],
        )

        votes, _, _ = count_box_votes(matches, prev, curr)

        np.testing.assert_array_equal(votes, [[1], [1]])

    def test_no_matches(self):
        _, prev, curr = build_frames([(0, 0, 10, 10)], [(0, 0, 10, 10)], [])
        votes, _, _ = count_box_votes([], prev, curr)
        assert votes.shape == (1, 1)
        assert votes.sum() == 0


class TestMatchBoundingBoxes:
    """Tests for match_bounding_boxes."""

    def test_majority_vote(self):
        matches, prev, curr = build_frames(
            prev_rois=[(0, 0, 100, 100)],
            curr_rois=[(0, 0, 100, 100), (200, 0, 100, 100)],
            correspondences=[((10, 10), (210, 10)),
                             ((20, 10), (220, 10)),
                             ((30, 10), (30, 10))],
            prev_ids=[4],
            curr_ids=[2, 7],
        )

        result = match_bounding_boxes(matches, prev, curr)

        assert result == {4: 7}
        assert curr.bb_matches == {4: 7}

    def test_tie_goes_to_lower_box_id(self):
        matches, prev, curr = build_frames(
            prev_rois=[(0, 0, 100, 100)],
            curr_rois=[(200, 0, 100, 100), (0, 0, 100, 100)],
            correspondences=[((10, 10), (210, 10)),
                             ((20, 10), (20, 10))],
            curr_ids=[3, 1],
        )

        assert match_bounding_boxes(matches, prev, curr) == {0: 1}

    def test_unmatched_previous_box_has_no_entry(self):
        matches, prev, curr = build_frames(
            prev_rois=[(0, 0, 100, 100), (500, 500, 50, 50)],
            curr_rois=[(0, 0, 100, 100)],
            correspondences=[((10, 10), (12, 10))],
        )

        assert match_bounding_boxes(matches, prev, curr) == {0: 0}

    def test_match_outside_current_boxes_casts_no_vote(self):
        matches, prev, curr = build_frames(
            prev_rois=[(0, 0, 100, 100)],
            curr_rois=[(0, 0, 100, 100)],
            correspondences=[((10, 10), (900, 900))],
        )

        assert match_bounding_boxes(matches, prev, curr) == {}

    def test_deterministic(self):
        rng = np.random.default_rng(7)
        prev_rois = [(0, 0, 200, 200), (150, 150, 200, 200), (400, 0, 100, 300)]
        curr_rois = [(10, 0, 200, 200), (160, 150, 200, 200), (390, 0, 100, 300)]
        pts = rng.uniform(0, 500, size=(300, 2))
        shift = rng.normal(0, 20, size=(300, 2))
        correspondences = [(tuple(p), tuple(p + s)) for p, s in zip(pts, shift)]

        matches, prev, curr = build_frames(prev_rois, curr_rois, correspondences)
        first = match_bounding_boxes(matches, prev, curr)
        second = match_bounding_boxes(matches, prev, curr)

        assert first == second
        assert set(first.keys()) <= {0, 1, 2}
        assert set(first.values()) <= {0, 1, 2}

    def test_empty_frames(self):
        matches, prev, curr = build_frames([], [(0, 0, 10, 10)], [((1, 1), (1, 1))])
        assert match_bounding_boxes(matches, prev, curr) == {}
