"""
Tests for the lidar and camera TTC estimators.
"""

import pytest
import numpy as np
import cv2
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ttc_fusion.data_types import LidarPoint
from ttc_fusion.ttc.estimate import (
    DegenerateGeometryError, InsufficientDataError, TTCEstimate, TTCStatus,
)
from ttc_fusion.ttc.lidar_ttc import (
    compute_ttc_lidar, robust_closest_distance, ttc_from_distances,
)
from ttc_fusion.ttc.camera_ttc import compute_distance_ratios, compute_ttc_camera


def cluster(distances):
    """Lidar cluster with the given forward distances."""
    return [LidarPoint(float(x), 0.0, -1.0, 0.5) for x in distances]


def keypoint_pairs(prev_pts, curr_pts):
    kpts_prev = [cv2.KeyPoint(float(x), float(y), 1.0) for x, y in prev_pts]
    kpts_curr = [cv2.KeyPoint(float(x), float(y), 1.0) for x, y in curr_pts]
    matches = [cv2.DMatch(i, i, 0.0) for i in range(len(prev_pts))]
    return kpts_prev, kpts_curr, matches


class TestTTCEstimate:
    """Tests for the TTCEstimate result type."""

    def test_defined(self):
        est = TTCEstimate.defined(1.5, n_samples=10)
        assert est.is_defined
        assert est.seconds == 1.5
        assert est.status == TTCStatus.OK

    def test_undefined_has_no_value(self):
        est = TTCEstimate.undefined(TTCStatus.INSUFFICIENT_DATA, "too few points")
        assert not est.is_defined
        assert est.seconds is None
        assert "insufficient_data" in str(est)

    def test_undefined_requires_failure_status(self):
        with pytest.raises(ValueError):
            TTCEstimate.undefined(TTCStatus.OK)

    def test_from_error(self):
        assert TTCEstimate.from_error(InsufficientDataError("x")).status == TTCStatus.INSUFFICIENT_DATA
        assert TTCEstimate.from_error(DegenerateGeometryError("x")).status == TTCStatus.DEGENERATE_GEOMETRY


class TestRobustClosestDistance:
    """Tests for robust_closest_distance."""

    def test_zero_percentile_is_minimum(self):
        points = cluster([9.0, 7.5, 8.0, 8.2, 7.9, 8.1])
        assert robust_closest_distance(points, percentile=0.0) == 7.5

    def test_percentile_ignores_stray_close_point(self):
        distances = [3.0] + [8.0 + 0.01 * i for i in range(19)]
        d = robust_closest_distance(cluster(distances), percentile=10.0)
        # index floor(0.1 * 19) = 1 -> first real return
        assert d == pytest.approx(8.0)

    def test_returns_an_actual_point(self):
        distances = [7.0, 7.1, 7.2, 7.3, 7.4, 7.5, 7.6]
        d = robust_closest_distance(cluster(distances), percentile=50.0)
        assert d in distances

    def test_insufficient_points(self):
        with pytest.raises(InsufficientDataError):
            robust_closest_distance(cluster([8.0] * 5), min_points=6)

    def test_empty_cluster(self):
        with pytest.raises(InsufficientDataError):
            robust_closest_distance([], min_points=0)

    def test_invalid_percentile(self):
        with pytest.raises(ValueError):
            robust_closest_distance(cluster([8.0] * 10), percentile=120.0)


class TestLidarTTC:
    """Tests for the lidar TTC estimator."""

    def test_ttc_from_distances(self):
        est = ttc_from_distances(8.0, 7.6, frame_rate=10.0)
        assert est.is_defined
        assert est.seconds == pytest.approx(1.9)

    def test_compute_ttc_lidar(self):
        prev = cluster([8.0 + 0.02 * i for i in range(20)])
        curr = cluster([7.6 + 0.02 * i for i in range(20)])

        est = compute_ttc_lidar(prev, curr, frame_rate=10.0, percentile=0.0, min_points=6)

        assert est.is_defined
        assert est.seconds == pytest.approx(1.9)
        assert est.n_samples == 20

    def test_receding_object_gives_negative_ttc(self):
        est = ttc_from_distances(7.6, 8.0, frame_rate=10.0)
        assert est.is_defined
        assert est.seconds < 0

    def test_no_relative_motion_is_undefined(self):
        prev = cluster([8.0] * 10)
        est = compute_ttc_lidar(prev, prev, frame_rate=10.0)
        assert not est.is_defined
        assert est.status == TTCStatus.DEGENERATE_GEOMETRY
        assert est.seconds is None

    def test_too_few_points_is_undefined(self):
        est = compute_ttc_lidar(cluster([8.0] * 10), cluster([7.6] * 3),
                                frame_rate=10.0, min_points=6)
        assert not est.is_defined
        assert est.status == TTCStatus.INSUFFICIENT_DATA

    def test_invalid_frame_rate(self):
        with pytest.raises(ValueError):
            compute_ttc_lidar(cluster([8.0] * 10), cluster([7.6] * 10), frame_rate=0.0)


class TestCameraTTC:
    """Tests for the camera TTC estimator."""

    def test_single_pair(self):
        """distPrev = 10 px, distCurr = 12 px at 10 Hz gives 0.5 s."""
        kpts_prev, kpts_curr, matches = keypoint_pairs(
            [(100.0, 100.0), (110.0, 100.0)],
            [(100.0, 100.0), (112.0, 100.0)],
        )

        ratios = compute_distance_ratios(kpts_prev, kpts_curr, matches)
        est = compute_ttc_camera(kpts_prev, kpts_curr, matches, frame_rate=10.0)

        np.testing.assert_allclose(ratios, [1.2])
        assert est.is_defined
        assert est.median_ratio == pytest.approx(1.2)
        assert est.seconds == pytest.approx(0.5)

    def test_each_unordered_pair_counted_once(self):
        pts = [(0.0, 0.0), (10.0, 0.0), (0.0, 10.0), (10.0, 10.0)]
        kpts_prev, kpts_curr, matches = keypoint_pairs(pts, [(2 * x, 2 * y) for x, y in pts])

        ratios = compute_distance_ratios(kpts_prev, kpts_curr, matches)

        assert ratios.size == 6
        np.testing.assert_allclose(ratios, 2.0)

    def test_median_rejects_mismatch(self):
        centre = np.array([300.0, 200.0])
        offsets = np.array([(-20, -20), (20, -20), (20, 20), (-20, 20), (0, -30), (30, 0)], float)
        prev_pts = list(centre + offsets) + [centre + (5.0, 5.0)]
        curr_pts = list(centre + 1.1 * offsets) + [np.array([600.0, 50.0])]
        kpts_prev, kpts_curr, matches = keypoint_pairs(prev_pts, curr_pts)

        est = compute_ttc_camera(kpts_prev, kpts_curr, matches, frame_rate=10.0)

        assert est.median_ratio == pytest.approx(1.1)
        assert est.seconds == pytest.approx(1.0)

    def test_min_dist_filters_close_pairs(self):
        kpts_prev, kpts_curr, matches = keypoint_pairs(
            [(100.0, 100.0), (110.0, 100.0)],
            [(100.0, 100.0), (112.0, 100.0)],
        )

        est = compute_ttc_camera(kpts_prev, kpts_curr, matches, frame_rate=10.0, min_dist=100.0)

        assert not est.is_defined
        assert est.status == TTCStatus.INSUFFICIENT_DATA

    def test_coincident_previous_keypoints_skipped(self):
        kpts_prev, kpts_curr, matches = keypoint_pairs(
            [(100.0, 100.0), (100.0, 100.0)],
            [(100.0, 100.0), (112.0, 100.0)],
        )
        assert compute_distance_ratios(kpts_prev, kpts_curr, matches).size == 0

    def test_no_matches_is_undefined(self):
        est = compute_ttc_camera([], [], [], frame_rate=10.0)
        assert not est.is_defined
        assert est.status == TTCStatus.INSUFFICIENT_DATA
        assert est.seconds is None

    def test_no_scale_change_is_undefined(self):
        pts = [(0.0, 0.0), (50.0, 0.0), (0.0, 50.0)]
        kpts_prev, kpts_curr, matches = keypoint_pairs(pts, [(x + 5, y + 5) for x, y in pts])

        est = compute_ttc_camera(kpts_prev, kpts_curr, matches, frame_rate=10.0)

        assert not est.is_defined
        assert est.status == TTCStatus.DEGENERATE_GEOMETRY
        assert est.median_ratio == pytest.approx(1.0)
