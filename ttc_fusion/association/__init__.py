"""
Association module - Lidar points and keypoint matches to 2D detections,
and detections across frames.
"""

from .lidar_roi import cluster_lidar_with_roi, crop_lidar_points, shrink_roi
from .keypoint_roi import cluster_kpt_matches_with_roi
from .box_matcher import match_bounding_boxes, count_box_votes

__all__ = [
    'cluster_lidar_with_roi',
    'crop_lidar_points',
    'shrink_roi',
    'cluster_kpt_matches_with_roi',
    'match_bounding_boxes',
    'count_box_votes',
]
