"""
TTC module - Lidar and camera time-to-collision estimators.
"""

from .estimate import (
    TTCEstimate,
    TTCStatus,
    TTCError,
    InsufficientDataError,
    DegenerateGeometryError,
)
from .lidar_ttc import compute_ttc_lidar, robust_closest_distance, ttc_from_distances
from .camera_ttc import compute_ttc_camera, compute_distance_ratios

__all__ = [
    'TTCEstimate',
    'TTCStatus',
    'TTCError',
    'InsufficientDataError',
    'DegenerateGeometryError',
    'compute_ttc_lidar',
    'robust_closest_distance',
    'ttc_from_distances',
    'compute_ttc_camera',
    'compute_distance_ratios',
]
