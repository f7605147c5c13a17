"""
projector.py

Projection of lidar points into the image plane of the reference camera.
"""

import logging
import numpy as np
from typing import Optional, Sequence, Tuple

from ttc_fusion.calibration.load_calibration import ProjectionParameters
from ttc_fusion.data_types import LidarPoint, lidar_points_to_array

logger = logging.getLogger(__name__)


class LidarProjector:
    """
    Maps 3D lidar points to pixel coordinates.

    The homogeneous image vector [u, v, w] is normalised by w, the depth
    along the optical axis. Points with w <= ``min_depth`` lie behind (or
    on) the image plane: their pixel position is undefined and they are
    reported as invalid instead of being projected through a sign flip.
    """

    def __init__(self, params: ProjectionParameters, min_depth: float = 1e-6):
        """
        Args:
            params:    Projection chain (P_rect, R_rect, RT).
            min_depth: Smallest accepted depth w.
        """
        self.params = params
        self.min_depth = min_depth

    def project_point(self, point: LidarPoint) -> Optional[Tuple[float, float]]:
        """
        Project a single lidar point.

        Returns:
            (u, v) pixel coordinate, or None if the point does not lie in
            front of the camera.
        """
        X = np.array([point.x, point.y, point.z, 1.0], dtype=np.float64)
        Y = self.params.projection @ X

        if Y[2] <= self.min_depth:
            return None
        return float(Y[0] / Y[2]), float(Y[1] / Y[2])

    def project_points(
        self, points: Sequence[LidarPoint]
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Project many lidar points at once.

        Returns:
            (uv, valid) where ``uv`` is (N, 2) with NaN rows for invalid
            points and ``valid`` is an (N,) boolean mask.
        """
        arr = lidar_points_to_array(points)
        n = arr.shape[0]
        if n == 0:
            return np.zeros((0, 2), dtype=np.float64), np.zeros(0, dtype=bool)

        X = np.hstack([arr[:, :3], np.ones((n, 1))])      # N×4
        Y = (self.params.projection @ X.T).T               # N×3

        valid = Y[:, 2] > self.min_depth
        uv = np.full((n, 2), np.nan, dtype=np.float64)
        uv[valid] = Y[valid, :2] / Y[valid, 2:3]

        n_invalid = int(n - valid.sum())
        if n_invalid:
            logger.debug("%d of %d lidar points lie behind the camera", n_invalid, n)

        return uv, valid
