"""
ttc_tracker.py

Step-by-step TTC computation over a stream of frames.

Each TTCTracker keeps exactly the two most recent DataFrames. When a new
frame is pushed:

    1. lidar points are optionally cropped to the ego lane and assigned to
       the frame's bounding boxes;
    2. boxes are matched against the previous frame through the keypoint
       matches;
    3. for each matched pair, the keypoint matches inside the current box
       are collected and both a lidar and a camera TTC are computed.

Parameters are read from the ``ttc_params.yaml`` sub-keys:
    sensor       frame_rate
    association  shrink_factor, max_shift_factor
    lidar_crop   enabled, min_x, max_x, max_y, min_z, max_z, min_r
    lidar_ttc    percentile, min_points
    camera_ttc   min_dist
    tracking     require_lidar
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional

from ttc_fusion.association import (
    cluster_kpt_matches_with_roi, cluster_lidar_with_roi, crop_lidar_points,
    match_bounding_boxes,
)
from ttc_fusion.calibration import LidarProjector, ProjectionParameters
from ttc_fusion.data_types import DataFrame
from ttc_fusion.ttc import TTCEstimate, compute_ttc_camera, compute_ttc_lidar
from ttc_fusion.ttc.estimate import check_frame_rate

logger = logging.getLogger(__name__)


@dataclass
class TrackedObjectTTC:
    """TTC results for one box matched between the previous and current frame."""
    prev_box_id:  int
    curr_box_id:  int
    ttc_lidar:    TTCEstimate
    ttc_camera:   TTCEstimate
    n_lidar_prev: int = 0
    n_lidar_curr: int = 0
    n_matches:    int = 0
    frame_index:  Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            'frame_index':  self.frame_index,
            'prev_box_id':  self.prev_box_id,
            'curr_box_id':  self.curr_box_id,
            'ttc_lidar':    self.ttc_lidar.seconds,
            'lidar_status': self.ttc_lidar.status.value,
            'ttc_camera':   self.ttc_camera.seconds,
            'camera_status': self.ttc_camera.status.value,
            'n_lidar_prev': self.n_lidar_prev,
            'n_lidar_curr': self.n_lidar_curr,
            'n_matches':    self.n_matches,
        }


class TTCTracker:
    """
    Two-frame buffer that turns consecutive DataFrames into TTC estimates.

    Boxes are not tracked beyond one step: identity is carried only by the
    previous -> current box map stored in ``current_frame.bb_matches``.
    """

    def __init__(self, config: Dict, projection_params: ProjectionParameters):
        """
        Initialise the tracker from the pipeline configuration.

        Args:
            config:            Full configuration dict (ttc_params.yaml).
            projection_params: Lidar-to-image projection chain.

        Raises:
            ValueError: If frame_rate or shrink_factor are out of range.
        """
        sensor_cfg  = config.get('sensor', {})
        assoc_cfg   = config.get('association', {})
        crop_cfg    = config.get('lidar_crop', {})
        lidar_cfg   = config.get('lidar_ttc', {})
        camera_cfg  = config.get('camera_ttc', {})
        tracking_cfg = config.get('tracking', {})

        self.frame_rate = check_frame_rate(sensor_cfg.get('frame_rate', 10.0))

        self.shrink_factor = float(assoc_cfg.get('shrink_factor', 0.10))
        if not 0.0 <= self.shrink_factor < 1.0:
            raise ValueError(f"shrink_factor must be in [0, 1), got {self.shrink_factor}")
        self.max_shift_factor = assoc_cfg.get('max_shift_factor')

        self.crop_enabled = bool(crop_cfg.get('enabled', True))
        self.crop_params = {k: float(v) for k, v in crop_cfg.items() if k != 'enabled'}

        self.percentile = float(lidar_cfg.get('percentile', 10.0))
        self.min_points = int(lidar_cfg.get('min_points', 6))
        self.min_dist   = float(camera_cfg.get('min_dist', 1.0))

        # Only pairs where both boxes own lidar points are evaluated
        self.require_lidar = bool(tracking_cfg.get('require_lidar', True))

        self.projector = LidarProjector(projection_params)

        # --- Internal state ---
        self.frames = deque(maxlen=2)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def current_frame(self) -> Optional[DataFrame]:
        return self.frames[-1] if self.frames else None

    @property
    def previous_frame(self) -> Optional[DataFrame]:
        return self.frames[0] if len(self.frames) == 2 else None

    def push_frame(self, frame: DataFrame) -> List[TrackedObjectTTC]:
        """
        Process one new frame.

        The frame's boxes are annotated in place with their lidar points and
        (for matched boxes) their keypoint matches.

        Returns:
            One TrackedObjectTTC per previous/current box pair; empty for the
            first frame.
        """
        if self.crop_enabled:
            frame.lidar_points = crop_lidar_points(frame.lidar_points, **self.crop_params)

        cluster_lidar_with_roi(frame.bounding_boxes, frame.lidar_points,
                               self.shrink_factor, self.projector)
        self.frames.append(frame)

        prev = self.previous_frame
        if prev is None:
            return []

        bb_matches = match_bounding_boxes(frame.kpt_matches, prev, frame)
        return self._compute_ttcs(prev, frame, bb_matches)

    def reset(self) -> None:
        """Discard both buffered frames."""
        self.frames.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _compute_ttcs(
        self, prev: DataFrame, curr: DataFrame, bb_matches: Dict[int, int]
    ) -> List[TrackedObjectTTC]:
        results = []
        for prev_id, curr_id in sorted(bb_matches.items()):
            prev_box = prev.box_by_id(prev_id)
            curr_box = curr.box_by_id(curr_id)

            if self.require_lidar and (not prev_box.lidar_points or not curr_box.lidar_points):
                logger.debug("Skipping pair %d -> %d: no lidar points", prev_id, curr_id)
                continue

            ttc_lidar = compute_ttc_lidar(prev_box.lidar_points, curr_box.lidar_points,
                                          self.frame_rate, self.percentile, self.min_points)

            # Boxes may be matched by more than one previous box; start clean
            curr_box.keypoints = []
            curr_box.kpt_matches = []
            cluster_kpt_matches_with_roi(curr_box, prev.keypoints, curr.keypoints,
                                         curr.kpt_matches, self.max_shift_factor)
            ttc_camera = compute_ttc_camera(prev.keypoints, curr.keypoints,
                                            curr_box.kpt_matches, self.frame_rate,
                                            self.min_dist)

            results.append(TrackedObjectTTC(
                prev_box_id=prev_id,
                curr_box_id=curr_id,
                ttc_lidar=ttc_lidar,
                ttc_camera=ttc_camera,
                n_lidar_prev=len(prev_box.lidar_points),
                n_lidar_curr=len(curr_box.lidar_points),
                n_matches=len(curr_box.kpt_matches),
                frame_index=curr.frame_index,
            ))

        logger.info("Frame %s: %d tracked objects with TTC",
                    curr.frame_index, len(results))
        return results
