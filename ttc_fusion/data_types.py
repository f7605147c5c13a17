"""
data_types.py

Containers exchanged between the association and TTC stages.

Keypoints and keypoint correspondences are plain OpenCV objects
(``cv2.KeyPoint`` and ``cv2.DMatch``) so that the output of any OpenCV
detector/matcher can be fed in directly. For a match, ``queryIdx`` indexes
the previous frame's keypoints and ``trainIdx`` the current frame's.

Lidar coordinate system
-----------------------
    x – forward (metres)
    y – left
    z – up
    r – reflectivity, 0..1
"""

import cv2
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


Roi = Tuple[float, float, float, float]   # (x, y, width, height) in pixels


@dataclass(frozen=True)
class LidarPoint:
    """Single lidar return in vehicle coordinates."""
    x: float
    y: float
    z: float
    r: float = 0.0


def roi_contains(roi: Roi, u: float, v: float) -> bool:
    """
    Half-open containment test, same convention as ``cv::Rect::contains``.

    Args:
        roi: (x, y, width, height)
        u, v: pixel coordinate

    Returns:
        True if x <= u < x + width and y <= v < y + height.
    """
    x, y, w, h = roi
    return x <= u < x + w and y <= v < y + h


def rois_contain(rois: np.ndarray, uv: np.ndarray) -> np.ndarray:
    """
    Vectorised version of ``roi_contains``.

    Args:
        rois: (B, 4) array of (x, y, width, height)
        uv:   (N, 2) array of pixel coordinates (NaN rows never match)

    Returns:
        (N, B) boolean matrix, True where point n lies inside roi b.
    """
    rois = np.asarray(rois, dtype=np.float64).reshape(-1, 4)
    uv = np.asarray(uv, dtype=np.float64).reshape(-1, 2)

    u = uv[:, 0:1]
    v = uv[:, 1:2]
    x0, y0 = rois[:, 0], rois[:, 1]
    x1, y1 = x0 + rois[:, 2], y0 + rois[:, 3]

    # NaN comparisons are False, so invalid projections fall out here
    return (u >= x0) & (u < x1) & (v >= y0) & (v < y1)


@dataclass
class BoundingBox:
    """
    2D object detection plus everything associated with it during one step.

    Attributes:
        box_id:      Identifier, unique within one frame only.
        roi:         (x, y, width, height) in pixels.
        class_id:    Detector class index (-1 if unknown).
        confidence:  Detector confidence.
        lidar_points: Lidar points owned by this box (exclusive ownership).
        keypoints:   Current-frame keypoints of the owned matches.
        kpt_matches: Owned keypoint matches, parallel to ``keypoints``.
    """
    box_id: int
    roi: Roi
    class_id: int = -1
    confidence: float = 0.0
    lidar_points: List[LidarPoint] = field(default_factory=list)
    keypoints: List[cv2.KeyPoint] = field(default_factory=list)
    kpt_matches: List[cv2.DMatch] = field(default_factory=list)

    def contains(self, u: float, v: float) -> bool:
        return roi_contains(self.roi, u, v)


@dataclass
class DataFrame:
    """
    Everything known about one processing step.

    ``kpt_matches`` link the previous frame's ``keypoints`` (queryIdx) to
    this frame's ``keypoints`` (trainIdx). ``bb_matches`` is the
    previous box_id -> current box_id map, filled once this frame has been
    matched against its predecessor.
    """
    bounding_boxes: List[BoundingBox] = field(default_factory=list)
    keypoints: List[cv2.KeyPoint] = field(default_factory=list)
    kpt_matches: List[cv2.DMatch] = field(default_factory=list)
    lidar_points: List[LidarPoint] = field(default_factory=list)
    bb_matches: Dict[int, int] = field(default_factory=dict)
    timestamp: Optional[float] = None
    frame_index: Optional[int] = None

    def box_by_id(self, box_id: int) -> Optional[BoundingBox]:
        for box in self.bounding_boxes:
            if box.box_id == box_id:
                return box
        return None


# ===========================================================================
# Array conversion helpers
# ===========================================================================

def lidar_points_from_array(arr: np.ndarray) -> List[LidarPoint]:
    """
    Build lidar points from an (N, 3) or (N, 4) array.

    Raises:
        ValueError: If the array does not have 3 or 4 columns.
    """
    arr = np.asarray(arr, dtype=np.float64)
    if arr.size == 0:
        return []
    if arr.ndim != 2 or arr.shape[1] not in (3, 4):
        raise ValueError(f"Lidar array must be (N, 3) or (N, 4), got {arr.shape}")

    if arr.shape[1] == 3:
        return [LidarPoint(float(x), float(y), float(z)) for x, y, z in arr]
    return [LidarPoint(float(x), float(y), float(z), float(r)) for x, y, z, r in arr]


def lidar_points_to_array(points: Sequence[LidarPoint]) -> np.ndarray:
    """Inverse of ``lidar_points_from_array``; always returns (N, 4)."""
    if len(points) == 0:
        return np.zeros((0, 4), dtype=np.float64)
    return np.array([[p.x, p.y, p.z, p.r] for p in points], dtype=np.float64)


def keypoints_to_array(keypoints: Sequence[cv2.KeyPoint]) -> np.ndarray:
    """(N, 2) array of keypoint pixel positions."""
    if len(keypoints) == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return np.array([kp.pt for kp in keypoints], dtype=np.float64)
