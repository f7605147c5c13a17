"""
Data I/O - Saving and loading frame bundles and TTC results.

A frame bundle is a compressed .npz archive with the pre-computed inputs of
one step:

    keypoints     (N, 3)  x, y, size
    matches       (M, 3)  queryIdx (previous frame), trainIdx (this frame), distance
    lidar_points  (L, 4)  x, y, z, r
    boxes         (B, 4)  x, y, width, height
    box_ids       (B,)
    class_ids     (B,)    optional
    confidences   (B,)    optional
    metadata      JSON string, optional ('timestamp', 'frame_index', ...)
"""

import cv2
import json
import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence

from ttc_fusion.data_types import (
    BoundingBox, DataFrame, lidar_points_from_array, lidar_points_to_array,
)


def save_frame(frame: DataFrame, output_path: str, metadata: Optional[dict] = None):
    """
    Save the inputs of one step.

    Args:
        frame: DataFrame to save (box associations are not saved)
        output_path: Path of the output file (.npz)
        metadata: Optional extra metadata
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    keypoints = np.array([[kp.pt[0], kp.pt[1], kp.size] for kp in frame.keypoints],
                         dtype=np.float64).reshape(-1, 3)
    matches = np.array([[m.queryIdx, m.trainIdx, m.distance] for m in frame.kpt_matches],
                       dtype=np.float64).reshape(-1, 3)
    boxes = frame.bounding_boxes

    meta = dict(metadata or {})
    if frame.timestamp is not None:
        meta['timestamp'] = frame.timestamp
    if frame.frame_index is not None:
        meta['frame_index'] = frame.frame_index

    np.savez_compressed(
        output_file,
        keypoints=keypoints,
        matches=matches,
        lidar_points=lidar_points_to_array(frame.lidar_points),
        boxes=np.array([b.roi for b in boxes], dtype=np.float64).reshape(-1, 4),
        box_ids=np.array([b.box_id for b in boxes], dtype=np.int64),
        class_ids=np.array([b.class_id for b in boxes], dtype=np.int64),
        confidences=np.array([b.confidence for b in boxes], dtype=np.float64),
        metadata=np.array([json.dumps(meta)]),
    )


def load_frame(input_path: str) -> DataFrame:
    """
    Load a frame bundle.

    Args:
        input_path: Path of the .npz file

    Returns:
        DataFrame with fresh (unassociated) bounding boxes

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If a mandatory array is missing
    """
    if not Path(input_path).exists():
        raise FileNotFoundError(f"Frame file not found: {input_path}")

    with np.load(input_path, allow_pickle=False) as data:
        keypoint_arr = data['keypoints'].reshape(-1, 3)
        match_arr = data['matches'].reshape(-1, 3)
        rois = data['boxes'].reshape(-1, 4)
        n_boxes = rois.shape[0]
        box_ids = data['box_ids'] if 'box_ids' in data.files else np.arange(n_boxes)
        class_ids = data['class_ids'] if 'class_ids' in data.files else np.full(n_boxes, -1)
        confidences = data['confidences'] if 'confidences' in data.files else np.zeros(n_boxes)
        lidar = data['lidar_points'] if 'lidar_points' in data.files else np.zeros((0, 4))
        metadata = {}
        if 'metadata' in data.files:
            metadata = json.loads(str(data['metadata'][0]))

    keypoints = [cv2.KeyPoint(float(x), float(y), float(size)) for x, y, size in keypoint_arr]
    matches = [cv2.DMatch(int(q), int(t), float(d)) for q, t, d in match_arr]

    boxes = [
        BoundingBox(box_id=int(box_id), roi=tuple(float(v) for v in roi),
                    class_id=int(cls), confidence=float(conf))
        for box_id, roi, cls, conf in zip(box_ids, rois, class_ids, confidences)
    ]

    return DataFrame(
        bounding_boxes=boxes,
        keypoints=keypoints,
        kpt_matches=matches,
        lidar_points=lidar_points_from_array(lidar),
        timestamp=metadata.get('timestamp'),
        frame_index=metadata.get('frame_index'),
    )


def list_frame_files(input_dir: str, pattern: str = "*.npz") -> List[Path]:
    """
    Find all frame bundles in a directory, sorted by name.

    Raises:
        FileNotFoundError: If the directory does not exist
    """
    input_path = Path(input_dir)

    if not input_path.exists():
        raise FileNotFoundError(f"Directory not found: {input_dir}")

    return sorted(input_path.glob(pattern))


def save_ttc_results(results: Sequence, output_path: str, metadata: Optional[dict] = None):
    """
    Save TTC results as JSON.

    Args:
        results: TrackedObjectTTC instances (anything with ``to_dict()``)
        output_path: Path of the output file (.json)
        metadata: Optional metadata stored next to the results
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        'metadata': metadata or {},
        'results': [r.to_dict() for r in results],
    }
    with open(output_file, 'w') as f:
        json.dump(payload, f, indent=2)


def load_ttc_results(input_path: str) -> List[dict]:
    """Load the per-object records written by ``save_ttc_results``."""
    with open(input_path, 'r') as f:
        return json.load(f)['results']
