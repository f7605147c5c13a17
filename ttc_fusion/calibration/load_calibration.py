"""
load_calibration.py

Utilities for loading the lidar-to-image projection chain.

The chain is the one used by the KITTI raw dataset:

    [u, v, w]^T = P_rect · R_rect · RT · [x, y, z, 1]^T

P_rect  – 3×4 rectified intrinsic projection of the reference camera.
R_rect  – rectifying rotation, 4×4 homogeneous (a 3×3 input is promoted).
RT      – lidar-to-camera rotation and translation, 4×4 homogeneous
          (a 3×4 input is promoted).

Supported file format
---------------------
.yaml – keys 'P_rect', 'R_rect' and 'RT' (the KITTI-style names
        'P_rect_00' / 'R_rect_00' are accepted as well), each a nested list
        of rows or a flat row-major list.
"""

import numpy as np
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict

from ttc_fusion.utils.config_loader import load_config


# ===========================================================================
# Data container
# ===========================================================================

def _to_homogeneous(matrix: np.ndarray, name: str) -> np.ndarray:
    """Promote a 3×3 or 3×4 transform to a 4×4 homogeneous one."""
    if matrix.shape == (4, 4):
        return matrix
    if matrix.shape in ((3, 3), (3, 4)):
        out = np.eye(4, dtype=np.float64)
        out[:3, :matrix.shape[1]] = matrix
        return out
    raise ValueError(f"{name} must be (3, 3), (3, 4) or (4, 4), got {matrix.shape}")


@dataclass(frozen=True)
class ProjectionParameters:
    """
    Immutable container for the lidar-to-image projection chain.

    Attributes:
        p_rect: 3×4 intrinsic projection matrix.
        r_rect: 4×4 rectification matrix.
        rt:     4×4 lidar-to-camera extrinsic matrix.
        projection: 3×4 product P_rect · R_rect · RT (computed).
    """
    p_rect: np.ndarray
    r_rect: np.ndarray
    rt:     np.ndarray
    projection: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        """Validate shapes, promote to homogeneous form and freeze arrays."""
        p_rect = np.array(self.p_rect, dtype=np.float64)
        if p_rect.shape != (3, 4):
            raise ValueError(f"p_rect must be (3, 4), got {p_rect.shape}")

        r_rect = _to_homogeneous(np.array(self.r_rect, dtype=np.float64), "r_rect")
        rt     = _to_homogeneous(np.array(self.rt,     dtype=np.float64), "rt")
        projection = p_rect @ r_rect @ rt

        for name, arr in (('p_rect', p_rect), ('r_rect', r_rect), ('rt', rt),
                          ('projection', projection)):
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def fx(self) -> float:
        """Focal length along the x-axis (pixels)."""
        return float(self.p_rect[0, 0])

    @property
    def fy(self) -> float:
        """Focal length along the y-axis (pixels)."""
        return float(self.p_rect[1, 1])


# ===========================================================================
# Loaders
# ===========================================================================

_KEY_ALIASES = {
    'p_rect': ('P_rect', 'P_rect_00', 'p_rect'),
    'r_rect': ('R_rect', 'R_rect_00', 'r_rect'),
    'rt':     ('RT', 'Tr_velo_to_cam', 'rt'),
}

_EXPECTED_SHAPES = {
    'p_rect': [(3, 4)],
    'r_rect': [(4, 4), (3, 3)],
    'rt':     [(4, 4), (3, 4)],
}


def _lookup_matrix(data: Dict[str, Any], name: str) -> np.ndarray:
    for key in _KEY_ALIASES[name]:
        if key in data:
            arr = np.asarray(data[key], dtype=np.float64)
            if arr.ndim == 1:
                # Flat row-major list: pick the first shape whose size fits
                for shape in _EXPECTED_SHAPES[name]:
                    if arr.size == shape[0] * shape[1]:
                        return arr.reshape(shape)
            return arr
    raise KeyError(
        f"Missing calibration matrix '{name}' "
        f"(accepted keys: {', '.join(_KEY_ALIASES[name])})"
    )


def projection_parameters_from_config(config: Dict[str, Any]) -> ProjectionParameters:
    """
    Build ProjectionParameters from an already-parsed configuration dict.

    The matrices may live at the top level or under a 'calibration' key.

    Raises:
        KeyError:   If one of the three matrices is missing.
        ValueError: If a matrix has the wrong shape.
    """
    data = config.get('calibration', config)
    return ProjectionParameters(
        p_rect=_lookup_matrix(data, 'p_rect'),
        r_rect=_lookup_matrix(data, 'r_rect'),
        rt=_lookup_matrix(data, 'rt'),
    )


def load_projection_parameters(calibration_path: str) -> ProjectionParameters:
    """
    Load the projection chain from a YAML calibration file.

    Args:
        calibration_path: Path to the calibration YAML.

    Returns:
        ProjectionParameters instance with float64 read-only arrays.

    Raises:
        FileNotFoundError: If the calibration file does not exist.
        KeyError:          If one of the matrices is missing.
        ValueError:        If a matrix has the wrong shape.
    """
    if not Path(calibration_path).exists():
        raise FileNotFoundError(f"Calibration file not found: {calibration_path}")

    return projection_parameters_from_config(load_config(calibration_path))
