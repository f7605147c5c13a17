"""
Calibration module - Lidar-to-image projection chain and projector
"""

from .load_calibration import (
    ProjectionParameters,
    load_projection_parameters,
    projection_parameters_from_config,
)
from .projector import LidarProjector


__all__ = [
    'ProjectionParameters',
    'load_projection_parameters',
    'projection_parameters_from_config',
    'LidarProjector',
]
