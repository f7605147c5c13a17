"""
Camera/Lidar TTC Fusion Package
Modules for associating lidar points and keypoint matches with 2D detections
and estimating time-to-collision from both sensors.
"""

__version__ = "1.0.0"
__author__ = "Vehicle Tracking Team"

# Main imports for convenience
from ttc_fusion.utils.config_loader import load_config
from ttc_fusion.calibration.load_calibration import load_projection_parameters
from ttc_fusion.tracking.ttc_tracker import TTCTracker

__all__ = [
    'load_config',
    'load_projection_parameters',
    'TTCTracker',
]
