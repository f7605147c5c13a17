"""
Tracking module - Two-frame TTC pipeline.
"""

from .ttc_tracker import TTCTracker, TrackedObjectTTC

__all__ = [
    'TTCTracker',
    'TrackedObjectTTC',
]
