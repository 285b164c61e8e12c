"""
Pose estimation utilities.

This package defines a model-agnostic joint map (normalized, top-left origin) and
provider adapters (e.g., MediaPipe Pose) so the detector can be swapped without
touching metric extraction, scoring or rendering.
"""
