"""Camera backend implementations selected by posture.camera_backend.get_camera_backend()."""
