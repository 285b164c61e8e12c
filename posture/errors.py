"""Exception types raised across the capture/analysis/report pipeline."""


class PostureError(Exception):
	"""Base class for all errors raised by the posture package."""


class DetectionError(PostureError):
	"""The keypoint provider failed outright (bad image, model/runtime failure)."""


class CameraError(PostureError):
	"""Camera acquisition or capture failed. Session-fatal for the capture sequence."""


class CompositionError(PostureError):
	"""Report layout/rendering failed."""


class SequenceStateError(PostureError):
	"""An operation was requested that is not valid in the current state."""


class InvalidShotsError(PostureError):
	"""Analysis input is not exactly one shot per capture direction."""
