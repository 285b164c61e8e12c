from __future__ import annotations

import logging
from typing import Optional

from posture.config import PoseConfig
from posture.errors import DetectionError
from posture.images import NormalizedImage
from posture.pose.base import KeypointProvider
from posture.pose.types import JointMap, JointName, JointPoint

logger = logging.getLogger(__name__)


_LANDMARKS = {
	JointName.NOSE: "NOSE",
	JointName.LEFT_SHOULDER: "LEFT_SHOULDER",
	JointName.RIGHT_SHOULDER: "RIGHT_SHOULDER",
	JointName.LEFT_ELBOW: "LEFT_ELBOW",
	JointName.RIGHT_ELBOW: "RIGHT_ELBOW",
	JointName.LEFT_WRIST: "LEFT_WRIST",
	JointName.RIGHT_WRIST: "RIGHT_WRIST",
	JointName.LEFT_HIP: "LEFT_HIP",
	JointName.RIGHT_HIP: "RIGHT_HIP",
	JointName.LEFT_KNEE: "LEFT_KNEE",
	JointName.RIGHT_KNEE: "RIGHT_KNEE",
	JointName.LEFT_ANKLE: "LEFT_ANKLE",
	JointName.RIGHT_ANKLE: "RIGHT_ANKLE",
}

# MediaPipe has no neck/root landmark; they are synthesized as midpoints.
_MIDPOINTS = {
	JointName.NECK: (JointName.LEFT_SHOULDER, JointName.RIGHT_SHOULDER),
	JointName.ROOT: (JointName.LEFT_HIP, JointName.RIGHT_HIP),
}


def add_midpoint_joints(joints: JointMap) -> JointMap:
	"""
	Add neck (shoulder midpoint) and root (hip midpoint) when both sides are present.
	Confidence is the weaker of the pair.
	"""
	out = dict(joints)
	for name, (a, b) in _MIDPOINTS.items():
		if name in out:
			continue
		pa = out.get(a)
		pb = out.get(b)
		if pa is None or pb is None:
			continue
		out[name] = JointPoint(
			name=name,
			x=(float(pa.x) + float(pb.x)) / 2.0,
			y=(float(pa.y) + float(pb.y)) / 2.0,
			confidence=min(float(pa.confidence), float(pb.confidence)),
		)
	return out


class MediaPipePoseProvider(KeypointProvider):
	"""
	MediaPipe Pose provider in static-image mode.

	Notes:
	- MediaPipe already reports normalized coordinates with a top-left origin, which
	  is the pipeline's convention, so values are passed through (clamped to [0,1]).
	- `visibility` is used as confidence (best-effort).
	"""

	def __init__(self, model_complexity: int = 1, min_detection_confidence: float = 0.5) -> None:
		try:
			import mediapipe as mp  # type: ignore
		except Exception as e:
			raise RuntimeError(
				"MediaPipe is not installed. Install pose deps with: pip install '.[pose]'"
			) from e

		self._mp = mp
		self._pose = mp.solutions.pose.Pose(
			static_image_mode=True,
			model_complexity=int(model_complexity),
			enable_segmentation=False,
			min_detection_confidence=float(min_detection_confidence),
		)

	def name(self) -> str:
		return "mediapipe_pose"

	def detect(self, image: NormalizedImage) -> JointMap:
		import numpy as np

		rgb = np.asarray(image.image, dtype=np.uint8)
		try:
			res = self._pose.process(rgb)
		except Exception as e:
			raise DetectionError(f"pose model failed: {e!r}") from e

		if not res or not getattr(res, "pose_landmarks", None):
			logger.debug("[POSE] no person found in %sx%s image", image.width, image.height)
			return {}

		lm = res.pose_landmarks.landmark
		PL = self._mp.solutions.pose.PoseLandmark
		joints: JointMap = {}
		for name, attr in _LANDMARKS.items():
			try:
				p = lm[int(getattr(PL, attr))]
			except Exception:
				continue
			joints[name] = JointPoint(
				name=name,
				x=min(1.0, max(0.0, float(p.x))),
				y=min(1.0, max(0.0, float(p.y))),
				confidence=float(getattr(p, "visibility", 0.0) or 0.0),
			)
		return add_midpoint_joints(joints)

	def close(self) -> None:
		try:
			if self._pose:
				self._pose.close()
		except Exception:
			pass


def get_keypoint_provider(cfg: Optional[PoseConfig] = None) -> KeypointProvider:
	cfg = cfg or PoseConfig()
	backend = (cfg.backend or "mediapipe").strip().lower()
	if backend not in ("mediapipe", "mp"):
		logger.warning("[POSE] unknown pose backend %r; using mediapipe", backend)
	return MediaPipePoseProvider(
		model_complexity=int(cfg.model_complexity),
		min_detection_confidence=float(cfg.min_detection_confidence),
	)
