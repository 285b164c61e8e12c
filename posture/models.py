from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from PIL import Image

from posture.images import NormalizedImage


class ShotDirection(str, Enum):
	FRONT = "front"
	RIGHT = "right"
	BACK = "back"
	LEFT = "left"

	@property
	def index(self) -> int:
		return CAPTURE_ORDER.index(self)

	@property
	def title(self) -> str:
		return _TITLES[self]

	@property
	def instruction(self) -> str:
		"""What the user is told before this direction's countdown."""
		return _INSTRUCTIONS[self]

	def next(self) -> Optional["ShotDirection"]:
		i = self.index + 1
		return CAPTURE_ORDER[i] if i < len(CAPTURE_ORDER) else None


CAPTURE_ORDER: List[ShotDirection] = [ShotDirection.FRONT, ShotDirection.RIGHT, ShotDirection.BACK, ShotDirection.LEFT]

_TITLES = {
	ShotDirection.FRONT: "Front",
	ShotDirection.RIGHT: "Right",
	ShotDirection.BACK: "Back",
	ShotDirection.LEFT: "Left",
}

_INSTRUCTIONS = {
	ShotDirection.FRONT: "Face the camera.",
	ShotDirection.RIGHT: "Turn to your right.",
	ShotDirection.BACK: "Turn your back to the camera.",
	ShotDirection.LEFT: "Turn to your left.",
}


@dataclass(frozen=True)
class CapturedShot:
	direction: ShotDirection
	image: Image.Image
	shot_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class PostureMetrics:
	"""
	Asymmetry/tilt metrics for one image. Image-space units (normalized coordinates,
	degrees for the tilt); all values are non-negative.
	"""

	shoulder_diff: float = 0.0
	hip_diff: float = 0.0
	torso_tilt_deg: float = 0.0
	head_offset_x: float = 0.0
	knee_diff: float = 0.0
	ankle_diff: float = 0.0

	def as_dict(self) -> Dict[str, float]:
		return {
			"shoulder_diff": float(self.shoulder_diff),
			"hip_diff": float(self.hip_diff),
			"torso_tilt_deg": float(self.torso_tilt_deg),
			"head_offset_x": float(self.head_offset_x),
			"knee_diff": float(self.knee_diff),
			"ankle_diff": float(self.ankle_diff),
		}


ZERO_METRICS = PostureMetrics()


@dataclass
class DirectionalResult:
	"""
	Per-direction analysis outcome.

	While pending, score/message/metrics/error are all None. Once analysis finishes,
	either score+message+metrics or error is set, never both. Filled in place by the
	analysis coordinator and treated as read-only afterwards.
	"""

	direction: ShotDirection
	source_image: Image.Image
	normalized_image: Optional[NormalizedImage] = None
	skeleton_image: Optional[Image.Image] = None
	score: Optional[int] = None
	message: Optional[str] = None
	metrics: Optional[PostureMetrics] = None
	error: Optional[str] = None

	@property
	def is_pending(self) -> bool:
		return self.score is None and self.error is None

	@property
	def is_scored(self) -> bool:
		return self.score is not None and self.error is None

	@property
	def display_image(self) -> Image.Image:
		if self.skeleton_image is not None:
			return self.skeleton_image
		if self.normalized_image is not None:
			return self.normalized_image.image
		return self.source_image

	def as_dict(self) -> Dict[str, Any]:
		return {
			"direction": self.direction.value,
			"title": self.direction.title,
			"pending": self.is_pending,
			"score": self.score,
			"message": self.message,
			"metrics": self.metrics.as_dict() if self.metrics is not None else None,
			"error": self.error,
			"has_skeleton": self.skeleton_image is not None,
		}


@dataclass(frozen=True)
class SessionSummary:
	score: Optional[int]
	headline: str
	message: str
	bullets: List[str] = field(default_factory=list)
	findings: List[str] = field(default_factory=list)

	@property
	def score_text(self) -> str:
		return f"{self.score} pts" if self.score is not None else "--"

	def as_dict(self) -> Dict[str, Any]:
		return {
			"score": self.score,
			"headline": self.headline,
			"message": self.message,
			"bullets": list(self.bullets),
			"findings": list(self.findings),
		}
