from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from posture.camera_backend import CameraBackend
from posture.errors import CameraError
from posture.images import NormalizedImage
from posture.models import CAPTURE_ORDER, CapturedShot, ShotDirection
from posture.pose.base import KeypointProvider
from posture.pose.types import JointMap, JointName, JointPoint

# One solid colour per direction so a fake provider can tell the shots apart.
DIRECTION_COLORS = {
	ShotDirection.FRONT: (200, 0, 0),
	ShotDirection.RIGHT: (0, 200, 0),
	ShotDirection.BACK: (0, 0, 200),
	ShotDirection.LEFT: (200, 200, 0),
}


def jp(name: JointName, x: float, y: float, c: float = 0.9) -> JointPoint:
	return JointPoint(name=name, x=x, y=y, confidence=c)


def level_joints() -> JointMap:
	"""A person standing straight: every left/right pair at the same height."""
	J = JointName
	return {
		J.NECK: jp(J.NECK, 0.50, 0.30),
		J.ROOT: jp(J.ROOT, 0.50, 0.55),
		J.NOSE: jp(J.NOSE, 0.50, 0.20),
		J.LEFT_SHOULDER: jp(J.LEFT_SHOULDER, 0.40, 0.30),
		J.RIGHT_SHOULDER: jp(J.RIGHT_SHOULDER, 0.60, 0.30),
		J.LEFT_ELBOW: jp(J.LEFT_ELBOW, 0.37, 0.42),
		J.RIGHT_ELBOW: jp(J.RIGHT_ELBOW, 0.63, 0.42),
		J.LEFT_WRIST: jp(J.LEFT_WRIST, 0.36, 0.52),
		J.RIGHT_WRIST: jp(J.RIGHT_WRIST, 0.64, 0.52),
		J.LEFT_HIP: jp(J.LEFT_HIP, 0.45, 0.55),
		J.RIGHT_HIP: jp(J.RIGHT_HIP, 0.55, 0.55),
		J.LEFT_KNEE: jp(J.LEFT_KNEE, 0.45, 0.72),
		J.RIGHT_KNEE: jp(J.RIGHT_KNEE, 0.55, 0.72),
		J.LEFT_ANKLE: jp(J.LEFT_ANKLE, 0.45, 0.90),
		J.RIGHT_ANKLE: jp(J.RIGHT_ANKLE, 0.55, 0.90),
	}


def shifted(joints: JointMap, name: JointName, dy: float = 0.0, dx: float = 0.0) -> JointMap:
	out = dict(joints)
	p = out[name]
	out[name] = JointPoint(name=name, x=p.x + dx, y=p.y + dy, confidence=p.confidence)
	return out


def solid(color, size=(120, 160)) -> Image.Image:
	return Image.new("RGB", size, color)


def make_shots(order: Optional[List[ShotDirection]] = None) -> List[CapturedShot]:
	return [CapturedShot(direction=d, image=solid(DIRECTION_COLORS[d])) for d in (order or CAPTURE_ORDER)]


class FakeCamera(CameraBackend):
	"""In-memory camera: counts start/stop and hands out one coloured frame per capture."""

	def __init__(self, start_error: Optional[str] = None, fail_on_capture: Optional[int] = None) -> None:
		self.start_calls = 0
		self.stop_calls = 0
		self.captures = 0
		self.running = False
		self.start_error = start_error
		self.fail_on_capture = fail_on_capture

	def name(self) -> str:
		return "fake"

	def start(self) -> None:
		self.start_calls += 1
		if self.start_error is None:
			self.running = True

	def stop(self) -> None:
		self.stop_calls += 1
		self.running = False

	def get_status(self) -> Dict[str, Any]:
		return {"backend": "fake", "running": self.running, "error": self.start_error}

	async def capture_still(self) -> Image.Image:
		if not self.running:
			raise CameraError("camera not running")
		idx = self.captures
		self.captures += 1
		if self.fail_on_capture is not None and idx == self.fail_on_capture:
			raise CameraError("sensor timeout")
		await asyncio.sleep(0)
		return solid(DIRECTION_COLORS[CAPTURE_ORDER[idx % len(CAPTURE_ORDER)]])


class FakeProvider(KeypointProvider):
	"""
	Looks at the centre pixel and returns the joints registered for that colour.
	A registered exception is raised instead; unknown colours give the level pose.
	"""

	def __init__(self, by_color: Optional[Dict[tuple, Any]] = None) -> None:
		self.by_color = dict(by_color or {})
		self.calls: List[tuple] = []
		self.closed = False

	def name(self) -> str:
		return "fake"

	def detect(self, image: NormalizedImage) -> JointMap:
		color = image.image.getpixel((image.width // 2, image.height // 2))
		self.calls.append(color)
		out = self.by_color.get(tuple(color), None)
		if isinstance(out, Exception):
			raise out
		if out is None:
			return level_joints()
		return dict(out)

	def close(self) -> None:
		self.closed = True


@pytest.fixture
def camera() -> FakeCamera:
	return FakeCamera()


@pytest.fixture
def provider() -> FakeProvider:
	return FakeProvider()
