from __future__ import annotations

import math
from typing import Optional

from posture.models import ZERO_METRICS, PostureMetrics
from posture.pose.types import JointMap, JointName, JointPoint


REQUIRED_JOINTS = (
	JointName.LEFT_SHOULDER,
	JointName.RIGHT_SHOULDER,
	JointName.LEFT_HIP,
	JointName.RIGHT_HIP,
)


def has_required_joints(joints: JointMap) -> bool:
	return all(j in joints for j in REQUIRED_JOINTS)


def _pair_diff_y(a: Optional[JointPoint], b: Optional[JointPoint]) -> float:
	if a is None or b is None:
		return 0.0
	return abs(float(a.y) - float(b.y))


def line_tilt_deg(a: JointPoint, b: JointPoint) -> float:
	"""
	Inclination of the a-b line against the image horizontal, in [0, 90] degrees.
	Independent of which joint is on the left of the image, so front and back views
	of the same stance give the same value.
	"""
	dx = float(a.x) - float(b.x)
	dy = float(a.y) - float(b.y)
	return math.degrees(math.atan2(abs(dy), abs(dx)))


def extract_metrics(joints: JointMap) -> Optional[PostureMetrics]:
	"""
	Convert a joint map into posture metrics.

	Returns None when a required joint (either shoulder or either hip) is missing;
	callers turn that into the degenerate zero-score result. Optional joints (neck,
	knees, ankles) only zero out the metrics that depend on them.
	"""
	if not has_required_joints(joints):
		return None

	ls = joints[JointName.LEFT_SHOULDER]
	rs = joints[JointName.RIGHT_SHOULDER]
	lh = joints[JointName.LEFT_HIP]
	rh = joints[JointName.RIGHT_HIP]
	neck = joints.get(JointName.NECK)

	head_offset_x = 0.0
	if neck is not None:
		hip_mid_x = (float(lh.x) + float(rh.x)) / 2.0
		head_offset_x = abs(float(neck.x) - hip_mid_x)

	return PostureMetrics(
		shoulder_diff=_pair_diff_y(ls, rs),
		hip_diff=_pair_diff_y(lh, rh),
		torso_tilt_deg=line_tilt_deg(ls, rs),
		head_offset_x=head_offset_x,
		knee_diff=_pair_diff_y(joints.get(JointName.LEFT_KNEE), joints.get(JointName.RIGHT_KNEE)),
		ankle_diff=_pair_diff_y(joints.get(JointName.LEFT_ANKLE), joints.get(JointName.RIGHT_ANKLE)),
	)


def extract_metrics_or_zero(joints: JointMap) -> PostureMetrics:
	m = extract_metrics(joints)
	return m if m is not None else ZERO_METRICS
