from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class JointName(str, Enum):
	NECK = "neck"
	ROOT = "root"
	NOSE = "nose"
	LEFT_SHOULDER = "left_shoulder"
	RIGHT_SHOULDER = "right_shoulder"
	LEFT_ELBOW = "left_elbow"
	RIGHT_ELBOW = "right_elbow"
	LEFT_WRIST = "left_wrist"
	RIGHT_WRIST = "right_wrist"
	LEFT_HIP = "left_hip"
	RIGHT_HIP = "right_hip"
	LEFT_KNEE = "left_knee"
	RIGHT_KNEE = "right_knee"
	LEFT_ANKLE = "left_ankle"
	RIGHT_ANKLE = "right_ankle"


@dataclass(frozen=True)
class JointPoint:
	"""
	A single detected joint.

	Coordinates are normalized to the image size with the origin at the TOP-LEFT
	corner and y growing downward. Every threshold in the scoring pipeline assumes
	this convention.
	"""

	name: JointName
	x: float
	y: float
	confidence: float  # [0..1]


JointMap = Dict[JointName, JointPoint]


def filter_confident(joints: JointMap, min_confidence: float) -> JointMap:
	return {name: p for name, p in joints.items() if float(p.confidence) >= float(min_confidence)}
