"""
Posture score: weighted, thresholded penalty over the six metrics, plus the tiered
diagnosis text. Weights, thresholds and tier boundaries are fixed; they are what make
scores comparable across sessions.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from posture.models import ZERO_METRICS, PostureMetrics
from posture.pose.pose_metrics import extract_metrics
from posture.pose.types import JointMap


# metric attribute -> (threshold, weight)
METRIC_RULES: List[Tuple[str, float, float]] = [
	("shoulder_diff", 0.10, 0.25),
	("hip_diff", 0.10, 0.20),
	("torso_tilt_deg", 8.0, 0.15),
	("head_offset_x", 0.08, 0.15),
	("knee_diff", 0.12, 0.15),
	("ankle_diff", 0.12, 0.10),
]

# (lower bound inclusive, headline, message); first match wins, scanned top-down.
SCORE_TIERS: List[Tuple[int, str, str]] = [
	(90, "Very good", "Very good posture. Keep maintaining it."),
	(75, "Generally good", "Generally good, with a minor left-right asymmetry in the shoulders or pelvis."),
	(60, "Noticeable tilt", "A noticeable tilt. Check the height of your shoulders, pelvis and knees and realign."),
	(0, "Significant imbalance", "Significant imbalance overall. A postural reset is needed: stand so that feet to head form one straight line."),
]

DEGENERATE_MESSAGE = "Posture not recognized. Recapture with your full body visible."


@dataclass(frozen=True)
class PostureScore:
	score: int
	message: str
	metrics: PostureMetrics
	recognized: bool = True


def round_half_up(value: float) -> int:
	return int(math.floor(float(value) + 0.5))


def normalize_metric(value: float, threshold: float) -> float:
	return min(1.0, max(0.0, float(value) / float(threshold)))


def penalty(metrics: PostureMetrics) -> float:
	return sum(weight * normalize_metric(getattr(metrics, attr), threshold) for attr, threshold, weight in METRIC_RULES)


def score_metrics(metrics: PostureMetrics) -> int:
	raw = round_half_up(100.0 * (1.0 - penalty(metrics)))
	return max(0, min(100, raw))


def tier_for(score: int) -> Tuple[str, str]:
	"""Return (headline, message) for a 0-100 score."""
	s = max(0, min(100, int(score)))
	for lower, headline, message in SCORE_TIERS:
		if s >= lower:
			return headline, message
	return SCORE_TIERS[-1][1], SCORE_TIERS[-1][2]


def message_for(score: int) -> str:
	return tier_for(score)[1]


def headline_for(score: int) -> str:
	return tier_for(score)[0]


def score_posture(metrics: Optional[PostureMetrics]) -> PostureScore:
	"""
	Score extracted metrics. None (required joints missing) gives the degenerate
	result: score 0, zero metrics, recapture message.
	"""
	if metrics is None:
		return PostureScore(score=0, message=DEGENERATE_MESSAGE, metrics=ZERO_METRICS, recognized=False)
	score = score_metrics(metrics)
	return PostureScore(score=score, message=message_for(score), metrics=metrics)


def score_joints(joints: JointMap) -> PostureScore:
	return score_posture(extract_metrics(joints))
