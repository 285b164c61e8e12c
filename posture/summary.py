"""
Cross-view summary: overall score, headline and rule-based findings with advice.

Front/back views judge left-right balance (shoulders, pelvis, and knees on the front
view only); side views judge lean and head position. Each finding maps to exactly
one advice bullet.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Tuple

from posture.models import DirectionalResult, PostureMetrics, SessionSummary, ShotDirection
from posture.scoring import round_half_up, tier_for

SHOULDER_ASYMMETRY = "shoulder asymmetry"
PELVIS_ASYMMETRY = "pelvis asymmetry"
KNEE_ASYMMETRY = "knee asymmetry"
TORSO_LEAN = "torso lean"
FORWARD_HEAD = "forward head posture"

Rule = Tuple[str, Callable[[PostureMetrics], bool]]

_FRONT_BACK_RULES: List[Rule] = [
	(SHOULDER_ASYMMETRY, lambda m: m.shoulder_diff > 0.06),
	(PELVIS_ASYMMETRY, lambda m: m.hip_diff > 0.06),
]

_SIDE_RULES: List[Rule] = [
	(TORSO_LEAN, lambda m: m.torso_tilt_deg > 6.0),
	(FORWARD_HEAD, lambda m: m.head_offset_x > 0.05),
]

FINDING_RULES: Dict[ShotDirection, List[Rule]] = {
	ShotDirection.FRONT: _FRONT_BACK_RULES + [(KNEE_ASYMMETRY, lambda m: m.knee_diff > 0.08)],
	ShotDirection.BACK: list(_FRONT_BACK_RULES),
	ShotDirection.RIGHT: list(_SIDE_RULES),
	ShotDirection.LEFT: list(_SIDE_RULES),
}

ADVICE: Dict[str, str] = {
	SHOULDER_ASYMMETRY: "Shoulders sit at different heights: relax both shoulders and avoid carrying bags on the same side.",
	PELVIS_ASYMMETRY: "The pelvis is tilted: stand with weight spread evenly over both feet instead of resting on one hip.",
	KNEE_ASYMMETRY: "Knee heights differ: check that you are not locking one knee, and stretch the hips and thighs evenly.",
	TORSO_LEAN: "The torso leans: gently engage your core and stack your ribs directly over the pelvis.",
	FORWARD_HEAD: "The head sits forward: practice chin tucks and keep screens at eye level.",
}

DEFAULT_BULLETS: List[str] = [
	"No major imbalance found: maintain your current habits.",
	"Keep moving regularly and re-check your posture once a month.",
]

UNANALYZED_BULLETS: List[str] = [
	"Stand 2-3 m from the camera so your whole body, head to feet, is in frame.",
	"Use even, bright lighting and avoid strong backlight.",
	"Keep the camera stable and level at about waist height.",
]


def detect_findings(items: Iterable[DirectionalResult]) -> List[str]:
	"""
	Findings in first-seen order over the canonical direction order, deduplicated.
	Only scored views with metrics contribute.
	"""
	by_dir = {it.direction: it for it in items}
	found: List[str] = []
	for direction in ShotDirection:
		it = by_dir.get(direction)
		if it is None or not it.is_scored or it.metrics is None:
			continue
		for finding, rule in FINDING_RULES[direction]:
			if finding not in found and rule(it.metrics):
				found.append(finding)
	return found


def advice_for(findings: Iterable[str]) -> List[str]:
	bullets = [ADVICE[f] for f in findings if f in ADVICE]
	return bullets or list(DEFAULT_BULLETS)


def average_score(items: Iterable[DirectionalResult]) -> Tuple[int, int]:
	"""(rounded average, count) over views with a score; views with errors are excluded."""
	scores = [int(it.score) for it in items if it.is_scored]
	if not scores:
		return 0, 0
	return round_half_up(sum(scores) / float(len(scores))), len(scores)


def summarize(items: List[DirectionalResult]) -> SessionSummary:
	avg, count = average_score(items)
	if count == 0:
		return SessionSummary(
			score=None,
			headline="Could not analyze",
			message="None of the four photos could be analyzed. Please retake them under the conditions below.",
			bullets=list(UNANALYZED_BULLETS),
			findings=[],
		)

	headline, tier_message = tier_for(avg)
	findings = detect_findings(items)
	if findings:
		detail = "Points to watch: " + ", ".join(findings) + "."
	else:
		detail = "No specific imbalance stood out across the views."
	skipped = len(items) - count
	basis = f"Average of {count} view{'s' if count != 1 else ''}"
	if skipped:
		basis += f" ({skipped} could not be analyzed)"
	message = f"{basis}: {avg} points. {tier_message} {detail}"
	return SessionSummary(
		score=avg,
		headline=headline,
		message=message,
		bullets=advice_for(findings),
		findings=findings,
	)
