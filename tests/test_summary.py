from conftest import solid
from posture.models import CAPTURE_ORDER, DirectionalResult, PostureMetrics, ShotDirection
from posture.summary import (
	ADVICE,
	DEFAULT_BULLETS,
	FORWARD_HEAD,
	KNEE_ASYMMETRY,
	PELVIS_ASYMMETRY,
	SHOULDER_ASYMMETRY,
	TORSO_LEAN,
	UNANALYZED_BULLETS,
	advice_for,
	average_score,
	detect_findings,
	summarize,
)


def item(direction, score=None, metrics=None, error=None):
	return DirectionalResult(
		direction=direction,
		source_image=solid((0, 0, 0), (8, 8)),
		score=score,
		message="msg" if score is not None else None,
		metrics=metrics if metrics is not None else (PostureMetrics() if score is not None else None),
		error=error,
	)


def four(scores, metrics=None):
	metrics = metrics or {}
	out = []
	for d, s in zip(CAPTURE_ORDER, scores):
		if isinstance(s, str):
			out.append(item(d, error=s))
		else:
			out.append(item(d, score=s, metrics=metrics.get(d)))
	return out


def test_average_excludes_errored_views():
	items = four([80, 90, "detector failed", 70])
	assert average_score(items) == (80, 3)
	s = summarize(items)
	assert s.score == 80
	assert s.headline == "Generally good"
	assert s.score_text == "80 pts"


def test_average_rounds_half_up():
	assert average_score(four([90, 91, 90, 90]))[0] == 90
	assert average_score(four([90, 91, "x", "y"]))[0] == 91


def test_degenerate_zero_counts():
	assert summarize(four([100, 100, 100, 0])).score == 75


def test_no_scored_views():
	s = summarize(four(["a", "b", "c", "d"]))
	assert s.score is None
	assert s.headline == "Could not analyze"
	assert s.bullets == UNANALYZED_BULLETS
	assert s.findings == []


def test_summary_is_idempotent():
	items = four([95, 61, 77, "boom"], {ShotDirection.FRONT: PostureMetrics(shoulder_diff=0.07)})
	assert summarize(items) == summarize(items)


def test_front_findings():
	items = four(
		[70, 100, 100, 100],
		{ShotDirection.FRONT: PostureMetrics(shoulder_diff=0.07, hip_diff=0.02, knee_diff=0.09)},
	)
	assert detect_findings(items) == [SHOULDER_ASYMMETRY, KNEE_ASYMMETRY]


def test_knee_rule_only_applies_to_front():
	items = four([100, 100, 70, 100], {ShotDirection.BACK: PostureMetrics(knee_diff=0.2, hip_diff=0.08)})
	assert detect_findings(items) == [PELVIS_ASYMMETRY]


def test_side_findings_are_deduplicated():
	lean = PostureMetrics(torso_tilt_deg=7.0, head_offset_x=0.06)
	items = four([100, 70, 100, 70], {ShotDirection.RIGHT: lean, ShotDirection.LEFT: lean})
	assert detect_findings(items) == [TORSO_LEAN, FORWARD_HEAD]


def test_side_views_do_not_judge_shoulder_height():
	items = four([100, 70, 100, 100], {ShotDirection.RIGHT: PostureMetrics(shoulder_diff=0.5)})
	assert detect_findings(items) == []


def test_thresholds_are_strict():
	items = four([100, 100, 100, 100], {ShotDirection.FRONT: PostureMetrics(shoulder_diff=0.06)})
	assert detect_findings(items) == []


def test_errored_views_do_not_contribute_findings():
	items = four([100, 100, 100, 100])
	items[0] = item(ShotDirection.FRONT, error="failed")
	items[0].metrics = PostureMetrics(shoulder_diff=0.5)
	assert detect_findings(items) == []


def test_each_finding_has_one_advice_bullet():
	findings = [SHOULDER_ASYMMETRY, PELVIS_ASYMMETRY, KNEE_ASYMMETRY, TORSO_LEAN, FORWARD_HEAD]
	bullets = advice_for(findings)
	assert bullets == [ADVICE[f] for f in findings]
	assert len(set(bullets)) == len(findings)


def test_no_findings_gives_default_advice():
	s = summarize(four([100, 100, 100, 100]))
	assert s.findings == []
	assert s.bullets == DEFAULT_BULLETS
	assert s.headline == "Very good"


def test_summary_message_mentions_findings():
	items = four([70, 100, 100, 100], {ShotDirection.FRONT: PostureMetrics(hip_diff=0.08)})
	s = summarize(items)
	assert PELVIS_ASYMMETRY in s.message
	assert s.bullets == [ADVICE[PELVIS_ASYMMETRY]]
