from __future__ import annotations

from typing import List, Tuple

from PIL import Image, ImageDraw

from posture.config import SkeletonConfig
from posture.images import NormalizedImage
from posture.pose.types import JointMap, JointName, JointPoint


J = JointName

BONES: List[Tuple[JointName, JointName]] = [
	(J.NECK, J.LEFT_SHOULDER),
	(J.NECK, J.RIGHT_SHOULDER),
	(J.LEFT_SHOULDER, J.LEFT_ELBOW),
	(J.LEFT_ELBOW, J.LEFT_WRIST),
	(J.RIGHT_SHOULDER, J.RIGHT_ELBOW),
	(J.RIGHT_ELBOW, J.RIGHT_WRIST),
	(J.NECK, J.ROOT),
	(J.ROOT, J.LEFT_HIP),
	(J.ROOT, J.RIGHT_HIP),
	(J.LEFT_HIP, J.LEFT_KNEE),
	(J.LEFT_KNEE, J.LEFT_ANKLE),
	(J.RIGHT_HIP, J.RIGHT_KNEE),
	(J.RIGHT_KNEE, J.RIGHT_ANKLE),
	(J.LEFT_SHOULDER, J.RIGHT_SHOULDER),
	(J.LEFT_HIP, J.RIGHT_HIP),
]


def to_pixels(p: JointPoint, size: Tuple[int, int]) -> Tuple[float, float]:
	# Normalized top-left origin maps straight onto PIL's pixel grid.
	w, h = size
	return (float(p.x) * float(w), float(p.y) * float(h))


def draw_skeleton(image: NormalizedImage, joints: JointMap, cfg: SkeletonConfig | None = None) -> Image.Image:
	"""
	Draw bones and joint markers on a copy of the normalized image. Joints below the
	configured confidence are skipped, along with every bone touching them.
	"""
	cfg = cfg or SkeletonConfig()
	out = image.image.copy()
	size = out.size
	visible = {name: p for name, p in joints.items() if float(p.confidence) >= float(cfg.min_confidence)}

	draw = ImageDraw.Draw(out)
	for a, b in BONES:
		pa = visible.get(a)
		pb = visible.get(b)
		if pa is None or pb is None:
			continue
		draw.line([to_pixels(pa, size), to_pixels(pb, size)], fill=cfg.bone_color, width=int(cfg.line_width))

	r = float(cfg.marker_radius)
	for p in visible.values():
		x, y = to_pixels(p, size)
		draw.ellipse([x - r, y - r, x + r, y + r], fill=cfg.joint_color)
	return out
