from __future__ import annotations

import logging
from datetime import date as date_cls
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps

from posture.config import ReportConfig
from posture.errors import CompositionError
from posture.models import DirectionalResult, SessionSummary

logger = logging.getLogger(__name__)

PAD = 48
ROW_IMAGE_SIZE = (250, 320)
ROW_HEIGHT = 356
ROW_GAP = 18
TEXT = (20, 20, 20)
MUTED = (90, 90, 90)
ERROR_RED = (200, 40, 40)
PANEL = (246, 246, 246)
BADGE = (228, 228, 228)


def _font(size: int) -> ImageFont.ImageFont:
	return ImageFont.load_default(size=int(size))


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, max_width: float) -> List[str]:
	"""Greedy word wrap by rendered width."""
	lines: List[str] = []
	for paragraph in (text or "").splitlines() or [""]:
		words = paragraph.split(" ")
		cur = ""
		for w in words:
			trial = w if not cur else f"{cur} {w}"
			if draw.textlength(trial, font=font) <= max_width or not cur:
				cur = trial
			else:
				lines.append(cur)
				cur = w
		lines.append(cur)
	return lines


def _draw_lines(
	draw: ImageDraw.ImageDraw,
	xy: Tuple[int, int],
	lines: Sequence[str],
	font: ImageFont.ImageFont,
	fill,
	line_height: int,
	max_lines: Optional[int] = None,
) -> int:
	x, y = xy
	shown = list(lines)
	if max_lines is not None and len(shown) > max_lines:
		shown = shown[:max_lines]
		shown[-1] = shown[-1].rstrip() + "..."
	for line in shown:
		draw.text((x, y), line, font=font, fill=fill)
		y += line_height
	return y


def _badge(draw: ImageDraw.ImageDraw, xy: Tuple[int, int], text: str, font, fill=BADGE, text_fill=TEXT) -> int:
	x, y = xy
	w = int(draw.textlength(text, font=font)) + 28
	h = int(getattr(font, "size", 26)) + 16
	draw.rounded_rectangle([x, y, x + w, y + h], radius=h // 2, fill=fill)
	draw.text((x + 14, y + 8), text, font=font, fill=text_fill)
	return x + w


def metrics_line(item: DirectionalResult) -> str:
	m = item.metrics
	if m is None:
		return ""
	return (
		f"shoulder {m.shoulder_diff:.3f}  hip {m.hip_diff:.3f}  tilt {m.torso_tilt_deg:.1f}deg  "
		f"head {m.head_offset_x:.3f}  knee {m.knee_diff:.3f}  ankle {m.ankle_diff:.3f}"
	)


def _draw_row(canvas: Image.Image, draw: ImageDraw.ImageDraw, item: DirectionalResult, top: int, width: int) -> None:
	draw.rounded_rectangle([PAD, top, width - PAD, top + ROW_HEIGHT], radius=22, fill=PANEL)

	thumb = ImageOps.fit(item.display_image.convert("RGB"), ROW_IMAGE_SIZE, Image.Resampling.LANCZOS)
	canvas.paste(thumb, (PAD + 18, top + 18))

	x = PAD + 18 + ROW_IMAGE_SIZE[0] + 22
	text_w = (width - PAD - 18) - x
	y = top + 18
	f_badge = _font(26)
	bx = _badge(draw, (x, y), item.direction.title, f_badge)
	if item.score is not None:
		_badge(draw, (bx + 12, y), str(item.score), f_badge)
	elif item.error is not None:
		_badge(draw, (bx + 12, y), "ERR", f_badge, fill=ERROR_RED, text_fill=(255, 255, 255))
	else:
		_badge(draw, (bx + 12, y), "...", f_badge)
	y += 58

	f_head = _font(28)
	draw.text((x, y), f"Review of the {item.direction.title.lower()} photo", font=f_head, fill=TEXT)
	y += 42

	f_body = _font(22)
	if item.error is not None:
		draw.text((x, y), "Analysis failed", font=_font(24), fill=ERROR_RED)
		y += 34
		y = _draw_lines(draw, (x, y), wrap_text(draw, item.error, f_body, text_w), f_body, ERROR_RED, 28, max_lines=5)
	else:
		msg = item.message or "Preparing the analysis result..."
		y = _draw_lines(draw, (x, y), wrap_text(draw, msg, f_body, text_w), f_body, TEXT, 28, max_lines=5)
		line = metrics_line(item)
		if line:
			f_small = _font(17)
			_draw_lines(draw, (x, y + 8), wrap_text(draw, line, f_small, text_w), f_small, MUTED, 22, max_lines=3)


def compose_report(
	items: Sequence[DirectionalResult],
	summary: Optional[SessionSummary],
	cfg: Optional[ReportConfig] = None,
	date_text: Optional[str] = None,
) -> Image.Image:
	"""
	Lay out the four annotated images with per-view score/message and the session
	summary on one fixed-size canvas. Raises CompositionError on any rendering failure.
	"""
	cfg = cfg or ReportConfig()
	try:
		return _compose(items, summary, cfg, date_text or date_cls.today().isoformat())
	except CompositionError:
		raise
	except Exception as e:
		logger.error("[REPORT] composition failed: %r", e)
		raise CompositionError(f"report composition failed: {e!r}") from e


def _compose(items: Sequence[DirectionalResult], summary: Optional[SessionSummary], cfg: ReportConfig, date_text: str) -> Image.Image:
	width, height = int(cfg.width), int(cfg.height)
	canvas = Image.new("RGB", (width, height), (255, 255, 255))
	draw = ImageDraw.Draw(canvas)

	f_title = _font(44)
	draw.text((PAD, PAD), cfg.title, font=f_title, fill=TEXT)
	f_date = _font(26)
	date_label = f"Captured: {date_text}"
	draw.text((width - PAD - draw.textlength(date_label, font=f_date), PAD + 12), date_label, font=f_date, fill=MUTED)

	top = PAD + 80
	for item in items:
		_draw_row(canvas, draw, item, top, width)
		top += ROW_HEIGHT + ROW_GAP

	y = top + 10
	draw.text((PAD, y), "Overall assessment", font=_font(34), fill=TEXT)
	y += 52
	if summary is None:
		draw.text((PAD, y), "Analysis has not finished yet.", font=_font(26), fill=MUTED)
		return canvas

	_badge(draw, (PAD, y), summary.score_text, _font(30))
	y += 64
	draw.text((PAD, y), summary.headline, font=_font(30), fill=TEXT)
	y += 44
	text_w = width - 2 * PAD
	f_msg = _font(24)
	y = _draw_lines(draw, (PAD, y), wrap_text(draw, summary.message, f_msg, text_w), f_msg, TEXT, 32)
	y += 8
	f_b = _font(22)
	for bullet in summary.bullets:
		lines = wrap_text(draw, bullet, f_b, text_w - 24)
		draw.text((PAD, y), "-", font=f_b, fill=MUTED)
		y = _draw_lines(draw, (PAD + 24, y), lines, f_b, MUTED, 30)
		if y > height - PAD:
			logger.warning("[REPORT] summary truncated at canvas height %s", height)
			break
	return canvas
