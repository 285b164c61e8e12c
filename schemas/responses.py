"""Pydantic response models for API docs (optional; routes may return dicts)."""
from typing import List, Optional

from pydantic import BaseModel


class CaptureStatusResponse(BaseModel):
	"""Observable capture state (GET /capture/status and capture_state events)."""

	phase: str
	current_direction: str
	seconds_remaining: int
	is_counting_down: bool
	shots: List[str]
	error: Optional[str] = None
	camera_acquired: bool


class UsageResponse(BaseModel):
	"""Response from GET /usage/posture."""

	allowed: bool
	next_reset: str
