"""Pydantic request body models."""
from typing import List, Optional

from pydantic import BaseModel, Field

from posture.models import ShotDirection


class ShotPayload(BaseModel):
	"""One uploaded photo for POST /analysis/start."""

	direction: ShotDirection = Field(..., description="front / right / back / left")
	image_b64: str = Field(..., min_length=1, description="Base64-encoded JPEG or PNG")


class AnalysisStartPayload(BaseModel):
	"""Request body for POST /analysis/start. If shots is omitted, the completed capture sequence is used."""

	shots: Optional[List[ShotPayload]] = Field(None, description="Exactly one shot per direction, any order")
