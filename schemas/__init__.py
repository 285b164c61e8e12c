"""Pydantic request/response models for API validation and docs."""
from schemas.requests import (
	AnalysisStartPayload,
	ShotPayload,
)
from schemas.responses import (
	CaptureStatusResponse,
	UsageResponse,
)

__all__ = [
	"AnalysisStartPayload",
	"ShotPayload",
	"CaptureStatusResponse",
	"UsageResponse",
]
