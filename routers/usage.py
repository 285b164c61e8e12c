"""Usage-limit route. Route: /usage/posture."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException

from posture.usage_limits import can_capture_free, next_reset
from schemas.responses import UsageResponse

router = APIRouter(tags=["usage"])


@router.get("/usage/posture", response_model=UsageResponse)
async def usage_posture(last_captured: Optional[str] = None, now: Optional[str] = None):
	"""Free-tier check: one posture session per calendar month."""
	try:
		last = datetime.fromisoformat(last_captured) if last_captured else None
		ref = datetime.fromisoformat(now) if now else None
	except ValueError as e:
		raise HTTPException(status_code=400, detail=f"invalid ISO timestamp: {e}")
	ref = ref or datetime.now(tz=last.tzinfo if last else None)
	return {"allowed": can_capture_free(last, ref), "next_reset": next_reset(ref).isoformat()}
