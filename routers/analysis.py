"""Analysis routes. Routes: /analysis/start, /analysis/cancel, /analysis/status, /analysis/items/{direction}/skeleton.jpg."""
import base64
import binascii
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from app_state import AppState
from deps import get_state
from posture.capture_sequencer import Phase
from posture.errors import InvalidShotsError, SequenceStateError
from posture.images import decode_image, encode_jpeg
from posture.models import CapturedShot, ShotDirection
from schemas.requests import AnalysisStartPayload

router = APIRouter(tags=["analysis"])


def _decode_shots(payload: AnalysisStartPayload) -> List[CapturedShot]:
	shots: List[CapturedShot] = []
	for s in payload.shots or []:
		try:
			data = base64.b64decode(s.image_b64, validate=True)
			image = decode_image(data)
		except (binascii.Error, ValueError, OSError) as e:
			raise HTTPException(status_code=400, detail=f"{s.direction.value}: image could not be decoded ({e})")
		shots.append(CapturedShot(direction=s.direction, image=image))
	return shots


@router.post("/analysis/start")
async def analysis_start(payload: Optional[AnalysisStartPayload] = None, state: AppState = Depends(get_state)):
	"""Analyse the four shots (uploaded, or from the completed capture sequence)."""
	if payload is not None and payload.shots:
		shots = _decode_shots(payload)
	else:
		seq = state.sequencer
		if seq is None or seq.state.phase != Phase.COMPLETE:
			raise HTTPException(status_code=409, detail="No completed capture sequence; capture four photos or upload them.")
		shots = seq.shots

	try:
		coord = state.ensure_coordinator()
	except RuntimeError as e:
		raise HTTPException(status_code=503, detail=f"Pose model not available: {e}")
	try:
		coord.start(shots)
	except InvalidShotsError as e:
		raise HTTPException(status_code=400, detail=str(e))
	except SequenceStateError as e:
		raise HTTPException(status_code=409, detail=str(e))
	return {"detail": "Analysis started.", **coord.snapshot()}


@router.post("/analysis/cancel")
async def analysis_cancel(state: AppState = Depends(get_state)):
	"""Stop after the direction currently being processed; finished results are kept."""
	if state.coordinator is None:
		return {"detail": "No analysis running."}
	state.coordinator.cancel()
	return {"detail": "Cancel requested.", **state.coordinator.snapshot()}


@router.get("/analysis/status")
async def analysis_status(state: AppState = Depends(get_state)):
	if state.coordinator is None:
		return {"status": "idle", "is_loading": False, "items": [], "summary": None, "completed_at": None}
	return state.coordinator.snapshot()


@router.get("/analysis/items/{direction}/skeleton.jpg")
async def analysis_item_image(direction: ShotDirection, state: AppState = Depends(get_state)):
	"""Skeleton overlay for one direction (falls back to the photo while pending or on error)."""
	item = state.coordinator.item(direction) if state.coordinator is not None else None
	if item is None:
		raise HTTPException(status_code=404, detail=f"No analysis item for {direction.value}")
	return Response(content=encode_jpeg(item.display_image), media_type="image/jpeg", headers={"Cache-Control": "no-store"})
