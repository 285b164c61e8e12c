"""Capture routes. Routes: /capture/prepare, start, cancel, close, reset, status."""
from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_state
from posture.capture_sequencer import Phase
from posture.errors import CameraError, SequenceStateError
from schemas.responses import CaptureStatusResponse

router = APIRouter(tags=["capture"])


@router.post("/capture/prepare")
async def capture_prepare(state: AppState = Depends(get_state)):
	"""Acquire the camera and wait for the user's start action."""
	try:
		st = await state.sequencer.prepare()
	except SequenceStateError as e:
		raise HTTPException(status_code=409, detail=str(e))
	if st.phase == Phase.ERROR:
		raise HTTPException(status_code=503, detail=f"Camera not available: {st.error}")
	return {"detail": "Camera ready.", "status": state.sequencer.status()}


@router.post("/capture/start")
async def capture_start(state: AppState = Depends(get_state)):
	"""Start the countdown for the current direction (acquires the camera first if needed)."""
	try:
		await state.sequencer.start_sequence()
	except CameraError as e:
		raise HTTPException(status_code=503, detail=f"Camera not available: {e}")
	except SequenceStateError as e:
		raise HTTPException(status_code=409, detail=str(e))
	return {"detail": "Countdown started.", "status": state.sequencer.status()}


@router.post("/capture/cancel")
async def capture_cancel(state: AppState = Depends(get_state)):
	"""Interrupt a running countdown, or stop the sequence and release the camera."""
	await state.sequencer.cancel_sequence()
	return {"detail": "Cancelled.", "status": state.sequencer.status()}


@router.post("/capture/close")
async def capture_close(state: AppState = Depends(get_state)):
	"""UI teardown: release the camera whatever the current phase."""
	await state.sequencer.close()
	return {"detail": "Camera released.", "status": state.sequencer.status()}


@router.post("/capture/reset")
async def capture_reset(state: AppState = Depends(get_state)):
	"""Return to Idle after Complete/Cancelled/Error so the user can retake all photos."""
	try:
		await state.sequencer.reset()
	except SequenceStateError as e:
		raise HTTPException(status_code=409, detail=str(e))
	return {"detail": "Reset.", "status": state.sequencer.status()}


@router.get("/capture/status", response_model=CaptureStatusResponse)
async def capture_status(state: AppState = Depends(get_state)):
	return state.sequencer.status()
