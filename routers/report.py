"""Report export route. Route: /report.png."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from app_state import AppState
from deps import get_state
from posture.errors import CompositionError
from posture.images import encode_png
from posture.report import compose_report

router = APIRouter(tags=["report"])


@router.get("/report.png")
async def report_png(date: Optional[str] = None, state: AppState = Depends(get_state)):
	"""Compose the four annotated views and the summary into one image."""
	coord = state.coordinator
	if coord is None or not coord.items:
		raise HTTPException(status_code=404, detail="No analysis to report yet")
	if coord.is_loading:
		raise HTTPException(status_code=409, detail="Analysis still running")
	try:
		image = compose_report(coord.items, coord.summary, state.cfg.report if state.cfg else None, date_text=date)
		png = encode_png(image)
	except CompositionError as e:
		raise HTTPException(status_code=500, detail=str(e))
	return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})
