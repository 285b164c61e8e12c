"""WebSocket endpoint and ConnectionManager. Route: /ws (capture and analysis events)."""
import asyncio
import json
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["ws"])


class ConnectionManager:
	def __init__(self) -> None:
		self._clients: Set[WebSocket] = set()
		self._lock = asyncio.Lock()

	async def connect(self, websocket: WebSocket) -> None:
		await websocket.accept()
		async with self._lock:
			self._clients.add(websocket)

	async def disconnect(self, websocket: WebSocket) -> None:
		async with self._lock:
			self._clients.discard(websocket)

	@property
	def client_count(self) -> int:
		return len(self._clients)

	async def broadcast_json(self, message: Dict[str, Any]) -> None:
		payload = json.dumps(message, separators=(",", ":"), default=str)
		async with self._lock:
			if not self._clients:
				return
			clients = list(self._clients)
		await asyncio.gather(*(self._send(ws, payload) for ws in clients), return_exceptions=True)

	@staticmethod
	async def _send(ws: WebSocket, payload: str) -> None:
		try:
			await ws.send_text(payload)
		except Exception:
			try:
				await ws.close()
			except Exception:
				pass


manager = ConnectionManager()


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
	await manager.connect(websocket)
	try:
		state = getattr(websocket.app.state, "state", None)
		if state is not None and state.sequencer is not None:
			await websocket.send_text(json.dumps({"type": "capture_state", **state.sequencer.status()}, separators=(",", ":")))
		while True:
			await websocket.receive_text()
	except WebSocketDisconnect:
		pass
	finally:
		await manager.disconnect(websocket)
