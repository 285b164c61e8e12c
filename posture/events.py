from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], Any]


class EventEmitter:
	"""
	Minimal observer hook shared by the capture sequencer and the analysis
	coordinator. Listeners receive one JSON-serializable dict per event
	({"type": ..., ...}); coroutine listeners are scheduled on the running loop
	and held until they finish. A failing listener, sync or async, is logged and
	never breaks the emitter.
	"""

	def __init__(self) -> None:
		self._listeners: List[Listener] = []
		self._pending: Set[asyncio.Future] = set()

	def add_listener(self, fn: Listener) -> None:
		if fn not in self._listeners:
			self._listeners.append(fn)

	def remove_listener(self, fn: Listener) -> None:
		try:
			self._listeners.remove(fn)
		except ValueError:
			pass

	@property
	def pending(self) -> int:
		return len(self._pending)

	def _on_done(self, fut: asyncio.Future, event_type: Any) -> None:
		self._pending.discard(fut)
		if fut.cancelled():
			return
		exc = fut.exception()
		if exc is not None:
			logger.error("listener failed for event %r", event_type, exc_info=exc)

	def emit(self, event: Dict[str, Any]) -> None:
		event_type = event.get("type")
		for fn in list(self._listeners):
			try:
				res = fn(event)
				if inspect.isawaitable(res):
					fut = asyncio.ensure_future(res)
					self._pending.add(fut)
					fut.add_done_callback(lambda f, t=event_type: self._on_done(f, t))
			except Exception:
				logger.exception("listener failed for event %r", event_type)

	async def drain(self) -> None:
		"""Wait for scheduled coroutine listeners to finish."""
		while self._pending:
			await asyncio.gather(*list(self._pending), return_exceptions=True)
