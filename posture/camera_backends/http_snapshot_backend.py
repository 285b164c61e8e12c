from __future__ import annotations

import asyncio
import threading
import urllib.request
from typing import Any, Dict, Optional

from PIL import Image

from posture.camera_backend import CameraBackend
from posture.errors import CameraError
from posture.images import decode_image


class HttpSnapshotBackend(CameraBackend):
	"""
	Backend that pulls single JPEG frames from a remote camera (e.g. a phone or a
	separate collector process serving /snapshot.jpg). start() only probes the URL.
	"""

	def __init__(self, url: str, timeout_s: float = 5.0) -> None:
		self._url = url
		self._timeout = float(timeout_s)
		self._lock = threading.Lock()
		self._running = False
		self._last_error: Optional[str] = None

	def name(self) -> str:
		return "http"

	def _fetch(self) -> bytes:
		with urllib.request.urlopen(self._url, timeout=self._timeout) as resp:
			return resp.read()

	def start(self) -> None:
		try:
			self._fetch()
		except Exception as e:
			with self._lock:
				self._running = False
				self._last_error = f"snapshot probe failed: {e!r}"
			return
		with self._lock:
			self._running = True
			self._last_error = None

	def stop(self) -> None:
		with self._lock:
			self._running = False

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {"backend": self.name(), "url": self._url, "running": bool(self._running), "error": self._last_error}

	async def capture_still(self) -> Image.Image:
		with self._lock:
			running = self._running
		if not running:
			raise CameraError("camera not running")
		try:
			data = await asyncio.to_thread(self._fetch)
			return decode_image(data)
		except Exception as e:
			with self._lock:
				self._last_error = f"snapshot failed: {e!r}"
			raise CameraError(f"snapshot failed: {e!r}") from e
