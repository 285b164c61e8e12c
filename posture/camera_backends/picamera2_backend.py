from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, Optional

from PIL import Image

from posture.camera_backend import CameraBackend
from posture.errors import CameraError

logger = logging.getLogger(__name__)


class Picamera2Backend(CameraBackend):
	"""
	Picamera2/libcamera still-capture backend.

	Notes:
	- `python3-picamera2` is a system package on Raspberry Pi OS (apt).
	- The device is opened in start() and closed in stop(); capture_still() blocks in a
	  worker thread so the event loop keeps ticking.
	"""

	def __init__(self, camera_index: Optional[int] = None, still_size: Optional[list[int]] = None, controls: Optional[Dict[str, Any]] = None) -> None:
		self._lock = threading.Lock()
		# Held while capture_image() runs so stop() never closes the device under it.
		self._capture_lock = threading.Lock()
		self._camera_index: Optional[int] = int(camera_index) if camera_index is not None else None
		self._still_size = self._parse_size(still_size)
		self._controls: Dict[str, Any] = dict(controls or {})

		self._running = False
		self._last_error: Optional[str] = None
		self._captures = 0
		self._picam2 = None

	def name(self) -> str:
		return "picamera2"

	@staticmethod
	def _parse_size(v: Any) -> Optional[tuple[int, int]]:
		try:
			if isinstance(v, (list, tuple)) and len(v) == 2:
				w = int(v[0])
				h = int(v[1])
				return (w, h) if w > 0 and h > 0 else None
		except Exception:
			return None
		return None

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {
				"backend": self.name(),
				"camera_index": self._camera_index,
				"running": bool(self._running),
				"captures": int(self._captures),
				"still_size": list(self._still_size) if self._still_size else None,
				"controls": dict(self._controls),
				"error": self._last_error,
			}

	def start(self) -> None:
		with self._lock:
			if self._running:
				return
			self._last_error = None

		try:
			from picamera2 import Picamera2  # type: ignore
		except Exception as e:
			import sys

			with self._lock:
				self._last_error = (
					f"Picamera2 import failed: {e!r}. Python={sys.executable!r}. "
					"If running in a venv, recreate it with `--system-site-packages` so the apt-installed "
					"`python3-picamera2` is visible."
				)
			logger.error("[CAMERA] %s", self._last_error)
			return

		try:
			try:
				infos = Picamera2.global_camera_info()  # type: ignore[attr-defined]
			except Exception:
				infos = None
			if self._camera_index is None:
				picam2 = Picamera2()
			else:
				if isinstance(infos, list) and len(infos) == 0:
					raise IndexError("no cameras detected (global_camera_info empty)")
				if isinstance(infos, list) and int(self._camera_index) >= len(infos):
					raise IndexError(f"camera_index={int(self._camera_index)} out of range (found {len(infos)} camera(s))")
				picam2 = Picamera2(camera_num=int(self._camera_index))
		except Exception as e:
			with self._lock:
				self._last_error = f"Picamera2 init failed: {e!r}"
			logger.error("[CAMERA] %s", self._last_error)
			return

		try:
			main: Dict[str, Any] = {"format": "RGB888"}
			if self._still_size:
				main["size"] = (int(self._still_size[0]), int(self._still_size[1]))
			cfg = picam2.create_still_configuration(main=main)
			picam2.configure(cfg)
			if self._controls:
				picam2.set_controls(dict(self._controls))
			picam2.start()
		except Exception as e:
			with self._lock:
				self._last_error = f"Picamera2 configure/start failed: {e!r}"
			logger.error("[CAMERA] %s", self._last_error)
			try:
				picam2.close()
			except Exception:
				pass
			return

		with self._lock:
			self._picam2 = picam2
			self._running = True
		logger.info("[CAMERA] picamera2 started (index=%s)", self._camera_index)

	def stop(self) -> None:
		with self._lock:
			picam2 = self._picam2
			self._picam2 = None
			was_running = self._running
			self._running = False
		if picam2 is None:
			return
		with self._capture_lock:
			self._close_device(picam2)
		if was_running:
			logger.info("[CAMERA] picamera2 released")

	@staticmethod
	def _close_device(picam2: Any) -> None:
		try:
			picam2.stop()
		except Exception:
			pass
		try:
			picam2.close()
		except Exception:
			pass

	async def capture_still(self) -> Image.Image:
		with self._lock:
			picam2 = self._picam2
		if picam2 is None:
			raise CameraError("camera not running")

		def _grab() -> Image.Image:
			with self._capture_lock:
				if self._picam2 is not picam2:
					raise CameraError("camera stopped before capture")
				return picam2.capture_image("main")

		try:
			im = await asyncio.to_thread(_grab)
		except CameraError:
			raise
		except Exception as e:
			with self._lock:
				self._last_error = f"capture failed: {e!r}"
			raise CameraError(f"capture failed: {e!r}") from e
		with self._lock:
			self._captures += 1
		return im
