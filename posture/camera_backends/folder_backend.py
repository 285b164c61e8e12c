from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from PIL import Image

from posture.camera_backend import CameraBackend
from posture.errors import CameraError

_IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".bmp", ".webp")


class FolderBackend(CameraBackend):
	"""
	Hands out images from a directory in sorted filename order, one per capture.
	Used for re-analysing a saved set of four photos and for demos without a camera.
	"""

	def __init__(self, folder: str | Path) -> None:
		self._folder = Path(folder)
		self._lock = threading.Lock()
		self._files: List[Path] = []
		self._cursor = 0
		self._running = False
		self._last_error: Optional[str] = None

	def name(self) -> str:
		return "folder"

	def start(self) -> None:
		with self._lock:
			if self._running:
				return
			if not self._folder.is_dir():
				self._last_error = f"folder not found: {self._folder}"
				return
			self._files = sorted(p for p in self._folder.iterdir() if p.suffix.lower() in _IMAGE_SUFFIXES)
			if not self._files:
				self._last_error = f"no images in {self._folder}"
				return
			self._cursor = 0
			self._running = True
			self._last_error = None

	def stop(self) -> None:
		with self._lock:
			self._running = False

	def get_status(self) -> Dict[str, Any]:
		with self._lock:
			return {
				"backend": self.name(),
				"folder": str(self._folder),
				"running": bool(self._running),
				"remaining": max(0, len(self._files) - self._cursor),
				"error": self._last_error,
			}

	async def capture_still(self) -> Image.Image:
		with self._lock:
			if not self._running:
				raise CameraError("camera not running")
			if self._cursor >= len(self._files):
				self._last_error = "no more images in folder"
				raise CameraError(self._last_error)
			path = self._files[self._cursor]
			self._cursor += 1

		def _load() -> Image.Image:
			im = Image.open(path)
			im.load()
			return im

		try:
			return await asyncio.to_thread(_load)
		except Exception as e:
			raise CameraError(f"failed to read {path.name}: {e!r}") from e
