from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from PIL import Image

from posture.config import AppConfig, get_config


class CameraBackend(ABC):
	"""
	Still-photo camera owned by the capture sequencer.

	start()/stop() acquire and release the device and must be idempotent. Failures
	while starting are reported through get_status()["error"]; capture_still() raises
	CameraError.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def start(self) -> None: ...

	@abstractmethod
	def stop(self) -> None: ...

	@abstractmethod
	def get_status(self) -> Dict[str, Any]: ...

	@abstractmethod
	async def capture_still(self) -> Image.Image: ...


def get_camera_backend(cfg: Optional[AppConfig] = None, *, backend_override: Optional[str] = None) -> CameraBackend:
	cfg = cfg or get_config()
	backend = (backend_override or cfg.camera.backend or "picamera2").strip().lower()

	if backend in ("http", "snapshot"):
		from posture.camera_backends.http_snapshot_backend import HttpSnapshotBackend

		return HttpSnapshotBackend(cfg.camera.snapshot_url, timeout_s=float(cfg.camera.snapshot_timeout_seconds))

	if backend in ("folder", "files"):
		from posture.camera_backends.folder_backend import FolderBackend

		return FolderBackend(cfg.camera.folder)

	# picamera2 is the default; unknown names fall back to it rather than silently
	# picking an unrelated source.
	from posture.camera_backends.picamera2_backend import Picamera2Backend

	return Picamera2Backend(
		camera_index=cfg.camera.camera_index,
		still_size=cfg.camera.still_size,
		controls=cfg.camera.controls,
	)
