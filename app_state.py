"""
Explicit app state – single source of truth for runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from posture.analysis import AnalysisCoordinator
from posture.camera_backend import CameraBackend
from posture.capture_sequencer import CaptureSequencer
from posture.config import AppConfig
from posture.pose.base import KeypointProvider


class AppState:
	"""
	Holds all runtime state for the app. Populated in server lifespan.
	The keypoint provider and analysis coordinator are created on first use so the
	pose model is only loaded when an analysis is actually requested.
	"""

	# WebSocket broadcaster (set at app load)
	manager: Any = None

	cfg: Optional[AppConfig] = None

	# Capture
	camera: Optional[CameraBackend] = None
	sequencer: Optional[CaptureSequencer] = None

	# Analysis
	provider: Optional[KeypointProvider] = None
	coordinator: Optional[AnalysisCoordinator] = None
	executor: Optional[ThreadPoolExecutor] = None

	# Last "analysis completed" event, for usage-limit / history collaborators.
	last_completed: Optional[Dict[str, Any]] = None

	def broadcast(self, event: Dict[str, Any]) -> Any:
		if self.manager is None:
			return None
		return self.manager.broadcast_json(event)

	def ensure_coordinator(self) -> AnalysisCoordinator:
		if self.coordinator is not None:
			return self.coordinator
		if self.provider is None:
			from posture.pose.mediapipe_provider import get_keypoint_provider

			self.provider = get_keypoint_provider(self.cfg.pose if self.cfg else None)
		if self.executor is None:
			self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="posture-detect")
		coord = AnalysisCoordinator(
			self.provider,
			analysis_cfg=self.cfg.analysis if self.cfg else None,
			skeleton_cfg=self.cfg.skeleton if self.cfg else None,
			executor=self.executor,
		)
		coord.events.add_listener(self.broadcast)
		coord.events.add_listener(self._on_analysis_event)
		self.coordinator = coord
		return coord

	def _on_analysis_event(self, event: Dict[str, Any]) -> None:
		if event.get("type") == "analysis_completed":
			self.last_completed = dict(event)
