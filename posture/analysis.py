from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from PIL import Image

from posture.config import AnalysisConfig, SkeletonConfig
from posture.errors import DetectionError, InvalidShotsError, SequenceStateError
from posture.events import EventEmitter
from posture.images import NormalizedImage, normalize_image
from posture.models import CAPTURE_ORDER, CapturedShot, DirectionalResult, SessionSummary, ShotDirection
from posture.pose.base import KeypointProvider
from posture.pose.pose_metrics import extract_metrics
from posture.pose.types import JointMap, filter_confident
from posture.scoring import PostureScore, score_posture
from posture.skeleton import draw_skeleton
from posture.summary import summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShotAnalysis:
	normalized: NormalizedImage
	joints: JointMap
	result: PostureScore
	skeleton: Image.Image


def analyze_image(
	image: Image.Image,
	provider: KeypointProvider,
	analysis_cfg: Optional[AnalysisConfig] = None,
	skeleton_cfg: Optional[SkeletonConfig] = None,
) -> ShotAnalysis:
	"""
	Blocking per-image pipeline: normalize -> detect -> extract -> score -> draw.
	Detection runs once; the overlay is drawn on the same normalized pixels.
	"""
	analysis_cfg = analysis_cfg or AnalysisConfig()
	normalized = normalize_image(image, max_dimension=int(analysis_cfg.max_dimension))
	joints = filter_confident(provider.detect(normalized), float(analysis_cfg.min_joint_confidence))
	result = score_posture(extract_metrics(joints))
	skeleton = draw_skeleton(normalized, joints, skeleton_cfg)
	return ShotAnalysis(normalized=normalized, joints=joints, result=result, skeleton=skeleton)


def canonical_shots(shots: Iterable[CapturedShot]) -> List[CapturedShot]:
	"""Exactly one shot per direction, returned in front/right/back/left order."""
	by_dir: Dict[ShotDirection, CapturedShot] = {}
	for s in shots:
		if s.direction in by_dir:
			raise InvalidShotsError(f"duplicate shot for direction {s.direction.value}")
		by_dir[s.direction] = s
	missing = [d.value for d in CAPTURE_ORDER if d not in by_dir]
	if missing:
		raise InvalidShotsError(f"missing shots for: {', '.join(missing)}")
	return [by_dir[d] for d in CAPTURE_ORDER]


class AnalysisCoordinator:
	"""
	Runs the four directions one after another.

	Detection and rendering go through a single-worker executor, so at most one image
	is being processed at any time (peak-memory bound on small devices). Each
	DirectionalResult is filled as soon as its direction finishes; a failure in one
	direction is stored on that result and the next direction still runs.

	cancel() is cooperative: it is checked before each direction starts; the direction
	already in the worker is allowed to finish. A run that skipped a direction ends
	with status "incomplete".
	"""

	def __init__(
		self,
		provider: KeypointProvider,
		analysis_cfg: Optional[AnalysisConfig] = None,
		skeleton_cfg: Optional[SkeletonConfig] = None,
		executor: Optional[ThreadPoolExecutor] = None,
	) -> None:
		self._provider = provider
		self._analysis_cfg = analysis_cfg or AnalysisConfig()
		self._skeleton_cfg = skeleton_cfg or SkeletonConfig()
		self._owns_executor = executor is None
		self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="posture-detect")
		self._cancel_requested = False
		self._task: Optional[asyncio.Task] = None

		self.items: List[DirectionalResult] = []
		self.summary: Optional[SessionSummary] = None
		self.is_loading = False
		self.status = "idle"  # idle / running / complete / incomplete
		self.completed_at: Optional[float] = None
		self.events = EventEmitter()

	def snapshot(self) -> Dict[str, Any]:
		return {
			"status": self.status,
			"is_loading": bool(self.is_loading),
			"items": [it.as_dict() for it in self.items],
			"summary": self.summary.as_dict() if self.summary is not None else None,
			"completed_at": self.completed_at,
		}

	def item(self, direction: ShotDirection) -> Optional[DirectionalResult]:
		for it in self.items:
			if it.direction == direction:
				return it
		return None

	def cancel(self) -> None:
		if self.is_loading:
			logger.info("[ANALYSIS] cancel requested")
			self._cancel_requested = True

	def start(self, shots: Iterable[CapturedShot]) -> asyncio.Task:
		"""Validate the shots and schedule run() on the current loop."""
		if self.is_loading:
			raise SequenceStateError("analysis already running")
		ordered = canonical_shots(shots)
		self._reset(ordered)
		self._task = asyncio.create_task(self._run(), name="posture-analysis")
		return self._task

	async def run(self, shots: Iterable[CapturedShot]) -> str:
		"""Analyse all four shots and return "complete" or "incomplete"."""
		if self.is_loading:
			raise SequenceStateError("analysis already running")
		ordered = canonical_shots(shots)
		self._reset(ordered)
		return await self._run()

	async def wait(self) -> str:
		if self._task is not None:
			await self._task
		return self.status

	def _reset(self, ordered: List[CapturedShot]) -> None:
		self.items = [DirectionalResult(direction=s.direction, source_image=s.image) for s in ordered]
		self.summary = None
		self.completed_at = None
		self._cancel_requested = False
		self.is_loading = True
		self.status = "running"

	async def _run(self) -> str:
		loop = asyncio.get_running_loop()
		self.events.emit({"type": "analysis_started", "directions": [it.direction.value for it in self.items]})
		try:
			for item in self.items:
				if self._cancel_requested:
					break
				await self._analyze_item(loop, item)
			# incomplete only when a view was actually skipped
			self.status = "incomplete" if any(it.is_pending for it in self.items) else "complete"
			self.summary = summarize(self.items)
			self.completed_at = time.time()
		finally:
			self.is_loading = False
			if self.status == "running":
				self.status = "incomplete"

		logger.info("[ANALYSIS] finished status=%s overall=%s", self.status, self.summary.score)
		self.events.emit({"type": "summary", "summary": self.summary.as_dict()})
		self.events.emit(
			{
				"type": "analysis_completed",
				"status": self.status,
				"score": self.summary.score,
				"scores": {it.direction.value: it.score for it in self.items},
				"completed_at": self.completed_at,
			}
		)
		return self.status

	async def _analyze_item(self, loop: asyncio.AbstractEventLoop, item: DirectionalResult) -> None:
		direction = item.direction.value
		try:
			out: ShotAnalysis = await loop.run_in_executor(
				self._executor,
				analyze_image,
				item.source_image,
				self._provider,
				self._analysis_cfg,
				self._skeleton_cfg,
			)
		except DetectionError as e:
			item.error = f"Pose detection failed: {e}"
			logger.warning("[ANALYSIS] %s: detection failed: %s", direction, e)
		except Exception as e:
			item.error = f"Analysis failed: {e!r}"
			logger.warning("[ANALYSIS] %s: analysis failed: %r", direction, e)
		else:
			item.normalized_image = out.normalized
			item.skeleton_image = out.skeleton
			item.metrics = out.result.metrics
			item.message = out.result.message
			item.score = int(out.result.score)
			if out.result.recognized:
				logger.info("[ANALYSIS] %s: score=%s", direction, item.score)
			else:
				logger.info("[ANALYSIS] %s: required joints missing; degenerate result", direction)
		self.events.emit({"type": "item_updated", "item": item.as_dict()})

	def close(self) -> None:
		self.cancel()
		if self._owns_executor:
			self._executor.shutdown(wait=False, cancel_futures=True)
