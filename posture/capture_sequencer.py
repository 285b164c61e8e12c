"""
Four-direction timed capture.

The sequence itself is a pure state machine: transition(state, event) -> state, with
no I/O. CaptureSequencer drives it: it owns the camera (acquire on prepare, release
on every terminal path), runs the 1 Hz countdown as an asyncio task, takes the photo
and notifies listeners after every transition.

	Idle --CameraReady--> AwaitingUserStart(front)
	AwaitingUserStart --UserStart--> Countdown(dir, N)
	Countdown --Tick*N--> Capturing(dir)
	Countdown --CancelCountdown--> AwaitingUserStart(dir)
	Capturing --ShotCaptured--> AwaitingUserStart(next) | Complete (after left)
	any non-terminal --CameraFault--> Error(reason)
	any non-terminal --Cancel--> Cancelled
	Complete/Cancelled/Error --Reset--> Idle
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from PIL import Image

from posture.camera_backend import CameraBackend
from posture.config import CaptureConfig
from posture.errors import CameraError, SequenceStateError
from posture.events import EventEmitter
from posture.models import CAPTURE_ORDER, CapturedShot, ShotDirection

logger = logging.getLogger(__name__)


class Phase(str, Enum):
	IDLE = "idle"
	AWAITING_USER_START = "awaiting_user_start"
	COUNTDOWN = "countdown"
	CAPTURING = "capturing"
	COMPLETE = "complete"
	CANCELLED = "cancelled"
	ERROR = "error"


TERMINAL_PHASES = (Phase.COMPLETE, Phase.CANCELLED, Phase.ERROR)


@dataclass(frozen=True)
class SequenceState:
	phase: Phase = Phase.IDLE
	direction: ShotDirection = ShotDirection.FRONT
	seconds_remaining: int = 0
	shots: Tuple[CapturedShot, ...] = field(default_factory=tuple)
	error: Optional[str] = None

	@property
	def is_terminal(self) -> bool:
		return self.phase in TERMINAL_PHASES

	@property
	def is_counting_down(self) -> bool:
		return self.phase == Phase.COUNTDOWN


# --- events ---------------------------------------------------------------


@dataclass(frozen=True)
class CameraReady:
	pass


@dataclass(frozen=True)
class UserStart:
	seconds: int = 15


@dataclass(frozen=True)
class Tick:
	pass


@dataclass(frozen=True)
class CancelCountdown:
	pass


@dataclass(frozen=True)
class ShotCaptured:
	shot: CapturedShot


@dataclass(frozen=True)
class CameraFault:
	reason: str


@dataclass(frozen=True)
class Cancel:
	pass


@dataclass(frozen=True)
class Reset:
	pass


SequenceEvent = Union[CameraReady, UserStart, Tick, CancelCountdown, ShotCaptured, CameraFault, Cancel, Reset]


def _invalid(state: SequenceState, event: SequenceEvent) -> SequenceStateError:
	return SequenceStateError(f"{type(event).__name__} not allowed in phase {state.phase.value}")


def transition(state: SequenceState, event: SequenceEvent) -> SequenceState:
	"""Pure transition function. Raises SequenceStateError for events the phase does not accept."""
	phase = state.phase

	if isinstance(event, Reset):
		if phase == Phase.IDLE or state.is_terminal:
			return SequenceState()
		raise _invalid(state, event)

	if isinstance(event, CameraFault):
		if state.is_terminal:
			raise _invalid(state, event)
		return replace(state, phase=Phase.ERROR, seconds_remaining=0, error=str(event.reason or "camera fault"))

	if isinstance(event, Cancel):
		if state.is_terminal:
			raise _invalid(state, event)
		return replace(state, phase=Phase.CANCELLED, seconds_remaining=0)

	if isinstance(event, CameraReady):
		if phase != Phase.IDLE:
			raise _invalid(state, event)
		return SequenceState(phase=Phase.AWAITING_USER_START, direction=CAPTURE_ORDER[0])

	if isinstance(event, UserStart):
		if phase != Phase.AWAITING_USER_START:
			raise _invalid(state, event)
		seconds = int(event.seconds)
		if seconds <= 0:
			return replace(state, phase=Phase.CAPTURING, seconds_remaining=0)
		return replace(state, phase=Phase.COUNTDOWN, seconds_remaining=seconds)

	if isinstance(event, Tick):
		if phase != Phase.COUNTDOWN:
			raise _invalid(state, event)
		remaining = state.seconds_remaining - 1
		if remaining <= 0:
			return replace(state, phase=Phase.CAPTURING, seconds_remaining=0)
		return replace(state, seconds_remaining=remaining)

	if isinstance(event, CancelCountdown):
		if phase != Phase.COUNTDOWN:
			raise _invalid(state, event)
		return replace(state, phase=Phase.AWAITING_USER_START, seconds_remaining=0)

	if isinstance(event, ShotCaptured):
		if phase != Phase.CAPTURING:
			raise _invalid(state, event)
		if event.shot.direction != state.direction:
			raise SequenceStateError(f"shot for {event.shot.direction.value} while capturing {state.direction.value}")
		shots = state.shots + (event.shot,)
		nxt = state.direction.next()
		if nxt is None or len(shots) >= len(CAPTURE_ORDER):
			return replace(state, phase=Phase.COMPLETE, shots=shots, seconds_remaining=0)
		return replace(state, phase=Phase.AWAITING_USER_START, direction=nxt, shots=shots, seconds_remaining=0)

	raise _invalid(state, event)


# --- driver ---------------------------------------------------------------


class CaptureSequencer:
	"""
	Drives the capture state machine against a camera backend.

	One countdown/capture is in flight at most; start_sequence() is rejected unless the
	machine is waiting for the user. The camera is released on Complete, Cancelled,
	Error and close(), so `async with CaptureSequencer(...)` guarantees release even
	when the caller is torn down mid-countdown.
	"""

	def __init__(self, camera: CameraBackend, cfg: Optional[CaptureConfig] = None) -> None:
		self._camera = camera
		self._cfg = cfg or CaptureConfig()
		self._state = SequenceState()
		self._task: Optional[asyncio.Task] = None
		self._camera_acquired = False
		self.events = EventEmitter()

	# -- observable state --

	@property
	def state(self) -> SequenceState:
		return self._state

	@property
	def shots(self) -> List[CapturedShot]:
		return list(self._state.shots)

	@property
	def current_direction(self) -> ShotDirection:
		return self._state.direction

	@property
	def seconds_remaining(self) -> int:
		return int(self._state.seconds_remaining)

	@property
	def is_counting_down(self) -> bool:
		return self._state.is_counting_down

	@property
	def camera_acquired(self) -> bool:
		return self._camera_acquired

	def status(self) -> Dict[str, Any]:
		st = self._state
		return {
			"phase": st.phase.value,
			"current_direction": st.direction.value,
			"seconds_remaining": int(st.seconds_remaining),
			"is_counting_down": st.is_counting_down,
			"shots": [s.direction.value for s in st.shots],
			"error": st.error,
			"camera_acquired": self._camera_acquired,
		}

	# -- transitions --

	def _apply(self, event: SequenceEvent) -> SequenceState:
		prev = self._state
		self._state = transition(prev, event)
		logger.debug(
			"[CAPTURE] %s: %s(%s) -> %s(%s, %ss)",
			type(event).__name__,
			prev.phase.value,
			prev.direction.value,
			self._state.phase.value,
			self._state.direction.value,
			self._state.seconds_remaining,
		)
		self.events.emit({"type": "capture_state", **self.status()})
		return self._state

	def _announce(self, text: str) -> None:
		self.events.emit({"type": "announce", "text": text, "direction": self._state.direction.value})

	# -- camera lifecycle --

	async def _acquire_camera(self) -> Optional[str]:
		try:
			await asyncio.to_thread(self._camera.start)
		except Exception as e:
			return f"camera start failed: {e!r}"
		self._camera_acquired = True

		deadline = time.monotonic() + float(self._cfg.ready_timeout_seconds)
		last_status: Dict[str, Any] = {}
		while True:
			last_status = self._camera.get_status()
			if last_status.get("error"):
				return str(last_status.get("error"))
			if bool(last_status.get("running")):
				return None
			if time.monotonic() >= deadline:
				return f"camera did not become ready: {last_status!r}"
			await asyncio.sleep(0.05)

	async def _release_camera(self) -> None:
		if not self._camera_acquired:
			return
		self._camera_acquired = False
		try:
			await asyncio.to_thread(self._camera.stop)
		except Exception as e:
			logger.warning("[CAPTURE] camera release failed: %r", e)
		else:
			logger.debug("[CAPTURE] camera released")

	async def _fault(self, reason: str) -> None:
		logger.error("[CAPTURE] camera fault: %s", reason)
		if not self._state.is_terminal:
			self._apply(CameraFault(reason))
		await self._release_camera()

	# -- public operations --

	async def prepare(self) -> SequenceState:
		"""Acquire the camera and move Idle -> AwaitingUserStart (or Error)."""
		if self._state.phase != Phase.IDLE:
			raise SequenceStateError(f"prepare() not allowed in phase {self._state.phase.value}")
		err = await self._acquire_camera()
		if err:
			await self._fault(err)
			return self._state
		logger.info("[CAPTURE] camera %s ready", self._camera.name())
		return self._apply(CameraReady())

	async def start_sequence(self) -> SequenceState:
		"""
		Start the countdown for the current direction. From Idle the camera is acquired
		first. Raises SequenceStateError while a countdown/capture is in flight or once
		the sequence reached a terminal phase.
		"""
		if self._state.phase == Phase.IDLE:
			await self.prepare()
			if self._state.phase == Phase.ERROR:
				raise CameraError(self._state.error or "camera fault")
		if self._task is not None and not self._task.done():
			raise SequenceStateError("a countdown or capture is already in progress")
		self._begin_countdown()
		return self._state

	def _begin_countdown(self) -> None:
		seconds = int(self._cfg.countdown_seconds)
		self._apply(UserStart(seconds=seconds))
		direction = self._state.direction
		self._announce(f"{direction.instruction} Photo in {seconds} seconds.")
		self._task = asyncio.create_task(self._run_countdown(), name=f"capture-{direction.value}")

	async def _run_countdown(self) -> None:
		interval = max(0.0, float(self._cfg.tick_interval_seconds))
		while self._state.phase == Phase.COUNTDOWN:
			await asyncio.sleep(interval)
			if self._state.phase != Phase.COUNTDOWN:
				return
			self._apply(Tick())
			if self._state.phase == Phase.COUNTDOWN and self._state.seconds_remaining <= 3:
				self._announce(str(self._state.seconds_remaining))
		if self._state.phase == Phase.CAPTURING:
			await self._capture()

	async def _capture(self) -> None:
		direction = self._state.direction
		try:
			image: Image.Image = await self._camera.capture_still()
		except CameraError as e:
			await self._fault(str(e))
			return
		except Exception as e:
			await self._fault(f"capture failed: {e!r}")
			return

		if self._state.phase != Phase.CAPTURING or self._state.direction != direction:
			# Cancelled or closed while the photo pipeline was busy; drop the frame.
			return

		self._apply(ShotCaptured(CapturedShot(direction=direction, image=image)))
		logger.info("[CAPTURE] %s captured (%s/%s)", direction.value, len(self._state.shots), len(CAPTURE_ORDER))

		if self._state.phase == Phase.COMPLETE:
			await self._release_camera()
			self.events.emit({"type": "capture_complete", "shots": [s.direction.value for s in self._state.shots]})
			return

		if self._cfg.auto_advance and self._state.phase == Phase.AWAITING_USER_START:
			self._begin_countdown()

	async def _cancel_task(self) -> None:
		task = self._task
		self._task = None
		if task is None or task.done() or task is asyncio.current_task():
			return
		task.cancel()
		try:
			await task
		except asyncio.CancelledError:
			pass

	async def cancel_sequence(self) -> SequenceState:
		"""
		During Countdown: stop the timer and go back to AwaitingUserStart for the same
		direction; no photo is taken and collected shots are kept. In any other
		non-terminal phase: stop the sequence (Cancelled) and release the camera.
		"""
		if self._state.phase == Phase.COUNTDOWN:
			await self._cancel_task()
			if self._state.phase == Phase.COUNTDOWN:
				self._apply(CancelCountdown())
			return self._state
		if self._state.is_terminal:
			return self._state
		await self._cancel_task()
		if not self._state.is_terminal:
			self._apply(Cancel())
		await self._release_camera()
		return self._state

	async def close(self) -> None:
		"""Teardown: stop any countdown, mark Cancelled if still running, always release the camera."""
		await self._cancel_task()
		if not self._state.is_terminal and self._state.phase != Phase.IDLE:
			self._apply(Cancel())
		await self._release_camera()

	async def reset(self) -> SequenceState:
		"""Back to Idle from a terminal phase (explicit user retry)."""
		if not (self._state.is_terminal or self._state.phase == Phase.IDLE):
			raise SequenceStateError(f"reset() not allowed in phase {self._state.phase.value}")
		await self._cancel_task()
		await self._release_camera()
		return self._apply(Reset())

	async def wait(self) -> SequenceState:
		"""Wait until the current countdown/capture (if any) has finished."""
		while self._task is not None and not self._task.done():
			task = self._task
			try:
				await asyncio.shield(task)
			except asyncio.CancelledError:
				if not task.cancelled():
					raise
		return self._state

	async def __aenter__(self) -> "CaptureSequencer":
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:
		await self.close()
