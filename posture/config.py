from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CameraConfig:
	backend: str = "picamera2"  # picamera2 / http / folder
	camera_index: Optional[int] = None
	# [w,h]; if omitted, the sensor's default still size is used.
	still_size: Optional[list[int]] = None
	controls: Dict[str, Any] = field(default_factory=dict)
	# http backend: remote camera that serves a single JPEG per GET.
	snapshot_url: str = "http://127.0.0.1:18081/snapshot.jpg"
	snapshot_timeout_seconds: float = 5.0
	# folder backend: images are handed out in sorted filename order.
	folder: str = str(Path("data") / "shots")


@dataclass(frozen=True)
class CaptureConfig:
	countdown_seconds: int = 15
	tick_interval_seconds: float = 1.0
	# How long to wait for the backend to report running after start().
	ready_timeout_seconds: float = 3.0
	# Start the next direction's countdown right after a shot instead of waiting for the user.
	auto_advance: bool = False


@dataclass(frozen=True)
class AnalysisConfig:
	# Longest side of the image handed to the detector (and drawn on by the skeleton renderer).
	max_dimension: int = 1080
	# Joints below this confidence are dropped before metric extraction.
	min_joint_confidence: float = 0.1


@dataclass(frozen=True)
class PoseConfig:
	backend: str = "mediapipe"
	model_complexity: int = 1
	min_detection_confidence: float = 0.5


@dataclass(frozen=True)
class SkeletonConfig:
	min_confidence: float = 0.3
	line_width: int = 6
	marker_radius: int = 8
	bone_color: str = "#1e88e5"
	joint_color: str = "#fdd835"


@dataclass(frozen=True)
class ReportConfig:
	title: str = "Posture Analysis Report"
	width: int = 1080
	height: int = 2400


@dataclass(frozen=True)
class LoggingConfig:
	level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
	camera: CameraConfig = field(default_factory=CameraConfig)
	capture: CaptureConfig = field(default_factory=CaptureConfig)
	analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
	pose: PoseConfig = field(default_factory=PoseConfig)
	skeleton: SkeletonConfig = field(default_factory=SkeletonConfig)
	report: ReportConfig = field(default_factory=ReportConfig)
	logging: LoggingConfig = field(default_factory=LoggingConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# posture/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	Intended for tooling and tests; the server normally uses the default path.
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: int) -> int:
	try:
		return int(v)
	except Exception:
		return int(default)


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except Exception:
		return float(default)


def _parse_camera_cfg(obj: Any) -> CameraConfig:
	if not isinstance(obj, dict):
		return CameraConfig()
	d = CameraConfig()
	controls = obj.get("controls")
	controls_dict: Dict[str, Any] = dict(controls) if isinstance(controls, dict) else {}
	idx = obj.get("camera_index")
	timeout = _as_float(obj.get("snapshot_timeout_seconds"), d.snapshot_timeout_seconds)
	return CameraConfig(
		backend=_as_str(obj.get("backend"), d.backend).strip().lower() or d.backend,
		camera_index=_as_int(idx, 0) if idx is not None else None,
		still_size=obj.get("still_size") if isinstance(obj.get("still_size"), list) else None,
		controls=controls_dict,
		snapshot_url=_as_str(obj.get("snapshot_url"), d.snapshot_url),
		snapshot_timeout_seconds=timeout if timeout > 0.0 else d.snapshot_timeout_seconds,
		folder=_as_str(obj.get("folder"), d.folder),
	)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except Exception:
		# If config is malformed, fail safe to defaults (but keep app running).
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	cap_countdown = _as_int(_deep_get(raw, ["capture", "countdown_seconds"], 15), 15)
	cap_tick = _as_float(_deep_get(raw, ["capture", "tick_interval_seconds"], 1.0), 1.0)
	cap_ready = _as_float(_deep_get(raw, ["capture", "ready_timeout_seconds"], 3.0), 3.0)
	cap_auto = _as_bool(_deep_get(raw, ["capture", "auto_advance"], False), False)

	an_max_dim = _as_int(_deep_get(raw, ["analysis", "max_dimension"], 1080), 1080)
	an_min_conf = _as_float(_deep_get(raw, ["analysis", "min_joint_confidence"], 0.1), 0.1)

	pose_backend = _as_str(_deep_get(raw, ["pose", "backend"], "mediapipe"), "mediapipe").strip().lower()
	pose_complexity = _as_int(_deep_get(raw, ["pose", "model_complexity"], 1), 1)
	pose_min_det = _as_float(_deep_get(raw, ["pose", "min_detection_confidence"], 0.5), 0.5)

	sk = SkeletonConfig()
	sk_min_conf = _as_float(_deep_get(raw, ["skeleton", "min_confidence"], sk.min_confidence), sk.min_confidence)
	sk_line = _as_int(_deep_get(raw, ["skeleton", "line_width"], sk.line_width), sk.line_width)
	sk_radius = _as_int(_deep_get(raw, ["skeleton", "marker_radius"], sk.marker_radius), sk.marker_radius)
	sk_bone = _as_str(_deep_get(raw, ["skeleton", "bone_color"], sk.bone_color), sk.bone_color)
	sk_joint = _as_str(_deep_get(raw, ["skeleton", "joint_color"], sk.joint_color), sk.joint_color)

	rp = ReportConfig()
	rp_title = _as_str(_deep_get(raw, ["report", "title"], rp.title), rp.title)
	rp_w = _as_int(_deep_get(raw, ["report", "width"], rp.width), rp.width)
	rp_h = _as_int(_deep_get(raw, ["report", "height"], rp.height), rp.height)

	log_level = _as_str(_deep_get(raw, ["logging", "level"], "INFO"), "INFO").strip().upper()

	return AppConfig(
		camera=_parse_camera_cfg(raw.get("camera")),
		capture=CaptureConfig(
			countdown_seconds=int(cap_countdown) if int(cap_countdown) > 0 else 15,
			tick_interval_seconds=float(cap_tick) if float(cap_tick) >= 0.0 else 1.0,
			ready_timeout_seconds=float(cap_ready) if float(cap_ready) > 0.0 else 3.0,
			auto_advance=cap_auto,
		),
		analysis=AnalysisConfig(
			max_dimension=int(an_max_dim) if int(an_max_dim) > 0 else 1080,
			min_joint_confidence=min(1.0, max(0.0, float(an_min_conf))),
		),
		pose=PoseConfig(
			backend=pose_backend or "mediapipe",
			model_complexity=int(pose_complexity) if int(pose_complexity) in (0, 1, 2) else 1,
			min_detection_confidence=min(1.0, max(0.0, float(pose_min_det))),
		),
		skeleton=SkeletonConfig(
			min_confidence=min(1.0, max(0.0, float(sk_min_conf))),
			line_width=int(sk_line) if int(sk_line) > 0 else sk.line_width,
			marker_radius=int(sk_radius) if int(sk_radius) > 0 else sk.marker_radius,
			bone_color=sk_bone or sk.bone_color,
			joint_color=sk_joint or sk.joint_color,
		),
		report=ReportConfig(
			title=rp_title or rp.title,
			width=int(rp_w) if int(rp_w) > 0 else rp.width,
			height=int(rp_h) if int(rp_h) > 0 else rp.height,
		),
		logging=LoggingConfig(level=log_level or "INFO"),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
