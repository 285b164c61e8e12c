import json
from datetime import datetime, timezone

import pytest
from PIL import Image

from conftest import jp
from posture.camera_backend import get_camera_backend
from posture.camera_backends.folder_backend import FolderBackend
from posture.config import AppConfig, CameraConfig, load_config
from posture.errors import CameraError
from posture.pose.mediapipe_provider import add_midpoint_joints
from posture.pose.types import JointName
from posture.usage_limits import can_capture_free, next_reset

J = JointName


def test_missing_config_gives_defaults(tmp_path):
	assert load_config(tmp_path / "nope.json") == AppConfig()


def test_malformed_config_gives_defaults(tmp_path):
	p = tmp_path / "config.json"
	p.write_text("{not json", encoding="utf-8")
	assert load_config(p) == AppConfig()


def test_config_overrides_and_sanitizes(tmp_path):
	p = tmp_path / "config.json"
	p.write_text(
		json.dumps(
			{
				"camera": {"backend": "Folder", "folder": "/srv/shots"},
				"capture": {"countdown_seconds": 5, "tick_interval_seconds": -1, "auto_advance": "yes"},
				"analysis": {"max_dimension": 720, "min_joint_confidence": 3},
				"pose": {"model_complexity": 7},
				"report": {"title": "Clinic report", "width": "abc"},
				"logging": {"level": "debug"},
			}
		),
		encoding="utf-8",
	)
	cfg = load_config(p)
	assert cfg.camera.backend == "folder"
	assert cfg.camera.folder == "/srv/shots"
	assert cfg.capture.countdown_seconds == 5
	assert cfg.capture.tick_interval_seconds == 1.0
	assert cfg.capture.auto_advance is True
	assert cfg.analysis.max_dimension == 720
	assert cfg.analysis.min_joint_confidence == 1.0
	assert cfg.pose.model_complexity == 1
	assert cfg.report.title == "Clinic report"
	assert cfg.report.width == 1080
	assert cfg.logging.level == "DEBUG"


def test_default_countdown_is_fifteen_seconds():
	assert AppConfig().capture.countdown_seconds == 15


def write_images(folder, names):
	folder.mkdir(parents=True, exist_ok=True)
	for i, name in enumerate(names):
		Image.new("RGB", (20, 30), (i * 50, 0, 0)).save(folder / name)


async def test_folder_backend_serves_sorted_images(tmp_path):
	write_images(tmp_path / "shots", ["b.png", "a.png", "notes.txt.png"])
	(tmp_path / "shots" / "readme.txt").write_text("x")
	cam = FolderBackend(tmp_path / "shots")
	cam.start()
	assert cam.get_status()["running"]
	assert cam.get_status()["remaining"] == 3

	first = await cam.capture_still()
	assert first.getpixel((0, 0)) == (50, 0, 0)  # a.png
	await cam.capture_still()
	await cam.capture_still()
	with pytest.raises(CameraError):
		await cam.capture_still()
	cam.stop()
	assert not cam.get_status()["running"]


async def test_folder_backend_reports_missing_folder(tmp_path):
	cam = FolderBackend(tmp_path / "missing")
	cam.start()
	st = cam.get_status()
	assert not st["running"]
	assert "not found" in st["error"]
	with pytest.raises(CameraError):
		await cam.capture_still()


def test_backend_factory_selects_folder(tmp_path):
	cfg = AppConfig(camera=CameraConfig(backend="folder", folder=str(tmp_path)))
	assert get_camera_backend(cfg).name() == "folder"
	assert get_camera_backend(AppConfig(), backend_override="files").name() == "folder"


def test_midpoint_joints():
	joints = {
		J.LEFT_SHOULDER: jp(J.LEFT_SHOULDER, 0.4, 0.3, 0.9),
		J.RIGHT_SHOULDER: jp(J.RIGHT_SHOULDER, 0.6, 0.32, 0.5),
		J.LEFT_HIP: jp(J.LEFT_HIP, 0.45, 0.55),
	}
	out = add_midpoint_joints(joints)
	assert out[J.NECK].x == pytest.approx(0.5)
	assert out[J.NECK].y == pytest.approx(0.31)
	assert out[J.NECK].confidence == pytest.approx(0.5)
	assert J.ROOT not in out
	assert J.NECK not in joints


def test_free_capture_once_per_month():
	last = datetime(2024, 3, 2, 9, 0)
	assert can_capture_free(None, last)
	assert not can_capture_free(last, datetime(2024, 3, 31, 23, 59))
	assert can_capture_free(last, datetime(2024, 4, 1, 0, 0))
	assert can_capture_free(last, datetime(2025, 3, 2, 9, 0))


def test_free_capture_compares_in_callers_timezone():
	last = datetime(2024, 3, 31, 23, 30, tzinfo=timezone.utc)
	now = datetime(2024, 4, 1, 0, 10, tzinfo=timezone.utc)
	assert can_capture_free(last, now)


def test_next_reset():
	assert next_reset(datetime(2024, 3, 15, 10, 30)) == datetime(2024, 4, 1)
	assert next_reset(datetime(2024, 12, 31, 23, 59)) == datetime(2025, 1, 1)
