import base64
import time

import pytest
from fastapi.testclient import TestClient

from conftest import DIRECTION_COLORS, FakeCamera, FakeProvider, solid
from posture.config import AppConfig, CaptureConfig
from posture.errors import DetectionError
from posture.images import encode_png
from posture.models import CAPTURE_ORDER, ShotDirection
from server import create_app


def fast_config() -> AppConfig:
	return AppConfig(capture=CaptureConfig(countdown_seconds=2, tick_interval_seconds=0.0, ready_timeout_seconds=1.0))


def poll(client, path, done, timeout=5.0):
	deadline = time.monotonic() + timeout
	while True:
		body = client.get(path).json()
		if done(body):
			return body
		if time.monotonic() > deadline:
			raise AssertionError(f"timed out waiting on {path}: {body}")
		time.sleep(0.01)


def wait_for(cond, timeout=5.0):
	deadline = time.monotonic() + timeout
	while not cond():
		if time.monotonic() > deadline:
			raise AssertionError("condition not met in time")
		time.sleep(0.01)


def shot_payload(directions=None, colors=None):
	colors = colors or DIRECTION_COLORS
	return {
		"shots": [
			{"direction": d.value, "image_b64": base64.b64encode(encode_png(solid(colors[d]))).decode("ascii")}
			for d in (directions or CAPTURE_ORDER)
		]
	}


@pytest.fixture
def fakes():
	return FakeCamera(), FakeProvider()


@pytest.fixture
def client(fakes):
	camera, provider = fakes
	app = create_app(cfg=fast_config(), camera=camera, provider=provider)
	with TestClient(app) as c:
		yield c


def test_health(client):
	assert client.get("/health").json()["ok"] is True


def test_capture_then_analyse_then_report(client, fakes):
	camera, provider = fakes
	assert client.get("/capture/status").json()["phase"] == "idle"

	for i, direction in enumerate(CAPTURE_ORDER):
		r = client.post("/capture/start")
		assert r.status_code == 200, r.text
		assert r.json()["status"]["current_direction"] == direction.value
		poll(client, "/capture/status", lambda b, n=i + 1: len(b["shots"]) == n)

	st = client.get("/capture/status").json()
	assert st["phase"] == "complete"
	assert st["shots"] == ["front", "right", "back", "left"]
	assert not st["camera_acquired"]
	wait_for(lambda: camera.stop_calls == 1)

	r = client.post("/analysis/start")
	assert r.status_code == 200, r.text
	body = poll(client, "/analysis/status", lambda b: not b["is_loading"])
	assert body["status"] == "complete"
	assert [it["direction"] for it in body["items"]] == ["front", "right", "back", "left"]
	assert body["summary"]["score"] == 100

	r = client.get("/analysis/items/back/skeleton.jpg")
	assert r.status_code == 200
	assert r.headers["content-type"] == "image/jpeg"

	r = client.get("/report.png", params={"date": "2024-05-01"})
	assert r.status_code == 200
	assert r.content[:8] == b"\x89PNG\r\n\x1a\n"


def test_cancel_during_countdown_over_http():
	camera = FakeCamera()
	cfg = AppConfig(capture=CaptureConfig(countdown_seconds=15, tick_interval_seconds=10.0))
	with TestClient(create_app(cfg=cfg, camera=camera, provider=FakeProvider())) as client:
		r = client.post("/capture/start")
		assert r.json()["status"]["is_counting_down"]

		r = client.post("/capture/cancel")
		st = r.json()["status"]
		assert st["phase"] == "awaiting_user_start"
		assert st["current_direction"] == "front"
		assert st["shots"] == []
		assert camera.captures == 0

		r = client.post("/capture/start")
		assert r.status_code == 200
		assert client.post("/capture/start").status_code == 409
	# Shutdown releases the camera mid-countdown.
	assert camera.stop_calls == 1


def test_close_and_reset(client, fakes):
	camera, _ = fakes
	client.post("/capture/prepare")
	r = client.post("/capture/close")
	assert r.json()["status"]["phase"] == "cancelled"
	assert camera.stop_calls == 1

	r = client.post("/capture/reset")
	assert r.json()["status"]["phase"] == "idle"


def test_camera_unavailable_is_503():
	app = create_app(cfg=fast_config(), camera=FakeCamera(start_error="no device"), provider=FakeProvider())
	with TestClient(app) as client:
		r = client.post("/capture/start")
		assert r.status_code == 503
		assert "no device" in r.json()["detail"]
		assert client.get("/capture/status").json()["phase"] == "error"


def test_analysis_without_capture_is_409(client):
	assert client.post("/analysis/start").status_code == 409


def test_analysis_of_uploaded_shots(client, fakes):
	_, provider = fakes
	provider.by_color[DIRECTION_COLORS[ShotDirection.RIGHT]] = DetectionError("model crashed")
	order = [ShotDirection.LEFT, ShotDirection.BACK, ShotDirection.RIGHT, ShotDirection.FRONT]

	r = client.post("/analysis/start", json=shot_payload(order))
	assert r.status_code == 200, r.text
	body = poll(client, "/analysis/status", lambda b: not b["is_loading"])

	assert [it["direction"] for it in body["items"]] == ["front", "right", "back", "left"]
	right = body["items"][1]
	assert right["score"] is None
	assert "model crashed" in right["error"]
	assert body["summary"]["score"] == 100


def test_upload_with_missing_direction_is_400(client):
	r = client.post("/analysis/start", json=shot_payload(CAPTURE_ORDER[:3]))
	assert r.status_code == 400


def test_upload_with_bad_image_is_400(client):
	payload = shot_payload()
	payload["shots"][0]["image_b64"] = "not-base64!!"
	assert client.post("/analysis/start", json=payload).status_code == 400


def test_upload_with_unknown_direction_is_422(client):
	payload = shot_payload()
	payload["shots"][0]["direction"] = "up"
	assert client.post("/analysis/start", json=payload).status_code == 422


def test_report_before_analysis_is_404(client):
	assert client.get("/report.png").status_code == 404
	assert client.get("/analysis/items/front/skeleton.jpg").status_code == 404


def test_usage_endpoint(client):
	r = client.get("/usage/posture", params={"last_captured": "2024-03-02T09:00:00", "now": "2024-03-20T10:00:00"})
	assert r.json() == {"allowed": False, "next_reset": "2024-04-01T00:00:00"}
	r = client.get("/usage/posture", params={"now": "2024-03-20T10:00:00"})
	assert r.json()["allowed"] is True
	assert client.get("/usage/posture", params={"now": "yesterday"}).status_code == 400


def test_websocket_sends_current_state(client):
	with client.websocket_connect("/ws") as ws:
		msg = ws.receive_json()
	assert msg["type"] == "capture_state"
	assert msg["phase"] == "idle"


def test_shutdown_closes_provider(fakes):
	camera, provider = fakes
	with TestClient(create_app(cfg=fast_config(), camera=camera, provider=provider)) as client:
		client.post("/capture/prepare")
	assert provider.closed
	assert camera.stop_calls == 1


def test_missing_pose_model_is_503(monkeypatch):
	def unavailable(cfg):
		raise RuntimeError("MediaPipe is not installed")

	monkeypatch.setattr("posture.pose.mediapipe_provider.get_keypoint_provider", unavailable)
	with TestClient(create_app(cfg=fast_config(), camera=FakeCamera())) as client:
		r = client.post("/analysis/start", json=shot_payload())
	assert r.status_code == 503
	assert "MediaPipe is not installed" in r.json()["detail"]
