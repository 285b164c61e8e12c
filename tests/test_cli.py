import json

from conftest import DIRECTION_COLORS, FakeProvider, solid
from posture import cli
from posture.errors import DetectionError
from posture.models import CAPTURE_ORDER, ShotDirection


def photo_args(tmp_path):
	args = []
	for d in CAPTURE_ORDER:
		p = tmp_path / f"{d.value}.png"
		solid(DIRECTION_COLORS[d]).save(p)
		args += [f"--{d.value}", str(p)]
	return args


def test_cli_writes_report(tmp_path, monkeypatch, capsys):
	monkeypatch.setattr("posture.pose.mediapipe_provider.get_keypoint_provider", lambda cfg: FakeProvider())
	out = tmp_path / "out" / "report.png"

	code = cli.main(photo_args(tmp_path) + ["--report", str(out)])

	assert code == 0
	assert out.read_bytes()[:4] == b"\x89PNG"
	snap = json.loads(capsys.readouterr().out)
	assert snap["status"] == "complete"
	assert snap["summary"]["score"] == 100


def test_cli_view_failure_is_still_complete(tmp_path, monkeypatch, capsys):
	provider = FakeProvider({DIRECTION_COLORS[ShotDirection.LEFT]: DetectionError("blurry")})
	monkeypatch.setattr("posture.pose.mediapipe_provider.get_keypoint_provider", lambda cfg: provider)

	assert cli.main(photo_args(tmp_path)) == 0
	snap = json.loads(capsys.readouterr().out)
	assert "blurry" in snap["items"][3]["error"]
	assert provider.closed


def test_cli_missing_file_is_fatal(tmp_path, monkeypatch):
	monkeypatch.setattr("posture.pose.mediapipe_provider.get_keypoint_provider", lambda cfg: FakeProvider())
	args = photo_args(tmp_path)
	args[1] = str(tmp_path / "missing.png")
	assert cli.main(args) == 2
