"""
Posture assessment package.

Four-direction capture, keypoint-based posture scoring, cross-view summary and report
composition. Imported as `posture.*` by the server, routers and tests.
"""

from pathlib import Path


def _read_version() -> str:
	try:
		vf = Path(__file__).resolve().parents[1] / "VERSION"
		if vf.exists():
			val = vf.read_text(encoding="utf-8").strip()
			if val:
				return val
	except Exception:
		pass
	return "0.1.0"


__version__ = _read_version()
