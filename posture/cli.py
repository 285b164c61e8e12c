from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from posture.analysis import AnalysisCoordinator
from posture.config import get_config, set_config_path
from posture.errors import PostureError
from posture.images import encode_png
from posture.models import CAPTURE_ORDER, CapturedShot
from posture.report import compose_report


async def _run(args: argparse.Namespace) -> int:
	from posture.pose.mediapipe_provider import get_keypoint_provider

	cfg = get_config()
	shots = []
	for direction in CAPTURE_ORDER:
		path = getattr(args, direction.value)
		im = Image.open(path)
		im.load()
		shots.append(CapturedShot(direction=direction, image=im))

	provider = get_keypoint_provider(cfg.pose)
	coord = AnalysisCoordinator(provider, cfg.analysis, cfg.skeleton)
	try:
		status = await coord.run(shots)
	finally:
		coord.close()
		provider.close()

	print(json.dumps(coord.snapshot(), indent=2))
	if args.report:
		out = Path(args.report)
		out.parent.mkdir(parents=True, exist_ok=True)
		out.write_bytes(encode_png(compose_report(coord.items, coord.summary, cfg.report)))
	return 0 if status == "complete" else 1


def main(argv: Optional[list[str]] = None) -> int:
	p = argparse.ArgumentParser(description="Analyse four posture photos (front/right/back/left) offline")
	for direction in CAPTURE_ORDER:
		p.add_argument(f"--{direction.value}", required=True, help=f"{direction.title} photo")
	p.add_argument("--report", default="", help="Write the composed report PNG here")
	p.add_argument("--config", default="", help="Path to config.json")
	p.add_argument("--debug", action="store_true", help="Enable debug logging.")
	args = p.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
	if args.config:
		set_config_path(args.config)
	try:
		return asyncio.run(_run(args))
	except KeyboardInterrupt:
		return 130
	except (PostureError, OSError, RuntimeError) as e:
		logging.error("fatal: %s", e)
		return 2


if __name__ == "__main__":
	raise SystemExit(main())
