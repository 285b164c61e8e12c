import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from posture import __version__
from posture.camera_backend import CameraBackend, get_camera_backend
from posture.capture_sequencer import CaptureSequencer
from posture.config import AppConfig, get_config
from posture.pose.base import KeypointProvider
from routers import analysis, capture, report, usage, ws

logger = logging.getLogger(__name__)


def create_app(
	cfg: Optional[AppConfig] = None,
	camera: Optional[CameraBackend] = None,
	provider: Optional[KeypointProvider] = None,
) -> FastAPI:
	"""
	Build the app. cfg/camera/provider default to config.json and the configured
	backends; tests pass fakes.
	"""

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		state = AppState()
		state.cfg = cfg or get_config()
		state.manager = ws.manager
		state.camera = camera or get_camera_backend(state.cfg)
		state.provider = provider
		state.sequencer = CaptureSequencer(state.camera, state.cfg.capture)
		state.sequencer.events.add_listener(state.broadcast)
		app.state.state = state
		logger.info("[SYSTEM] posture service %s started (camera=%s)", __version__, state.camera.name())
		try:
			yield
		finally:
			# Camera must be released on every exit path.
			try:
				await state.sequencer.close()
			except Exception as e:
				logger.error("[SYSTEM] sequencer close failed: %r", e)
			if state.coordinator is not None:
				state.coordinator.cancel()
				try:
					await state.coordinator.wait()
				except Exception as e:
					logger.warning("[SYSTEM] analysis ended with error on shutdown: %r", e)
			if state.executor is not None:
				state.executor.shutdown(wait=False, cancel_futures=True)
			if state.provider is not None:
				state.provider.close()
			logger.info("[SYSTEM] posture service stopped")

	app = FastAPI(title="Posture Analysis", version=__version__, lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(capture.router)
	app.include_router(analysis.router)
	app.include_router(report.router)
	app.include_router(usage.router)
	app.include_router(ws.router)

	@app.get("/health")
	async def health():
		return {"ok": True, "version": __version__}

	return app


logging.basicConfig(
	level=getattr(logging, get_config().logging.level, logging.INFO),
	format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
)

app = create_app()


if __name__ == "__main__":
	import argparse

	import uvicorn

	p = argparse.ArgumentParser(description="Posture analysis service")
	p.add_argument("--host", default="0.0.0.0")
	p.add_argument("--port", type=int, default=8000)
	args = p.parse_args()
	uvicorn.run(app, host=args.host, port=int(args.port))
