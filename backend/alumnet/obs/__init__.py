"""Logging and metrics wiring for the API process."""

from __future__ import annotations

from fastapi import FastAPI

from alumnet.obs import logging as obs_logging
from alumnet.obs import middleware
from alumnet.settings import settings


def init(app: FastAPI) -> None:
	"""Configure JSON logging and request instrumentation once per app."""
	if not settings.obs_enabled or getattr(app.state, "obs_installed", False):
		return
	obs_logging.configure_logging()
	middleware.install(app)
	app.state.obs_installed = True


__all__ = ["init"]
