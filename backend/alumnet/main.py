"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from alumnet.api import ops
from alumnet.api.errors import install_error_handlers
from alumnet.api.middleware_request_id import RequestIdMiddleware
from alumnet.infra import postgres
from alumnet.obs import init as obs_init
from alumnet.posts.api import router as posts_router
from alumnet.posts.infra import storage
from alumnet.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	storage.get_blob_store()
	try:
		yield
	finally:
		await storage.close_blob_store()
		await postgres.close_pool()


app = FastAPI(title="Alumnet Posts", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:5173"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = [origin for origin in allow_origins if origin != "*"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Local media backend serves uploaded attachments directly
if settings.media_backend == "local":
	upload_root = Path(settings.media_upload_root).resolve()
	upload_root.mkdir(parents=True, exist_ok=True)
	app.mount("/uploads", StaticFiles(directory=str(upload_root), check_dir=True), name="uploads")

obs_init(app)

# Ensure every request carries an X-Request-Id and make it available on request.state
app.add_middleware(RequestIdMiddleware)

app.include_router(posts_router)
app.include_router(ops.router, tags=["ops"])
