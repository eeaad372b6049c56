from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from retrograde.config import settings
from retrograde.deps import close_document_client
from retrograde.errors import install_error_handlers
from retrograde.log import configure_logging
from retrograde.routers.boards import router as boards_router
from retrograde.routers.cards import router as cards_router
from retrograde.routers.participants import router as participants_router
from retrograde.routers.ranks import router as ranks_router

app = FastAPI(title="Retrograde API", version=settings.app_version)

install_error_handlers(app)

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)

app.include_router(participants_router)
app.include_router(boards_router)
app.include_router(ranks_router)
app.include_router(cards_router)


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.on_event("startup")
async def _startup() -> None:
  configure_logging()
  if not settings.app_secret or settings.app_secret.strip().lower() in {"dev-secret-change-me", "replace_with_strong_random_secret"}:
    raise RuntimeError("APP_SECRET is required and must not be a placeholder")


@app.on_event("shutdown")
async def _shutdown() -> None:
  await close_document_client()
