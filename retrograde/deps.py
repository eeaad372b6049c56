from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable

from fastapi import Cookie, Depends, Request

from retrograde.config import settings
from retrograde.db import SessionLocal
from retrograde.guards import Guard, GuardChain, GuardContext, RequestPath
from retrograde.security import SESSION_COOKIE_NAME
from retrograde.store.base import ResourceStore
from retrograde.store.document import DocumentResourceStore
from retrograde.store.firestore import FirestoreRestClient
from retrograde.store.relational import SqlResourceStore

_document_client: FirestoreRestClient | None = None


def document_client() -> FirestoreRestClient:
  global _document_client
  if _document_client is None:
    _document_client = FirestoreRestClient(
      base_url=settings.firestore_base_url,
      project=settings.firestore_project,
      database=settings.firestore_database,
      token=settings.firestore_token,
    )
  return _document_client


async def close_document_client() -> None:
  global _document_client
  if _document_client is not None:
    await _document_client.aclose()
    _document_client = None


async def get_store() -> AsyncIterator[ResourceStore]:
  if settings.storage_backend == "document":
    yield DocumentResourceStore(document_client(), timeout=settings.store_timeout_seconds)
    return
  async with SessionLocal() as session:
    yield SqlResourceStore(session, timeout=settings.store_timeout_seconds)


def guarded(*guards: Guard) -> Callable[..., Awaitable[GuardContext]]:
  """FastAPI dependency running ``guards`` against the request path and session cookie."""
  chain = GuardChain(*guards)

  async def _run_guards(
    request: Request,
    store: ResourceStore = Depends(get_store),
    session_token: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
  ) -> GuardContext:
    params = request.path_params
    context = GuardContext(
      path=RequestPath(
        board_id=params.get("board_id"),
        rank_id=params.get("rank_id"),
        card_id=params.get("card_id"),
      ),
      session_token=session_token,
    )
    return await chain.run(context, store)

  return _run_guards
