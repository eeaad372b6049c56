from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

os.environ.setdefault("APP_SECRET", "test-secret-for-unit-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from retrograde.deps import get_store
from retrograde.main import app
from retrograde.models import Base
from retrograde.security import SESSION_COOKIE_NAME, sign_participant_id
from retrograde.store.document import DocumentResourceStore
from retrograde.store.relational import SqlResourceStore

DOC_ROOT = "projects/test/databases/(default)/documents"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


class FakeDocumentClient:
  """In-memory stand-in for the document store's REST client."""

  def __init__(self) -> None:
    self.docs: dict[str, dict[str, Any]] = {}
    self.reads: list[str] = []
    self.writes: list[dict[str, Any]] = []
    self._clock = 1_600_000_000

  def document_name(self, path: str) -> str:
    return f"{DOC_ROOT}/{path.strip('/')}"

  def _stamp(self) -> str:
    self._clock += 1
    return datetime.fromtimestamp(self._clock, tz=timezone.utc).isoformat().replace("+00:00", ".123456789Z")

  def put(self, path: str, fields: dict[str, Any], *, create_time: str = "2021-03-04T05:06:07.123456789Z") -> None:
    name = self.document_name(path)
    self.docs[name] = {"name": name, "fields": dict(fields), "createTime": create_time, "updateTime": create_time}

  async def batch_get(self, paths: list[str], *, field_paths: list[str] | None = None) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for path in paths:
      self.reads.append(path)
      name = self.document_name(path)
      doc = self.docs.get(name)
      if doc is None:
        out.append({"missing": name, "readTime": "2021-03-04T05:06:07Z"})
        continue
      if field_paths is not None:
        doc = {**doc, "fields": {k: v for k, v in doc["fields"].items() if k in field_paths}}
      out.append({"found": doc, "readTime": "2021-03-04T05:06:07Z"})
    return out

  async def run_query(self, collection: str, field: str, reference: str) -> list[dict[str, Any]]:
    prefix = self.document_name(collection) + "/"
    out = [
      {"document": doc, "readTime": "2021-03-04T05:06:07Z"}
      for name, doc in sorted(self.docs.items())
      if name.startswith(prefix) and doc["fields"].get(field) == {"referenceValue": reference}
    ]
    return out or [{"readTime": "2021-03-04T05:06:07Z"}]

  async def commit(self, writes: list[dict[str, Any]]) -> None:
    for w in writes:
      self.writes.append(w)
      if "delete" in w:
        self.docs.pop(w["delete"], None)
        continue
      update = w["update"]
      name = update["name"]
      exists = w.get("currentDocument", {}).get("exists")
      if exists is False and name in self.docs:
        raise AssertionError(f"document already exists: {name}")
      if exists is True and name not in self.docs:
        raise AssertionError(f"document missing: {name}")
      mask = w.get("updateMask", {}).get("fieldPaths")
      if mask is None:
        stamp = self._stamp()
        self.docs[name] = {"name": name, "fields": dict(update["fields"]), "createTime": stamp, "updateTime": stamp}
      else:
        doc = self.docs[name]
        for field in mask:
          doc["fields"][field] = update["fields"][field]
        doc["updateTime"] = self._stamp()


def ref(path: str) -> dict[str, str]:
  return {"referenceValue": f"{DOC_ROOT}/{path}"}


def board_fields(owner: str, *, cards_open: bool = True, ice_breaking: str | None = None) -> dict[str, Any]:
  fields: dict[str, Any] = {
    "name": {"stringValue": "Sprint 12"},
    "cards_open": {"booleanValue": cards_open},
    "voting_open": {"booleanValue": False},
    "owner": ref(f"participants/{owner}"),
    "data": {"stringValue": '{"columns":3}'},
  }
  if ice_breaking is not None:
    fields["ice_breaking"] = {"stringValue": ice_breaking}
  return fields


@pytest.fixture
def doc_client() -> FakeDocumentClient:
  return FakeDocumentClient()


@pytest.fixture
def document_store(doc_client: FakeDocumentClient) -> DocumentResourceStore:
  return DocumentResourceStore(doc_client)


@pytest.fixture
async def session_factory() -> async_sessionmaker[AsyncSession]:
  engine = create_async_engine(
    "sqlite+aiosqlite://",
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
  )
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
  await engine.dispose()


@pytest.fixture
async def sql_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlResourceStore:
  async with session_factory() as session:
    yield SqlResourceStore(session)


@pytest.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncClient:
  async def override_get_store():
    async with session_factory() as session:
      yield SqlResourceStore(session)

  app.dependency_overrides[get_store] = override_get_store
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c
  app.dependency_overrides.clear()


def use_participant(client: AsyncClient, participant_id: str) -> None:
  client.cookies.clear()
  client.cookies.set(SESSION_COOKIE_NAME, sign_participant_id(participant_id))


async def join(client: AsyncClient) -> str:
  res = await client.post("/participants")
  assert res.status_code == 200, res.text
  participant_id = res.json()["id"]
  use_participant(client, participant_id)
  return participant_id
