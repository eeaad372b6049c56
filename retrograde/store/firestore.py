from __future__ import annotations

from typing import Any

import httpx


def normalize_base_url(base_url: str) -> str:
  b = (base_url or "").strip().rstrip("/")
  if not b:
    raise ValueError("base_url is required")
  if not (b.startswith("http://") or b.startswith("https://")):
    b = "https://" + b
  return b


class FirestoreApiError(RuntimeError):
  def __init__(self, *, status_code: int, message: str) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.message = message


def _extract_error(payload: Any) -> str:
  # {"error": {"code": 404, "message": "...", "status": "NOT_FOUND"}}, sometimes wrapped in a list
  if isinstance(payload, list) and payload:
    payload = payload[0]
  if isinstance(payload, dict):
    err = payload.get("error")
    if isinstance(err, dict):
      return str(err.get("message") or err.get("status") or "Firestore request failed")
  if isinstance(payload, str) and payload.strip():
    return payload.strip()[:500]
  return "Firestore request failed"


async def _request_json(client: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> Any:
  r = await client.request(method, path, **kwargs)
  if r.status_code >= 400:
    try:
      payload = r.json()
    except Exception:
      payload = (r.text or "")[:800]
    raise FirestoreApiError(status_code=r.status_code, message=_extract_error(payload))
  if r.status_code == 204:
    return None
  return r.json()


class FirestoreRestClient:
  """Minimal Firestore v1 REST client: batched point reads, reference queries and commits."""

  def __init__(
    self,
    *,
    base_url: str,
    project: str,
    database: str = "(default)",
    token: str | None = None,
    http: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
  ) -> None:
    self.root = f"projects/{project}/databases/{database}/documents"
    if http is None:
      headers = {"Accept": "application/json"}
      if token:
        headers["Authorization"] = f"Bearer {token}"
      http = httpx.AsyncClient(base_url=normalize_base_url(base_url), headers=headers, timeout=timeout)
    self._http = http

  def document_name(self, path: str) -> str:
    return f"{self.root}/{path.strip('/')}"

  async def batch_get(self, paths: list[str], *, field_paths: list[str] | None = None) -> list[dict[str, Any]]:
    body: dict[str, Any] = {"documents": [self.document_name(p) for p in paths]}
    if field_paths is not None:
      body["mask"] = {"fieldPaths": field_paths}
    payload = await _request_json(self._http, "POST", f"/v1/{self.root}:batchGet", json=body)
    if not isinstance(payload, list):
      raise FirestoreApiError(status_code=502, message="unexpected batchGet response")
    return payload

  async def commit(self, writes: list[dict[str, Any]]) -> None:
    await _request_json(self._http, "POST", f"/v1/{self.root}:commit", json={"writes": writes})

  async def run_query(self, collection: str, field: str, reference: str) -> list[dict[str, Any]]:
    """Documents of ``collection`` whose ``field`` references ``reference`` (a full document name)."""
    body = {
      "structuredQuery": {
        "from": [{"collectionId": collection}],
        "where": {
          "fieldFilter": {
            "field": {"fieldPath": field},
            "op": "EQUAL",
            "value": {"referenceValue": reference},
          }
        },
      }
    }
    payload = await _request_json(self._http, "POST", f"/v1/{self.root}:runQuery", json=body)
    if not isinstance(payload, list):
      raise FirestoreApiError(status_code=502, message="unexpected runQuery response")
    return payload

  async def aclose(self) -> None:
    await self._http.aclose()
