from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RetrogradeError(Exception):
  status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class Unauthenticated(RetrogradeError):
  status_code = status.HTTP_401_UNAUTHORIZED

  def __init__(self, reason: str = "no participant identity") -> None:
    super().__init__(reason)
    self.reason = reason


class Forbidden(RetrogradeError):
  status_code = status.HTTP_403_FORBIDDEN

  def __init__(self, reason: str) -> None:
    super().__init__(reason)
    self.reason = reason


class NotFound(RetrogradeError):
  status_code = status.HTTP_404_NOT_FOUND

  def __init__(self, kind: str, id: str) -> None:
    super().__init__(f"{kind} not found: {id}")
    self.kind = kind
    self.id = id


class StoreError(RetrogradeError):
  """Transport or availability fault from a backing store."""


class NormalizationError(RetrogradeError):
  """A raw record could not be turned into a canonical entity."""


class MalformedRecord(NormalizationError):
  def __init__(self, field: str, detail: str = "missing or mistyped") -> None:
    super().__init__(f"{field}: {detail}")
    self.field = field


class MalformedReference(NormalizationError):
  def __init__(self, reference: object) -> None:
    super().__init__(f"unparsable reference: {reference!r}")
    self.reference = reference


class CorruptPayload(NormalizationError):
  def __init__(self, field: str, detail: str) -> None:
    super().__init__(f"{field}: {detail}")
    self.field = field


_PUBLIC_DETAIL = {
  status.HTTP_401_UNAUTHORIZED: "Not authenticated",
  status.HTTP_403_FORBIDDEN: "Forbidden",
  status.HTTP_404_NOT_FOUND: "Not found",
}


def status_for(exc: BaseException) -> int:
  if isinstance(exc, RetrogradeError):
    return exc.status_code
  return status.HTTP_500_INTERNAL_SERVER_ERROR


def public_detail(status_code: int) -> str:
  return _PUBLIC_DETAIL.get(status_code, "Internal server error")


async def _retrograde_error_handler(request: Request, exc: RetrogradeError) -> JSONResponse:
  code = status_for(exc)
  if code >= 500:
    logger.error("%s %s failed with %s: %s", request.method, request.url.path, type(exc).__name__, exc)
  else:
    logger.debug("%s %s rejected with %s: %s", request.method, request.url.path, type(exc).__name__, exc)
  return JSONResponse(status_code=code, content={"detail": public_detail(code)})


def install_error_handlers(app: FastAPI) -> None:
  app.add_exception_handler(RetrogradeError, _retrograde_error_handler)
