"""
Raw records as they come out of each backing store.

Document snapshots keep the document store's typed value encoding
(``{"stringValue": ...}``, ``{"referenceValue": ...}``, ...); relational
rows are plain column mappings. Only ``retrograde.normalize`` looks inside.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

PARTICIPANTS = "participants"
BOARDS = "boards"
RANKS = "ranks"
CARDS = "cards"


@dataclass(frozen=True)
class DocumentSnapshot:
  name: str
  fields: Mapping[str, Any] = field(default_factory=dict)
  create_time: str | None = None
  update_time: str | None = None

  @classmethod
  def from_api(cls, payload: Mapping[str, Any]) -> DocumentSnapshot:
    return cls(
      name=str(payload.get("name") or ""),
      fields=dict(payload.get("fields") or {}),
      create_time=payload.get("createTime"),
      update_time=payload.get("updateTime"),
    )


@dataclass(frozen=True)
class MissingDocument:
  name: str


@dataclass(frozen=True)
class RowRecord:
  table: str
  values: Mapping[str, Any]


RawRecord = Union[DocumentSnapshot, MissingDocument, RowRecord]


def batch_result(payload: Mapping[str, Any]) -> DocumentSnapshot | MissingDocument | None:
  # batchGet may also stream entries that only carry a readTime/transaction
  if "found" in payload:
    return DocumentSnapshot.from_api(payload["found"] or {})
  if "missing" in payload:
    return MissingDocument(name=str(payload["missing"] or ""))
  return None


@dataclass(frozen=True)
class Reference:
  """A relationship to another record, written as a path reference or a bare id."""

  collection: str
  id: str

  @property
  def path(self) -> str:
    return f"{self.collection}/{self.id}"
