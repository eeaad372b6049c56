"""
Entity normalizer.

Turns raw records from either backing store into canonical entities, and
canonical write values back into each store's shape. This is the only
module that knows how the two stores lay out their fields.

Read-side policy:

- required fields missing (or null) fail with ``MalformedRecord(field)``
- optional fields added after the first deployment have a documented
  default and never fail older records:
    Board.ice_breaking -> ""
    Card.description   -> ""
- relationships stored as path references (``participants/<id>``) resolve
  to the final path segment
- ``created_at`` prefers the explicit field and falls back to the
  storage-assigned creation time; canonical timestamps are unix seconds
- the opaque ``data`` payload is stored as serialized JSON and parsed here
"""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, TypeVar

from pydantic import ValidationError

from retrograde.entities import Board, Card, Participant, Rank
from retrograde.errors import CorruptPayload, MalformedRecord, MalformedReference, NotFound
from retrograde.records import (
  BOARDS,
  PARTICIPANTS,
  RANKS,
  DocumentSnapshot,
  MissingDocument,
  RawRecord,
  Reference,
  RowRecord,
)
from retrograde.schemas import BoardIn, CardIn, CardUpdateIn, RankIn

T = TypeVar("T")

_VALUE_KEYS = {
  "string": "stringValue",
  "boolean": "booleanValue",
  "reference": "referenceValue",
  "timestamp": "timestampValue",
}

_RFC3339_RE = re.compile(
  r"^(?P<head>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})(?P<frac>\.\d+)?(?P<tz>Z|[+-]\d{2}:\d{2})?$"
)


def reference_id(reference: object) -> str:
  """Bare identifier of a path-like reference: its final path segment."""
  if not isinstance(reference, str) or not reference.strip():
    raise MalformedReference(reference)
  segment = reference.rsplit("/", 1)[-1]
  if not segment.strip():
    raise MalformedReference(reference)
  return segment


def parse_timestamp(value: object, field: str) -> datetime:
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str) and value.strip():
    m = _RFC3339_RE.fullmatch(value.strip())
    if not m:
      raise MalformedRecord(field, "unparsable timestamp")
    # datetime only keeps microseconds; the document store sends nanoseconds
    digits = (m.group("frac") or "")[1:7]
    frac = "." + digits.ljust(6, "0") if digits else ""
    tz = m.group("tz") or ""
    try:
      dt = datetime.fromisoformat(m.group("head") + frac + tz.replace("Z", "+00:00"))
    except ValueError as exc:
      raise MalformedRecord(field, "unparsable timestamp") from exc
  else:
    raise MalformedRecord(field, "expected timestamp")

  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


def unix_seconds(value: object, field: str) -> int:
  return math.floor(parse_timestamp(value, field).timestamp())


def reconcile_created_at(explicit: object | None, assigned: object | None) -> int:
  if explicit is not None:
    return unix_seconds(explicit, "created_at")
  if assigned is not None:
    return unix_seconds(assigned, "create_time")
  raise MalformedRecord("created_at")


def load_payload(value: object, field: str = "data") -> Any:
  if isinstance(value, (dict, list)):
    return value
  if isinstance(value, (str, bytes)):
    try:
      return json.loads(value)
    except ValueError as exc:
      raise CorruptPayload(field, str(exc)) from exc
  raise CorruptPayload(field, "expected serialized JSON")


def dump_payload(value: Any) -> str:
  return json.dumps(value, separators=(",", ":"), sort_keys=True)


# ---------------------------------------------------------------------------
# raw field access
# ---------------------------------------------------------------------------


def _document_value(doc: DocumentSnapshot, field: str, kind: str, *, required: bool = True) -> Any:
  raw = doc.fields.get(field)
  if raw is None or (isinstance(raw, Mapping) and "nullValue" in raw):
    if required:
      raise MalformedRecord(field)
    return None
  key = _VALUE_KEYS[kind]
  if not isinstance(raw, Mapping) or key not in raw:
    raise MalformedRecord(field, f"expected {kind}")
  return raw[key]


def _row_value(row: RowRecord, field: str, *, required: bool = True) -> Any:
  value = row.values.get(field)
  if value is None and required:
    raise MalformedRecord(field)
  return value


def _read(
  record: RawRecord,
  kind: str,
  from_document: Callable[[DocumentSnapshot], T],
  from_row: Callable[[RowRecord], T],
) -> T:
  if isinstance(record, MissingDocument):
    raise NotFound(kind, record.name.rpartition("/")[2])
  try:
    if isinstance(record, DocumentSnapshot):
      return from_document(record)
    if isinstance(record, RowRecord):
      return from_row(record)
  except ValidationError as exc:
    errors = exc.errors()
    field = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else kind
    raise MalformedRecord(field, "wrong type") from exc
  raise TypeError(f"not a raw record: {type(record).__name__}")


# ---------------------------------------------------------------------------
# read direction
# ---------------------------------------------------------------------------


def _participant_from_document(doc: DocumentSnapshot) -> Participant:
  return Participant(id=reference_id(doc.name))


def _participant_from_row(row: RowRecord) -> Participant:
  return Participant(id=str(_row_value(row, "id")))


def _board_from_document(doc: DocumentSnapshot) -> Board:
  return Board(
    id=reference_id(doc.name),
    name=_document_value(doc, "name", "string"),
    cards_open=_document_value(doc, "cards_open", "boolean"),
    voting_open=_document_value(doc, "voting_open", "boolean"),
    ice_breaking=_document_value(doc, "ice_breaking", "string", required=False) or "",
    created_at=reconcile_created_at(
      _document_value(doc, "created_at", "timestamp", required=False),
      doc.create_time,
    ),
    owner_id=reference_id(_document_value(doc, "owner", "reference")),
    data=load_payload(_document_value(doc, "data", "string")),
  )


def _board_from_row(row: RowRecord) -> Board:
  return Board(
    id=str(_row_value(row, "id")),
    name=_row_value(row, "name"),
    cards_open=bool(_row_value(row, "cards_open")),
    voting_open=bool(_row_value(row, "voting_open")),
    ice_breaking=_row_value(row, "ice_breaking", required=False) or "",
    created_at=reconcile_created_at(
      _row_value(row, "created_at", required=False),
      _row_value(row, "inserted_at", required=False),
    ),
    owner_id=str(_row_value(row, "owner_id")),
    data=load_payload(_row_value(row, "data")),
  )


def _rank_from_document(doc: DocumentSnapshot) -> Rank:
  return Rank(
    id=reference_id(doc.name),
    board_id=reference_id(_document_value(doc, "board", "reference")),
    name=_document_value(doc, "name", "string"),
  )


def _rank_from_row(row: RowRecord) -> Rank:
  return Rank(
    id=str(_row_value(row, "id")),
    board_id=str(_row_value(row, "board_id")),
    name=_row_value(row, "name"),
  )


def _card_from_document(doc: DocumentSnapshot) -> Card:
  return Card(
    id=reference_id(doc.name),
    rank_id=reference_id(_document_value(doc, "rank", "reference")),
    name=_document_value(doc, "name", "string"),
    description=_document_value(doc, "description", "string", required=False) or "",
  )


def _card_from_row(row: RowRecord) -> Card:
  return Card(
    id=str(_row_value(row, "id")),
    rank_id=str(_row_value(row, "rank_id")),
    name=_row_value(row, "name"),
    description=_row_value(row, "description", required=False) or "",
  )


def participant_from(record: RawRecord) -> Participant:
  return _read(record, "participant", _participant_from_document, _participant_from_row)


def board_from(record: RawRecord) -> Board:
  return _read(record, "board", _board_from_document, _board_from_row)


def rank_from(record: RawRecord) -> Rank:
  return _read(record, "rank", _rank_from_document, _rank_from_row)


def card_from(record: RawRecord) -> Card:
  return _read(record, "card", _card_from_document, _card_from_row)


def cards_open_from(record: RawRecord) -> bool:
  """Read only the ``cards_open`` flag of a (possibly field-masked) board record."""
  return _read(
    record,
    "board",
    lambda doc: bool(_document_value(doc, "cards_open", "boolean")),
    lambda row: bool(_row_value(row, "cards_open")),
  )


# ---------------------------------------------------------------------------
# write direction
# ---------------------------------------------------------------------------

_BOARD_FIELDS = {
  "name": "name",
  "cardsOpen": "cards_open",
  "votingOpen": "voting_open",
  "iceBreaking": "ice_breaking",
  "data": "data",
}


def new_participant_values(*, now: datetime) -> dict[str, Any]:
  return {"created_at": now}


def new_board_values(message: BoardIn, *, owner_id: str, now: datetime) -> dict[str, Any]:
  values: dict[str, Any] = {
    "name": message.name if message.name is not None else "",
    "cards_open": message.cardsOpen if message.cardsOpen is not None else True,
    "voting_open": message.votingOpen if message.votingOpen is not None else True,
    "created_at": now,
    "owner": Reference(PARTICIPANTS, owner_id),
    # an explicit null is kept; an absent payload starts as an empty object
    "data": dump_payload(message.data if "data" in message.model_fields_set else {}),
  }
  if message.iceBreaking is not None:
    values["ice_breaking"] = message.iceBreaking
  return values


def board_changes(message: BoardIn) -> dict[str, Any]:
  present = message.model_dump(exclude_unset=True)
  changes = {_BOARD_FIELDS[k]: v for k, v in present.items() if v is not None and k != "data"}
  # the payload is always stored serialized, whatever its JSON type
  if "data" in present:
    changes["data"] = dump_payload(present["data"])
  return changes


def new_rank_values(message: RankIn, *, board_id: str) -> dict[str, Any]:
  return {"name": message.name, "board": Reference(BOARDS, board_id)}


def new_card_values(message: CardIn, *, rank_id: str) -> dict[str, Any]:
  return {"name": message.name, "description": message.description, "rank": Reference(RANKS, rank_id)}


def card_changes(message: CardUpdateIn) -> dict[str, Any]:
  present = message.model_dump(exclude_unset=True)
  return {k: v for k, v in present.items() if v is not None}


def format_timestamp(dt: datetime) -> str:
  if dt.tzinfo is None:
    dt = dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def document_fields(values: Mapping[str, Any], reference_name: Callable[[Reference], str]) -> dict[str, dict[str, Any]]:
  fields: dict[str, dict[str, Any]] = {}
  for key, value in values.items():
    if isinstance(value, Reference):
      fields[key] = {"referenceValue": reference_name(value)}
    elif isinstance(value, bool):
      fields[key] = {"booleanValue": value}
    elif isinstance(value, int):
      fields[key] = {"integerValue": str(value)}
    elif isinstance(value, str):
      fields[key] = {"stringValue": value}
    elif isinstance(value, datetime):
      fields[key] = {"timestampValue": format_timestamp(value)}
    elif value is None:
      fields[key] = {"nullValue": None}
    else:
      # opaque payloads are persisted as serialized strings
      fields[key] = {"stringValue": dump_payload(value)}
  return fields


def row_values(values: Mapping[str, Any]) -> dict[str, Any]:
  out: dict[str, Any] = {}
  for key, value in values.items():
    if isinstance(value, Reference):
      out[f"{key}_id"] = value.id
    elif isinstance(value, (dict, list)):
      out[key] = dump_payload(value)
    else:
      out[key] = value
  return out


