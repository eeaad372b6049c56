from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from conftest import DOC_ROOT, board_fields, ref
from retrograde.errors import CorruptPayload, MalformedRecord, MalformedReference, NotFound
from retrograde.normalize import (
  board_changes,
  board_from,
  card_from,
  cards_open_from,
  document_fields,
  new_board_values,
  participant_from,
  rank_from,
  reference_id,
  row_values,
)
from retrograde.records import DocumentSnapshot, MissingDocument, Reference, RowRecord, batch_result
from retrograde.schemas import BoardIn

T1 = "2020-01-02T03:04:05.999999999Z"
T1_UNIX = int(datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp())
T2 = "2021-03-04T05:06:07.123456789Z"
T2_UNIX = int(datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc).timestamp())


def _board_doc(**overrides) -> DocumentSnapshot:
  fields = board_fields("p1")
  fields.update(overrides)
  return DocumentSnapshot(name=f"{DOC_ROOT}/boards/b1", fields=fields, create_time=T2)


def _board_row(**overrides) -> RowRecord:
  values = {
    "id": "b1",
    "name": "Sprint 12",
    "cards_open": True,
    "voting_open": False,
    "ice_breaking": None,
    "data": '{"columns":3}',
    "owner_id": "p1",
    "created_at": None,
    "inserted_at": datetime(2021, 3, 4, 5, 6, 7),
  }
  values.update(overrides)
  return RowRecord(table="board", values=values)


@pytest.mark.parametrize(
  "reference,expected",
  [
    (f"{DOC_ROOT}/participants/abc", "abc"),
    ("participants/abc", "abc"),
    ("abc", "abc"),
  ],
)
def test_reference_id_takes_final_segment(reference: str, expected: str) -> None:
  assert reference_id(reference) == expected


@pytest.mark.parametrize("reference", ["", "   ", "participants/", None, 42])
def test_reference_id_rejects_unparsable(reference: object) -> None:
  with pytest.raises(MalformedReference):
    reference_id(reference)


def test_board_from_document() -> None:
  b = board_from(_board_doc(ice_breaking={"stringValue": "Best snack this week?"}))
  assert b.id == "b1"
  assert b.name == "Sprint 12"
  assert b.cards_open is True
  assert b.voting_open is False
  assert b.ice_breaking == "Best snack this week?"
  assert b.owner_id == "p1"
  assert b.data == {"columns": 3}


def test_legacy_board_without_ice_breaker_defaults_to_empty() -> None:
  assert board_from(_board_doc()).ice_breaking == ""
  assert board_from(_board_doc(ice_breaking={"nullValue": None})).ice_breaking == ""
  assert board_from(_board_row()).ice_breaking == ""
  assert board_from(_board_row(ice_breaking="Hi")).ice_breaking == "Hi"


def test_created_at_prefers_explicit_timestamp() -> None:
  assert board_from(_board_doc(created_at={"timestampValue": T1})).created_at == T1_UNIX
  assert board_from(_board_doc()).created_at == T2_UNIX

  explicit = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
  assert board_from(_board_row(created_at=explicit)).created_at == T1_UNIX
  # naive datetimes from the relational store are UTC
  assert board_from(_board_row()).created_at == T2_UNIX


def test_created_at_missing_everywhere_is_malformed() -> None:
  doc = DocumentSnapshot(name=f"{DOC_ROOT}/boards/b1", fields=board_fields("p1"))
  with pytest.raises(MalformedRecord) as exc:
    board_from(doc)
  assert exc.value.field == "created_at"


def test_normalizing_twice_yields_equal_entities() -> None:
  doc = _board_doc(created_at={"timestampValue": T1})
  assert board_from(doc) == board_from(doc)
  row = _board_row()
  assert board_from(row) == board_from(row)


@pytest.mark.parametrize("field", ["name", "cards_open", "voting_open", "owner", "data"])
def test_missing_required_document_field(field: str) -> None:
  fields = board_fields("p1")
  del fields[field]
  with pytest.raises(MalformedRecord) as exc:
    board_from(DocumentSnapshot(name=f"{DOC_ROOT}/boards/b1", fields=fields, create_time=T2))
  assert exc.value.field == field


def test_mistyped_document_field_is_malformed() -> None:
  with pytest.raises(MalformedRecord) as exc:
    board_from(_board_doc(cards_open={"stringValue": "yes"}))
  assert exc.value.field == "cards_open"


def test_missing_required_row_column() -> None:
  with pytest.raises(MalformedRecord) as exc:
    board_from(_board_row(owner_id=None))
  assert exc.value.field == "owner_id"


def test_wrong_row_type_is_malformed() -> None:
  with pytest.raises(MalformedRecord) as exc:
    board_from(_board_row(name=12))
  assert exc.value.field == "name"


def test_empty_owner_reference_is_malformed() -> None:
  with pytest.raises(MalformedReference):
    board_from(_board_doc(owner={"referenceValue": ""}))


def test_corrupt_payload() -> None:
  with pytest.raises(CorruptPayload):
    board_from(_board_doc(data={"stringValue": "{not json"}))
  with pytest.raises(CorruptPayload):
    board_from(_board_row(data="[1, 2"))


def test_missing_document_is_not_found() -> None:
  with pytest.raises(NotFound) as exc:
    board_from(MissingDocument(name=f"{DOC_ROOT}/boards/gone"))
  assert exc.value.id == "gone"


def test_batch_result_variants() -> None:
  found = batch_result({"found": {"name": f"{DOC_ROOT}/participants/p9", "fields": {}}})
  assert isinstance(found, DocumentSnapshot)
  assert participant_from(found).id == "p9"
  assert isinstance(batch_result({"missing": f"{DOC_ROOT}/participants/p9"}), MissingDocument)
  assert batch_result({"readTime": T2}) is None


def test_rank_and_card_resolve_parent_references() -> None:
  rank = rank_from(DocumentSnapshot(name=f"{DOC_ROOT}/ranks/r1", fields={"name": {"stringValue": "Went well"}, "board": ref("boards/b1")}))
  assert (rank.id, rank.board_id, rank.name) == ("r1", "b1", "Went well")

  card = card_from(DocumentSnapshot(name=f"{DOC_ROOT}/cards/c1", fields={"name": {"stringValue": "CI"}, "rank": ref("ranks/r1")}))
  assert card.rank_id == "r1"
  assert card.description == ""

  row = card_from(RowRecord(table="card", values={"id": "c1", "rank_id": "r1", "name": "CI", "description": None}))
  assert row == card


def test_cards_open_from_masked_document() -> None:
  masked = DocumentSnapshot(name=f"{DOC_ROOT}/boards/b1", fields={"cards_open": {"booleanValue": False}})
  assert cards_open_from(masked) is False
  assert cards_open_from(RowRecord(table="board", values={"cards_open": True})) is True


def test_new_board_defaults_and_write_encoding() -> None:
  now = datetime(2022, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
  values = new_board_values(BoardIn(), owner_id="p1", now=now)
  assert values["name"] == ""
  assert values["cards_open"] is True
  assert values["voting_open"] is True
  assert values["data"] == "{}"
  assert "ice_breaking" not in values

  fields = document_fields(values, lambda r: f"{DOC_ROOT}/{r.path}")
  assert fields["owner"] == ref("participants/p1")
  assert fields["data"] == {"stringValue": "{}"}
  assert fields["created_at"] == {"timestampValue": "2022-05-06T07:08:09Z"}

  row = row_values(values)
  assert row["owner_id"] == "p1"
  assert row["data"] == "{}"
  assert "owner" not in row


def test_board_changes_only_carry_present_fields() -> None:
  changes = board_changes(BoardIn.model_validate({"cardsOpen": False, "data": {"a": 1}}))
  assert changes == {"cards_open": False, "data": '{"a":1}'}
  assert row_values({"rank": Reference("ranks", "r1")}) == {"rank_id": "r1"}


def test_missing_document_without_name_is_still_not_found() -> None:
  with pytest.raises(NotFound) as exc:
    board_from(MissingDocument(name=""))
  assert exc.value.id == ""


@pytest.mark.parametrize("payload", ["hello", 42, 1.5, True, None, [1, "two"]])
def test_board_payload_is_always_serialized(payload: object) -> None:
  now = datetime(2022, 5, 6, 7, 8, 9, tzinfo=timezone.utc)
  values = new_board_values(BoardIn(data=payload), owner_id="p1", now=now)
  assert values["data"] == json.dumps(payload, separators=(",", ":"), sort_keys=True)
  assert document_fields(values, lambda r: f"{DOC_ROOT}/{r.path}")["data"] == {"stringValue": values["data"]}
  assert row_values(values)["data"] == values["data"]

  changes = board_changes(BoardIn.model_validate({"data": payload}))
  assert changes == {"data": values["data"]}
