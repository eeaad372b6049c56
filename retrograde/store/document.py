from __future__ import annotations

from typing import Any, Protocol

import httpx

from retrograde.entities import Board, Card, Participant, Rank
from retrograde.errors import NotFound, StoreError
from retrograde.models import new_id, utcnow
from retrograde.normalize import (
  board_changes,
  board_from,
  card_changes,
  card_from,
  cards_open_from,
  document_fields,
  new_board_values,
  new_card_values,
  new_participant_values,
  new_rank_values,
  participant_from,
  rank_from,
)
from retrograde.records import (
  BOARDS,
  CARDS,
  PARTICIPANTS,
  RANKS,
  DocumentSnapshot,
  MissingDocument,
  Reference,
  batch_result,
)
from retrograde.schemas import BoardIn, CardIn, CardUpdateIn, RankIn
from retrograde.store.base import store_call
from retrograde.store.firestore import FirestoreApiError


class DocumentClient(Protocol):
  def document_name(self, path: str) -> str: ...

  async def batch_get(self, paths: list[str], *, field_paths: list[str] | None = None) -> list[dict[str, Any]]: ...

  async def commit(self, writes: list[dict[str, Any]]) -> None: ...

  async def run_query(self, collection: str, field: str, reference: str) -> list[dict[str, Any]]: ...


class DocumentResourceStore:
  """
  ResourceStore over a document database laid out as flat collections:

    participants/{id}
    boards/{id}   owner -> participants/{id}
    ranks/{id}    board -> boards/{id}
    cards/{id}    rank  -> ranks/{id}

  Deletes remove single documents; children of a deleted board stay
  behind but can no longer be reached through a guarded path.
  """

  transport_errors = (httpx.HTTPError, FirestoreApiError)

  def __init__(self, client: DocumentClient, *, timeout: float = 5.0) -> None:
    self.client = client
    self.timeout = timeout

  def _reference_name(self, ref: Reference) -> str:
    return self.client.document_name(ref.path)

  async def _lookup(
    self, collection: str, kind: str, id: str, *, field_paths: list[str] | None = None
  ) -> DocumentSnapshot | MissingDocument:
    # ids never address nested collections
    if not id or "/" in id:
      raise NotFound(kind, id)
    results = await self.client.batch_get([f"{collection}/{id}"], field_paths=field_paths)
    for payload in results:
      record = batch_result(payload)
      if record is not None:
        return record
    raise StoreError(f"batch lookup returned no result for {collection}/{id}")

  async def _children(self, collection: str, field: str, parent: Reference) -> list[DocumentSnapshot]:
    results = await self.client.run_query(collection, field, self._reference_name(parent))
    # entries without a document only report progress
    return [DocumentSnapshot.from_api(r["document"]) for r in results if r.get("document")]

  async def _create(self, collection: str, values: dict[str, Any]) -> str:
    id = new_id()
    await self.client.commit(
      [
        {
          "update": {
            "name": self.client.document_name(f"{collection}/{id}"),
            "fields": document_fields(values, self._reference_name),
          },
          "currentDocument": {"exists": False},
        }
      ]
    )
    return id

  async def _update(self, collection: str, id: str, values: dict[str, Any]) -> None:
    if not values:
      return
    await self.client.commit(
      [
        {
          "update": {
            "name": self.client.document_name(f"{collection}/{id}"),
            "fields": document_fields(values, self._reference_name),
          },
          "updateMask": {"fieldPaths": sorted(values)},
          "currentDocument": {"exists": True},
        }
      ]
    )

  async def _delete(self, collection: str, id: str) -> None:
    await self.client.commit([{"delete": self.client.document_name(f"{collection}/{id}")}])

  @store_call
  async def get_participant(self, participant_id: str) -> Participant:
    return participant_from(await self._lookup(PARTICIPANTS, "participant", participant_id))

  @store_call
  async def get_board(self, board_id: str) -> Board:
    return board_from(await self._lookup(BOARDS, "board", board_id))

  @store_call
  async def get_rank(self, rank_id: str) -> Rank:
    return rank_from(await self._lookup(RANKS, "rank", rank_id))

  @store_call
  async def get_card(self, card_id: str) -> Card:
    return card_from(await self._lookup(CARDS, "card", card_id))

  @store_call
  async def board_accepts_cards(self, board_id: str) -> bool:
    return cards_open_from(await self._lookup(BOARDS, "board", board_id, field_paths=["cards_open"]))

  @store_call
  async def list_ranks(self, board_id: str) -> list[Rank]:
    return [rank_from(d) for d in await self._children(RANKS, "board", Reference(BOARDS, board_id))]

  @store_call
  async def list_cards(self, rank_id: str) -> list[Card]:
    return [card_from(d) for d in await self._children(CARDS, "rank", Reference(RANKS, rank_id))]

  @store_call
  async def create_participant(self) -> Participant:
    id = await self._create(PARTICIPANTS, new_participant_values(now=utcnow()))
    return await self.get_participant(id)

  @store_call
  async def create_board(self, owner_id: str, message: BoardIn) -> Board:
    id = await self._create(BOARDS, new_board_values(message, owner_id=owner_id, now=utcnow()))
    return await self.get_board(id)

  @store_call
  async def update_board(self, board_id: str, message: BoardIn) -> Board:
    await self._update(BOARDS, board_id, board_changes(message))
    return await self.get_board(board_id)

  @store_call
  async def delete_board(self, board_id: str) -> None:
    await self._delete(BOARDS, board_id)

  @store_call
  async def create_rank(self, board_id: str, message: RankIn) -> Rank:
    id = await self._create(RANKS, new_rank_values(message, board_id=board_id))
    return await self.get_rank(id)

  @store_call
  async def delete_rank(self, rank_id: str) -> None:
    await self._delete(RANKS, rank_id)

  @store_call
  async def create_card(self, rank_id: str, message: CardIn) -> Card:
    id = await self._create(CARDS, new_card_values(message, rank_id=rank_id))
    return await self.get_card(id)

  @store_call
  async def update_card(self, card_id: str, message: CardUpdateIn) -> Card:
    await self._update(CARDS, card_id, card_changes(message))
    return await self.get_card(card_id)

  @store_call
  async def delete_card(self, card_id: str) -> None:
    await self._delete(CARDS, card_id)
