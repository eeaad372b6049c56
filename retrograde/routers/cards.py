from __future__ import annotations

from fastapi import APIRouter, Depends

from retrograde.deps import get_store, guarded
from retrograde.guards import (
  BoardExists,
  BoardOwnership,
  CardInRank,
  CardsAcceptingWrites,
  GuardContext,
  ParticipantIdentity,
  RankInBoard,
)
from retrograde.schemas import CardIn, CardOut, CardUpdateIn, card_out
from retrograde.store.base import ResourceStore

router = APIRouter(prefix="/boards/{board_id}/ranks/{rank_id}/cards", tags=["cards"])

# any participant may post while the board accepts cards; edits are owner-only
_card_poster = guarded(ParticipantIdentity(), BoardExists(), RankInBoard(), CardsAcceptingWrites())
_rank_reader = guarded(ParticipantIdentity(), BoardExists(), RankInBoard())
_card_reader = guarded(ParticipantIdentity(), BoardExists(), RankInBoard(), CardInRank())
_card_owner = guarded(ParticipantIdentity(), BoardExists(), RankInBoard(), CardInRank(), BoardOwnership())


@router.post("", response_model=CardOut)
async def create_card(
  board_id: str,
  rank_id: str,
  payload: CardIn,
  ctx: GuardContext = Depends(_card_poster),
  store: ResourceStore = Depends(get_store),
) -> CardOut:
  return card_out(await store.create_card(ctx.rank.id, payload))


@router.get("", response_model=list[CardOut])
async def list_cards(
  board_id: str,
  rank_id: str,
  ctx: GuardContext = Depends(_rank_reader),
  store: ResourceStore = Depends(get_store),
) -> list[CardOut]:
  return [card_out(c) for c in await store.list_cards(ctx.rank.id)]


@router.get("/{card_id}", response_model=CardOut)
async def get_card(board_id: str, rank_id: str, card_id: str, ctx: GuardContext = Depends(_card_reader)) -> CardOut:
  return card_out(ctx.card)


@router.patch("/{card_id}", response_model=CardOut)
async def update_card(
  board_id: str,
  rank_id: str,
  card_id: str,
  payload: CardUpdateIn,
  ctx: GuardContext = Depends(_card_owner),
  store: ResourceStore = Depends(get_store),
) -> CardOut:
  return card_out(await store.update_card(ctx.card.id, payload))


@router.delete("/{card_id}")
async def delete_card(
  board_id: str,
  rank_id: str,
  card_id: str,
  ctx: GuardContext = Depends(_card_owner),
  store: ResourceStore = Depends(get_store),
) -> dict:
  await store.delete_card(ctx.card.id)
  return {"ok": True}
