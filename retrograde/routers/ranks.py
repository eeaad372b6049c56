from __future__ import annotations

from fastapi import APIRouter, Depends

from retrograde.deps import get_store, guarded
from retrograde.guards import BoardExists, BoardOwnership, GuardContext, ParticipantIdentity, RankInBoard
from retrograde.schemas import RankIn, RankOut, rank_out
from retrograde.store.base import ResourceStore

router = APIRouter(prefix="/boards/{board_id}/ranks", tags=["ranks"])

_board_owner = guarded(ParticipantIdentity(), BoardExists(), BoardOwnership())
_board_reader = guarded(ParticipantIdentity(), BoardExists())
_rank_reader = guarded(ParticipantIdentity(), BoardExists(), RankInBoard())
_rank_owner = guarded(ParticipantIdentity(), BoardExists(), RankInBoard(), BoardOwnership())


@router.post("", response_model=RankOut)
async def create_rank(
  board_id: str,
  payload: RankIn,
  ctx: GuardContext = Depends(_board_owner),
  store: ResourceStore = Depends(get_store),
) -> RankOut:
  return rank_out(await store.create_rank(ctx.board.id, payload))


@router.get("", response_model=list[RankOut])
async def list_ranks(
  board_id: str,
  ctx: GuardContext = Depends(_board_reader),
  store: ResourceStore = Depends(get_store),
) -> list[RankOut]:
  return [rank_out(r) for r in await store.list_ranks(ctx.board.id)]


@router.get("/{rank_id}", response_model=RankOut)
async def get_rank(board_id: str, rank_id: str, ctx: GuardContext = Depends(_rank_reader)) -> RankOut:
  return rank_out(ctx.rank)


@router.delete("/{rank_id}")
async def delete_rank(
  board_id: str,
  rank_id: str,
  ctx: GuardContext = Depends(_rank_owner),
  store: ResourceStore = Depends(get_store),
) -> dict:
  await store.delete_rank(ctx.rank.id)
  return {"ok": True}
