from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from retrograde.deps import get_store, guarded
from retrograde.guards import BoardExists, BoardOwnership, GuardContext, ParticipantIdentity
from retrograde.schemas import BoardIn, BoardOut, board_out
from retrograde.store.base import ResourceStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/boards", tags=["boards"])

_participant = guarded(ParticipantIdentity())
_board_reader = guarded(ParticipantIdentity(), BoardExists())
_board_owner = guarded(ParticipantIdentity(), BoardExists(), BoardOwnership())


@router.post("", response_model=BoardOut)
async def create_board(
  payload: BoardIn,
  ctx: GuardContext = Depends(_participant),
  store: ResourceStore = Depends(get_store),
) -> BoardOut:
  b = await store.create_board(ctx.participant.id, payload)
  logger.info("board %s created by %s", b.id, ctx.participant.id)
  return board_out(b, ctx.participant)


@router.get("/{board_id}", response_model=BoardOut)
async def get_board(ctx: GuardContext = Depends(_board_reader)) -> BoardOut:
  return board_out(ctx.board, ctx.participant)


@router.patch("/{board_id}", response_model=BoardOut)
async def update_board(
  payload: BoardIn,
  ctx: GuardContext = Depends(_board_owner),
  store: ResourceStore = Depends(get_store),
) -> BoardOut:
  b = await store.update_board(ctx.board.id, payload)
  return board_out(b, ctx.participant)


@router.delete("/{board_id}")
async def delete_board(ctx: GuardContext = Depends(_board_owner), store: ResourceStore = Depends(get_store)) -> dict:
  await store.delete_board(ctx.board.id)
  logger.info("board %s deleted by %s", ctx.board.id, ctx.participant.id)
  return {"ok": True}
