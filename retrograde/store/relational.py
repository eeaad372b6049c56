from __future__ import annotations

from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from retrograde.entities import Board, Card, Participant, Rank
from retrograde.errors import NotFound
from retrograde.models import Base, BoardRow, CardRow, ParticipantRow, RankRow, new_id, utcnow
from retrograde.normalize import (
  board_changes,
  board_from,
  card_changes,
  card_from,
  cards_open_from,
  new_board_values,
  new_card_values,
  new_participant_values,
  new_rank_values,
  participant_from,
  rank_from,
  row_values,
)
from retrograde.records import RowRecord
from retrograde.schemas import BoardIn, CardIn, CardUpdateIn, RankIn
from retrograde.store.base import store_call


class SqlResourceStore:
  transport_errors = (SQLAlchemyError, OSError)

  def __init__(self, session: AsyncSession, *, timeout: float = 5.0) -> None:
    self.session = session
    self.timeout = timeout

  async def _row(self, model: type[Base], kind: str, id: str, *columns: Any) -> RowRecord:
    table = model.__table__
    stmt = select(*columns) if columns else select(table)
    res = await self.session.execute(stmt.where(table.c.id == id))
    row = res.mappings().one_or_none()
    if row is None:
      raise NotFound(kind, id)
    return RowRecord(table=table.name, values=dict(row))

  async def _children(self, model: type[Base], parent_column: Any, parent_id: str) -> list[RowRecord]:
    table = model.__table__
    stmt = select(table).where(parent_column == parent_id).order_by(table.c.inserted_at, table.c.id)
    res = await self.session.execute(stmt)
    return [RowRecord(table=table.name, values=dict(row)) for row in res.mappings()]

  async def _insert(self, model: type[Base], values: dict[str, Any]) -> str:
    id = new_id()
    await self.session.execute(insert(model).values(id=id, **row_values(values)))
    await self.session.commit()
    return id

  async def _update(self, model: type[Base], kind: str, id: str, values: dict[str, Any]) -> None:
    if not values:
      return
    table = model.__table__
    res = await self.session.execute(update(table).where(table.c.id == id).values(**row_values(values)))
    if res.rowcount == 0:
      await self.session.rollback()
      raise NotFound(kind, id)
    await self.session.commit()

  @store_call
  async def get_participant(self, participant_id: str) -> Participant:
    return participant_from(await self._row(ParticipantRow, "participant", participant_id))

  @store_call
  async def get_board(self, board_id: str) -> Board:
    return board_from(await self._row(BoardRow, "board", board_id))

  @store_call
  async def get_rank(self, rank_id: str) -> Rank:
    return rank_from(await self._row(RankRow, "rank", rank_id))

  @store_call
  async def get_card(self, card_id: str) -> Card:
    return card_from(await self._row(CardRow, "card", card_id))

  @store_call
  async def board_accepts_cards(self, board_id: str) -> bool:
    return cards_open_from(await self._row(BoardRow, "board", board_id, BoardRow.cards_open))

  @store_call
  async def list_ranks(self, board_id: str) -> list[Rank]:
    return [rank_from(r) for r in await self._children(RankRow, RankRow.board_id, board_id)]

  @store_call
  async def list_cards(self, rank_id: str) -> list[Card]:
    return [card_from(r) for r in await self._children(CardRow, CardRow.rank_id, rank_id)]

  @store_call
  async def create_participant(self) -> Participant:
    id = await self._insert(ParticipantRow, new_participant_values(now=utcnow()))
    return await self.get_participant(id)

  @store_call
  async def create_board(self, owner_id: str, message: BoardIn) -> Board:
    id = await self._insert(BoardRow, new_board_values(message, owner_id=owner_id, now=utcnow()))
    return await self.get_board(id)

  @store_call
  async def update_board(self, board_id: str, message: BoardIn) -> Board:
    await self._update(BoardRow, "board", board_id, board_changes(message))
    return await self.get_board(board_id)

  @store_call
  async def delete_board(self, board_id: str) -> None:
    ranks = select(RankRow.id).where(RankRow.board_id == board_id)
    await self.session.execute(delete(CardRow).where(CardRow.rank_id.in_(ranks)))
    await self.session.execute(delete(RankRow).where(RankRow.board_id == board_id))
    await self.session.execute(delete(BoardRow).where(BoardRow.id == board_id))
    await self.session.commit()

  @store_call
  async def create_rank(self, board_id: str, message: RankIn) -> Rank:
    id = await self._insert(RankRow, new_rank_values(message, board_id=board_id))
    return await self.get_rank(id)

  @store_call
  async def delete_rank(self, rank_id: str) -> None:
    await self.session.execute(delete(CardRow).where(CardRow.rank_id == rank_id))
    await self.session.execute(delete(RankRow).where(RankRow.id == rank_id))
    await self.session.commit()

  @store_call
  async def create_card(self, rank_id: str, message: CardIn) -> Card:
    id = await self._insert(CardRow, new_card_values(message, rank_id=rank_id))
    return await self.get_card(id)

  @store_call
  async def update_card(self, card_id: str, message: CardUpdateIn) -> Card:
    await self._update(CardRow, "card", card_id, card_changes(message))
    return await self.get_card(card_id)

  @store_call
  async def delete_card(self, card_id: str) -> None:
    await self.session.execute(delete(CardRow).where(CardRow.id == card_id))
    await self.session.commit()
