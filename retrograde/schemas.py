from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from retrograde.entities import Board, Card, Participant, Rank


class ParticipantOut(BaseModel):
  id: str


class BoardIn(BaseModel):
  name: str | None = None
  cardsOpen: bool | None = None
  votingOpen: bool | None = None
  iceBreaking: str | None = None
  data: Any | None = None


class BoardOut(BaseModel):
  id: str
  name: str
  cardsOpen: bool
  votingOpen: bool
  iceBreaking: str
  createdAt: int
  owner: bool
  data: Any


class RankIn(BaseModel):
  name: str = ""


class RankOut(BaseModel):
  id: str
  boardId: str
  name: str


class CardIn(BaseModel):
  name: str
  description: str = ""


class CardUpdateIn(BaseModel):
  name: str | None = None
  description: str | None = None


class CardOut(BaseModel):
  id: str
  rankId: str
  name: str
  description: str


def participant_out(p: Participant) -> ParticipantOut:
  return ParticipantOut(id=p.id)


def board_out(b: Board, viewer: Participant) -> BoardOut:
  return BoardOut(
    id=b.id,
    name=b.name,
    cardsOpen=b.cards_open,
    votingOpen=b.voting_open,
    iceBreaking=b.ice_breaking,
    createdAt=b.created_at,
    owner=b.owner_id == viewer.id,
    data=b.data,
  )


def rank_out(r: Rank) -> RankOut:
  return RankOut(id=r.id, boardId=r.board_id, name=r.name)


def card_out(c: Card) -> CardOut:
  return CardOut(id=c.id, rankId=c.rank_id, name=c.name, description=c.description)
