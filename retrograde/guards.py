"""
Per-request guard chain.

A request path (``/boards/{board_id}/ranks/{rank_id}/cards/{card_id}``)
is checked by an ordered list of guards. Each guard reads what earlier
guards resolved from the ``GuardContext``, performs at most one store
read, and either returns the context enriched with what it resolved or
raises. The first failure ends the chain.

Rank and card mismatches under the wrong parent report ``NotFound`` so a
caller cannot probe for resources on boards they address incorrectly.
Existence guards always run before ownership/state guards, so a missing
resource reports not-found whoever the caller is.

The chain is an admission gate, not a transaction: a board can close or
change hands between a guard passing and the handler's write.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import ClassVar

from retrograde.entities import Board, Card, Participant, Rank
from retrograde.errors import Forbidden, NotFound
from retrograde.identity import IdentityResolver
from retrograde.store.base import ResourceStore

IDENTITY = "identity"
EXISTENCE = "existence"
ADMISSION = "admission"


@dataclass(frozen=True)
class RequestPath:
  board_id: str | None = None
  rank_id: str | None = None
  card_id: str | None = None


@dataclass(frozen=True)
class GuardContext:
  path: RequestPath
  session_token: str | None = None
  participant: Participant | None = None
  board: Board | None = None
  rank: Rank | None = None
  card: Card | None = None


def _path_id(value: str | None, kind: str) -> str:
  if not value:
    raise NotFound(kind, "")
  return value


class Guard:
  stage: ClassVar[str]
  requires: ClassVar[tuple[str, ...]] = ()
  provides: ClassVar[str | None] = None

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    raise NotImplementedError

  def __repr__(self) -> str:
    return type(self).__name__


class ParticipantIdentity(Guard):
  stage = IDENTITY
  provides = "participant"

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    participant = await IdentityResolver(store).resolve(context.session_token)
    return replace(context, participant=participant)


class BoardExists(Guard):
  stage = EXISTENCE
  provides = "board"

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    board = await store.get_board(_path_id(context.path.board_id, "board"))
    return replace(context, board=board)


class BoardOwnership(Guard):
  stage = ADMISSION
  requires = ("participant", "board")

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    if context.board.owner_id != context.participant.id:
      raise Forbidden("not the board owner")
    return context


class RankInBoard(Guard):
  stage = EXISTENCE
  provides = "rank"

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    board_id = _path_id(context.path.board_id, "board")
    rank_id = _path_id(context.path.rank_id, "rank")
    rank = await store.get_rank(rank_id)
    if rank.board_id != board_id:
      raise NotFound("rank", rank_id)
    return replace(context, rank=rank)


class CardInRank(Guard):
  stage = EXISTENCE
  requires = ("rank",)
  provides = "card"

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    card_id = _path_id(context.path.card_id, "card")
    card = await store.get_card(card_id)
    if card.rank_id != context.rank.id:
      raise NotFound("card", card_id)
    return replace(context, card=card)


class CardsAcceptingWrites(Guard):
  stage = ADMISSION
  requires = ("rank",)

  async def check(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    if not await store.board_accepts_cards(context.rank.board_id):
      raise Forbidden("board is not accepting cards")
    return context


class GuardChain:
  def __init__(self, *guards: Guard) -> None:
    available: set[str] = set()
    admitted = False
    for guard in guards:
      missing = [r for r in guard.requires if r not in available]
      if missing:
        raise ValueError(f"{guard!r} needs {', '.join(missing)} resolved by an earlier guard")
      if guard.stage == EXISTENCE and admitted:
        raise ValueError(f"{guard!r} must run before ownership and state guards")
      if guard.stage == ADMISSION:
        admitted = True
      if guard.provides:
        available.add(guard.provides)
    self.guards = guards

  async def run(self, context: GuardContext, store: ResourceStore) -> GuardContext:
    for guard in self.guards:
      context = await guard.check(context, store)
    return context

  def __repr__(self) -> str:
    return f"GuardChain({', '.join(repr(g) for g in self.guards)})"
