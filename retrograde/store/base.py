from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from retrograde.entities import Board, Card, Participant, Rank
from retrograde.errors import RetrogradeError, StoreError
from retrograde.schemas import BoardIn, CardIn, CardUpdateIn, RankIn

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceStore(Protocol):
  """
  Point reads, child listings and the few writes the handlers need, over
  one backing store.

  Every call is independent: no caching, no transaction spanning calls.
  Lookups fail with ``NotFound``; transport faults and timeouts surface as
  ``StoreError``; unreadable records as a ``NormalizationError``.
  """

  async def get_participant(self, participant_id: str) -> Participant: ...

  async def get_board(self, board_id: str) -> Board: ...

  async def get_rank(self, rank_id: str) -> Rank: ...

  async def get_card(self, card_id: str) -> Card: ...

  async def board_accepts_cards(self, board_id: str) -> bool: ...

  async def list_ranks(self, board_id: str) -> list[Rank]: ...

  async def list_cards(self, rank_id: str) -> list[Card]: ...

  async def create_participant(self) -> Participant: ...

  async def create_board(self, owner_id: str, message: BoardIn) -> Board: ...

  async def update_board(self, board_id: str, message: BoardIn) -> Board: ...

  async def delete_board(self, board_id: str) -> None: ...

  async def create_rank(self, board_id: str, message: RankIn) -> Rank: ...

  async def delete_rank(self, rank_id: str) -> None: ...

  async def create_card(self, rank_id: str, message: CardIn) -> Card: ...

  async def update_card(self, card_id: str, message: CardUpdateIn) -> Card: ...

  async def delete_card(self, card_id: str) -> None: ...


def store_call(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
  """
  Bound a store method by the store's timeout and translate its transport
  faults (``self.transport_errors``) into ``StoreError``.
  """

  @functools.wraps(fn)
  async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
    try:
      return await asyncio.wait_for(fn(self, *args, **kwargs), timeout=self.timeout)
    except RetrogradeError:
      raise
    except asyncio.TimeoutError as exc:
      logger.warning("%s.%s timed out after %ss", type(self).__name__, fn.__name__, self.timeout)
      raise StoreError(f"{fn.__name__} timed out") from exc
    except self.transport_errors as exc:
      logger.warning("%s.%s failed: %s", type(self).__name__, fn.__name__, exc)
      raise StoreError(f"{fn.__name__} failed") from exc

  return wrapper
