"""
Canonical, storage-independent entities.

Every entity is built by ``retrograde.normalize`` from a raw record of
either backing store; nothing else constructs them from persisted data.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class Participant(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str


class Board(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  name: str
  cards_open: bool
  voting_open: bool
  # "" for boards written before the ice breaker prompt existed
  ice_breaking: str
  # unix seconds
  created_at: int
  owner_id: str
  data: Any


class Rank(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  board_id: str
  name: str


class Card(BaseModel):
  model_config = ConfigDict(frozen=True)

  id: str
  rank_id: str
  name: str
  # "" for cards written without a description
  description: str
