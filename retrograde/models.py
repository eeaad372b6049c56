from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_id() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


class ParticipantRow(Base):
  __tablename__ = "participant"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class BoardRow(Base):
  __tablename__ = "board"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  name: Mapped[str] = mapped_column(String, nullable=False)
  cards_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
  voting_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
  # NULL on rows written before the ice breaker prompt existed
  ice_breaking: Mapped[str | None] = mapped_column(Text, nullable=True)
  data: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
  owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("participant.id"), nullable=False, index=True)
  # explicit creation time; NULL on legacy rows, which fall back to inserted_at
  created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class RankRow(Base):
  __tablename__ = "rank"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  board_id: Mapped[str] = mapped_column(String(36), ForeignKey("board.id"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class CardRow(Base):
  __tablename__ = "card"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  rank_id: Mapped[str] = mapped_column(String(36), ForeignKey("rank.id"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
