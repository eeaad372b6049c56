from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from retrograde.config import settings
from retrograde.deps import get_store, guarded
from retrograde.guards import GuardContext, ParticipantIdentity
from retrograde.schemas import ParticipantOut, participant_out
from retrograde.security import SESSION_COOKIE_NAME, SESSION_TTL_DAYS, sign_participant_id
from retrograde.store.base import ResourceStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/participants", tags=["participants"])


@router.post("", response_model=ParticipantOut)
async def create_participant(response: Response, store: ResourceStore = Depends(get_store)) -> ParticipantOut:
  participant = await store.create_participant()
  response.set_cookie(
    key=SESSION_COOKIE_NAME,
    value=sign_participant_id(participant.id),
    httponly=True,
    secure=settings.cookie_secure,
    samesite="lax",
    domain=settings.cookie_domain or None,
    max_age=int(SESSION_TTL_DAYS * 86400),
    path="/",
  )
  logger.info("provisioned participant %s", participant.id)
  return participant_out(participant)


@router.get("/me", response_model=ParticipantOut)
async def get_me(ctx: GuardContext = Depends(guarded(ParticipantIdentity()))) -> ParticipantOut:
  return participant_out(ctx.participant)
