from __future__ import annotations

from retrograde.entities import Participant
from retrograde.errors import NotFound, Unauthenticated
from retrograde.security import unsign_participant_id
from retrograde.store.base import ResourceStore


class IdentityResolver:
  """
  Resolves the calling participant from the session cookie value.

  Only extracts identity: it makes no authorization decision and never
  provisions a participant that does not exist yet.
  """

  def __init__(self, store: ResourceStore) -> None:
    self.store = store

  async def resolve(self, session_token: str | None) -> Participant:
    if not session_token:
      raise Unauthenticated("no session")
    participant_id = unsign_participant_id(session_token)
    if participant_id is None:
      raise Unauthenticated("invalid session")
    try:
      return await self.store.get_participant(participant_id)
    except NotFound as exc:
      raise Unauthenticated("unknown participant") from exc
