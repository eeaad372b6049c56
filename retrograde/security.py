from __future__ import annotations

import hashlib
import hmac

from retrograde.config import settings

SESSION_COOKIE_NAME = "retro_participant"
SESSION_TTL_DAYS = 365


def _participant_digest(participant_id: str) -> str:
  key = (settings.app_secret or "").encode("utf-8")
  return hmac.new(key, participant_id.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_participant_id(participant_id: str) -> str:
  return f"{participant_id}.{_participant_digest(participant_id)}"


def unsign_participant_id(token: str | None) -> str | None:
  t = (token or "").strip()
  participant_id, sep, digest = t.rpartition(".")
  if not sep or not participant_id or not digest:
    return None
  if not hmac.compare_digest(digest, _participant_digest(participant_id)):
    return None
  return participant_id
