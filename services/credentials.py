"""Resolution of per-session write credentials."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, MutableMapping, Optional, Union

from models.feeds import SessionCredential
from services.errors import CredentialMissing, NotOwner

logger = logging.getLogger(__name__)

REGISTRATION_SESSION_KEY = "response_json"


@dataclass(frozen=True)
class CredentialCheck:
    """Outcome of checking a session against the feed a route targets."""

    credential: Optional[SessionCredential] = None
    failure: Optional[Union[CredentialMissing, NotOwner]] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.credential is not None


def _parse_registration(payload: Any) -> SessionCredential:
    if not isinstance(payload, Mapping):
        raise CredentialMissing()
    feed_id = payload.get("feed_id")
    write_key = payload.get("apikey")
    if feed_id is None or isinstance(feed_id, bool) or not isinstance(write_key, str) or not write_key:
        raise CredentialMissing()
    try:
        return SessionCredential(feed_id=int(feed_id), write_key=write_key)
    except (TypeError, ValueError) as exc:
        raise CredentialMissing() from exc


def extract(session: Mapping[str, Any]) -> SessionCredential:
    """Return the credential left in ``session`` by a successful registration."""
    return _parse_registration(session.get(REGISTRATION_SESSION_KEY))


def authorize(session: Mapping[str, Any], feed_id: int) -> CredentialCheck:
    try:
        credential = extract(session)
    except CredentialMissing as exc:
        return CredentialCheck(failure=exc)
    if credential.feed_id != feed_id:
        logger.info("Session does not own the requested feed", extra={"feed_id": feed_id})
        return CredentialCheck(failure=NotOwner())
    return CredentialCheck(credential=credential)


def store_registration(session: MutableMapping[str, Any], payload: Any) -> SessionCredential:
    """Validate an activation response and keep it for later writes.

    The session is only touched once the payload is known to be usable.
    """
    credential = _parse_registration(payload)
    session[REGISTRATION_SESSION_KEY] = {
        "feed_id": credential.feed_id,
        "apikey": credential.write_key,
    }
    return credential
