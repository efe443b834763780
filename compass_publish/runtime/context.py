"""Context resolver for the triggering GitHub event.

Pure read of the event payload: no network calls, no environment access
beyond the payload file path handed in by the caller.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from compass_publish.models import Actor, RunContext
from compass_publish.primitives.errors import ContextError

logger = logging.getLogger(__name__)


def load_event_payload(event_path: Optional[Path]) -> Dict[str, Any]:
    """Read the event payload GitHub Actions writes to GITHUB_EVENT_PATH.

    Raises:
        ContextError: If no path is configured or the file is not a JSON object.
    """
    if not event_path:
        raise ContextError("GITHUB_EVENT_PATH is not set")
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContextError(f"Event payload not found: {event_path}", cause=e) from e
    except json.JSONDecodeError as e:
        raise ContextError(f"Event payload is not valid JSON: {e}", cause=e) from e
    if not isinstance(payload, dict):
        raise ContextError("Event payload must be a JSON object")
    return payload


def resolve_context(payload: Dict[str, Any]) -> RunContext:
    """Extract commit authors and the repository owner login.

    Raises:
        ContextError: If the payload lacks a commits array or an owner login.
    """
    commits = payload.get("commits")
    if not isinstance(commits, list):
        raise ContextError("Event payload has no commits array")

    actors = []
    for commit in commits:
        author = commit.get("author") if isinstance(commit, dict) else None
        if not isinstance(author, dict):
            raise ContextError("Commit in event payload has no author")
        try:
            actors.append(Actor.model_validate(author))
        except ValidationError as e:
            raise ContextError(f"Malformed commit author: {e}", cause=e) from e

    repository = payload.get("repository") or {}
    owner = repository.get("owner") if isinstance(repository, dict) else None
    login = owner.get("login") if isinstance(owner, dict) else None
    if not isinstance(login, str) or not login:
        raise ContextError("Event payload has no repository.owner.login")

    logger.debug(f"Resolved context: owner={login}, {len(actors)} commit author(s)")
    return RunContext(actors=actors, repository_owner=login)
