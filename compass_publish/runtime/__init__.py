"""compass_publish runtime: configuration and CI context."""

from compass_publish.runtime.config import Settings, get_settings
from compass_publish.runtime.context import load_event_payload, resolve_context

__all__ = [
    "Settings",
    "get_settings",
    "load_event_payload",
    "resolve_context",
]
