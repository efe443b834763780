"""Pydantic models for the publish workflow.

Registry documents are treated as values: a fetched ProjectCollection is
never mutated, updates produce a new collection. Project records are held
as the raw values read from the registry so that every project other than
the target passes through a read-modify-write unchanged.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError

from compass_publish.primitives.errors import ConfigurationError

CERAMIC_URL_PREFIX = "ceramic://"


# CI context


class Actor(BaseModel):
    """Commit author taken from the CI event payload."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None


class RunContext(BaseModel):
    """Triggering actors and the owning account of the repository."""

    actors: List[Actor]
    repository_owner: str


# Identity profile


class LinkedAccount(BaseModel):
    """External account claimed by a decentralized identifier."""

    model_config = ConfigDict(extra="allow")

    host: str
    id: str


# Registry documents


class Project(RootModel[Any]):
    """A project record inside the shared collection document.

    The stored value is kept as-is, key order included. Entries without a
    string id (or that are not objects at all) are carried through untouched
    and never match a lookup.
    """

    @property
    def id(self) -> Optional[str]:
        value = self.root.get("id") if isinstance(self.root, dict) else None
        return value if isinstance(value, str) else None

    @property
    def gitbook_cid(self) -> Optional[str]:
        return self.root.get("gitbookCid") if isinstance(self.root, dict) else None

    def to_document(self) -> Any:
        """The record in the registry's wire form."""
        return copy.deepcopy(self.root)

    def with_gitbook_cid(self, cid: str) -> "Project":
        """Return a copy of this project pointing at a new content identifier.

        An existing gitbookCid key keeps its position; a new one goes last.
        """
        document = self.to_document()
        document["gitbookCid"] = cid
        return Project(document)


class ProjectCollection(BaseModel):
    """All projects for one authenticated identity namespace."""

    model_config = ConfigDict(extra="allow")

    projects: List[Project] = Field(default_factory=list)

    def find(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(exclude={"projects"}, exclude_unset=True)
        document["projects"] = [p.to_document() for p in self.projects]
        return document


# Deployed data model


class PublishedModel(BaseModel):
    """Aliases of a deployed data model (the content of model.json)."""

    schemas: Dict[str, str] = Field(default_factory=dict)
    definitions: Dict[str, str] = Field(default_factory=dict)
    tiles: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> "PublishedModel":
        """Load model aliases from a JSON file.

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            return cls.model_validate(data)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Published model not found: {path}", field="published_model_path") from e
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid published model {path}: {e}", field="published_model_path") from e

    def definition_id(self, alias: str) -> str:
        """Definition stream id for an alias.

        Raises:
            ConfigurationError: If the alias is not part of the model.
        """
        definition = self.definitions.get(alias)
        if not definition:
            raise ConfigurationError(f"Unknown definition alias: {alias}", field=alias)
        return definition


# Backend responses


class StreamState(BaseModel):
    """A Ceramic stream as returned by the HTTP API."""

    stream_id: str
    content: Any = None
    controllers: List[str] = Field(default_factory=list)
    schema_ref: Optional[str] = None
    log: List[str] = Field(default_factory=list)

    @classmethod
    def from_response(cls, body: Dict[str, Any]) -> "StreamState":
        state = body.get("state") or {}
        metadata = state.get("metadata") or {}
        log = [entry["cid"] if isinstance(entry, dict) else entry for entry in state.get("log") or []]
        return cls(
            stream_id=body.get("streamId", ""),
            content=state.get("content"),
            controllers=metadata.get("controllers") or [],
            schema_ref=metadata.get("schema"),
            log=log,
        )

    @property
    def genesis_cid(self) -> Optional[str]:
        return self.log[0] if self.log else None

    @property
    def tip(self) -> Optional[str]:
        return self.log[-1] if self.log else None


class StorageStatus(BaseModel):
    """Pin and deal status of an upload as reported by web3.storage."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    cid: str
    dag_size: Optional[int] = Field(default=None, alias="dagSize")
    created: Optional[str] = None
    pins: List[Dict[str, Any]] = Field(default_factory=list)
    deals: List[Dict[str, Any]] = Field(default_factory=list)


def strip_ceramic_url(value: str) -> str:
    """ceramic://<id> -> <id>; plain ids pass through."""
    if value.startswith(CERAMIC_URL_PREFIX):
        return value[len(CERAMIC_URL_PREFIX):]
    return value
