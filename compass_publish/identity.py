"""Identity registry client over the Ceramic HTTP API.

Identity model:
- Each DID owns an IDX index: a deterministic tile (family "IDX", controller
  = DID) mapping definition stream ids to record stream urls.
- A record is looked up through its definition id. Collection aliases such
  as "@dCompass/appprojects" come from the published model; "alsoKnownAs"
  comes from the core identity model unless the published model overrides it.

Reads are plain stream loads. Writes go out as commits signed by the run's
did:key. One CeramicSession is built per run and passed in explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from compass_publish.models import (
    CERAMIC_URL_PREFIX,
    LinkedAccount,
    ProjectCollection,
    PublishedModel,
    StreamState,
    strip_ceramic_url,
)
from compass_publish.primitives.errors import (
    ConfigurationError,
    RegistryError,
    RegistryReadError,
    RegistryWriteError,
)
from compass_publish.primitives.http_client import HttpClientPrimitive, HttpResult
from compass_publish.primitives.signing import DIDKey, b64url_encode, canonical_json
from compass_publish.runtime.config import CORE_ALSO_KNOWN_AS_DEFINITION

logger = logging.getLogger(__name__)

TILE_STREAM_TYPE = 0
IDX_FAMILY = "IDX"
ALSO_KNOWN_AS_ALIAS = "alsoKnownAs"


@dataclass
class CeramicSession:
    """Authenticated connection to a Ceramic node, acting as one DID."""

    http: HttpClientPrimitive
    node_url: str
    did: DIDKey

    @classmethod
    def authenticate(cls, seed_hex: str, node_url: str, http: HttpClientPrimitive) -> "CeramicSession":
        """Build the session identity from a hex Ed25519 seed."""
        did = DIDKey.from_seed_hex(seed_hex)
        logger.info(f"Authenticated as {did.id}")
        return cls(http=http, node_url=node_url.rstrip("/"), did=did)

    def _url(self, path: str) -> str:
        return f"{self.node_url}/api/v0/{path}"

    def _signed(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "jws": self.did.sign_jws(payload),
            "linkedBlock": b64url_encode(canonical_json(payload).encode("utf-8")),
        }

    async def load_stream(self, stream_id: str) -> StreamState:
        """Load a stream's current state.

        Raises:
            RegistryReadError: If the node is unreachable or the stream cannot be loaded.
        """
        stream_id = strip_ceramic_url(stream_id)
        result = await self.http.get(self._url(f"streams/{stream_id}"))
        return _state_or_raise(result, RegistryReadError, f"Failed to load stream {stream_id}")

    async def load_deterministic(self, controller: str, family: str) -> StreamState:
        """Load (without anchoring or publishing) the deterministic tile for a controller/family."""
        body = {
            "type": TILE_STREAM_TYPE,
            "genesis": {"header": {"controllers": [controller], "family": family}},
            "opts": {"anchor": False, "publish": False},
        }
        result = await self.http.post(self._url("streams"), json_body=body)
        return _state_or_raise(result, RegistryReadError, f"Failed to load {family} tile for {controller}")

    async def create_stream(self, header: Dict[str, Any], content: Any) -> StreamState:
        """Create a tile with signed genesis content."""
        genesis = {"header": header, "data": content}
        body = {
            "type": TILE_STREAM_TYPE,
            "genesis": self._signed(genesis),
            "opts": {"anchor": True, "publish": True},
        }
        result = await self.http.post(self._url("streams"), json_body=body)
        return _state_or_raise(result, RegistryWriteError, "Failed to create record")

    async def replace_content(self, state: StreamState, content: Any) -> StreamState:
        """Replace a tile's whole content with a signed update commit."""
        commit = {
            "header": {},
            "data": [{"op": "replace", "path": "", "value": content}],
            "prev": state.tip,
            "id": state.genesis_cid,
        }
        body = {
            "streamId": state.stream_id,
            "commit": self._signed(commit),
            "opts": {"anchor": True, "publish": True},
        }
        result = await self.http.post(self._url("commits"), json_body=body)
        return _state_or_raise(result, RegistryWriteError, f"Failed to update stream {state.stream_id}")


def _state_or_raise(result: HttpResult, error_cls: Type[RegistryError], message: str) -> StreamState:
    if not result.success or not isinstance(result.body, dict):
        raise error_cls(f"{message}: {result.error or 'unexpected response'}", status_code=result.status_code)
    return StreamState.from_response(result.body)


class IdentityRegistryClient:
    """Linked-account lookups and keyed collection read/write for one session."""

    def __init__(
        self,
        session: CeramicSession,
        model: PublishedModel,
        also_known_as_definition: Optional[str] = CORE_ALSO_KNOWN_AS_DEFINITION,
    ):
        """Bind a session to a published model.

        alsoKnownAs belongs to the core identity model, so the published model
        only overrides it; otherwise `also_known_as_definition` is used.

        Raises:
            ConfigurationError: If no alsoKnownAs definition is available.
        """
        self.session = session
        self.model = model
        self.also_known_as_definition = model.definitions.get(ALSO_KNOWN_AS_ALIAS) or also_known_as_definition
        if not self.also_known_as_definition:
            raise ConfigurationError(
                f"No definition for {ALSO_KNOWN_AS_ALIAS}", field="also_known_as_definition"
            )

    async def _index_state(self, did: str) -> StreamState:
        return await self.session.load_deterministic(did, IDX_FAMILY)

    async def _record_state(self, did: str, definition_id: str) -> Optional[StreamState]:
        index = (await self._index_state(did)).content or {}
        ref = index.get(definition_id) if isinstance(index, dict) else None
        if not ref:
            return None
        return await self.session.load_stream(ref)

    async def resolve_linked_accounts(self, identity_id: str) -> List[LinkedAccount]:
        """Accounts published under a DID's alsoKnownAs record.

        A missing record or an empty account list is a normal outcome and
        yields [].
        """
        record = await self._record_state(identity_id, self.also_known_as_definition)
        if record is None or not isinstance(record.content, dict):
            return []

        accounts = []
        for entry in record.content.get("accounts") or []:
            try:
                accounts.append(LinkedAccount.model_validate(entry))
            except ValidationError:
                logger.debug(f"Skipping malformed linked account for {identity_id}: {entry!r}")
        return accounts

    async def get_collection(self, namespace_key: str) -> ProjectCollection:
        """Read the session DID's collection; a missing record is an empty collection."""
        record = await self._record_state(self.session.did.id, self.model.definition_id(namespace_key))
        if record is None or record.content is None:
            return ProjectCollection(projects=[])
        try:
            return ProjectCollection.model_validate(record.content)
        except ValidationError as e:
            raise RegistryReadError(f"Malformed collection {namespace_key}: {e}", cause=e) from e

    async def set_collection(self, namespace_key: str, collection: ProjectCollection) -> ProjectCollection:
        """Write the full collection, replacing the previous document.

        Returns:
            The committed collection as reported by the node.

        Raises:
            RegistryWriteError: If any commit is rejected.
        """
        did = self.session.did.id
        document = collection.to_document()
        record = await self._record_state(did, self.model.definition_id(namespace_key))

        if record is not None:
            committed = await self.session.replace_content(record, document)
        else:
            committed = await self._create_record(did, namespace_key, document)

        if committed.content is None:
            return collection
        try:
            return ProjectCollection.model_validate(committed.content)
        except ValidationError as e:
            raise RegistryWriteError(f"Node returned a malformed collection: {e}", cause=e) from e

    async def _create_record(self, did: str, alias: str, document: Dict[str, Any]) -> StreamState:
        definition_id = self.model.definition_id(alias)
        definition = await self.session.load_stream(definition_id)
        header: Dict[str, Any] = {"controllers": [did]}
        schema = definition.content.get("schema") if isinstance(definition.content, dict) else None
        if schema:
            header["schema"] = strip_ceramic_url(schema)

        created = await self.session.create_stream(header, document)
        logger.info(f"Created record {created.stream_id} for {alias}")

        index_state = await self._index_state(did)
        index = dict(index_state.content or {})
        index[definition_id] = f"{CERAMIC_URL_PREFIX}{created.stream_id}"
        await self.session.replace_content(index_state, index)
        return created

    async def load_project_owner(self, project_id: str) -> str:
        """Controlling DID of a project stream.

        Raises:
            RegistryReadError: If the stream cannot be loaded or has no controller.
        """
        state = await self.session.load_stream(project_id)
        if not state.controllers:
            raise RegistryReadError(f"Project {project_id} has no controller")
        return state.controllers[0]
