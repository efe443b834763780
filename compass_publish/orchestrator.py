"""Publish orchestrator: upload, authorize, upsert.

Stages run strictly in order, each one gating the next:

1. upload the file set                        (TransferError -> Fatal)
2. resolve the CI context                     (ContextError  -> Fatal)
3. load the project's controlling DID
4. authorize: the owner's github.com account must be the repository owner
5. load the collection and find the project   (absent -> NoOp)
6. upsert the new content identifier          (pure value transformation)
7. commit the collection                      (RegistryWriteError -> Fatal)

There is no optimistic concurrency guard between 5 and 7; the last writer
wins. A failure at 7 leaves the upload in place without a registry
reference.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Union

from compass_publish.models import LinkedAccount, ProjectCollection, RunContext
from compass_publish.primitives.errors import PublishError
from compass_publish.storage import FileSet

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"


class NoOpReason(str, Enum):
    NO_LINKED_ACCOUNTS = "no_linked_accounts"
    NO_GITHUB_ACCOUNT = "no_github_account"
    OWNER_MISMATCH = "owner_mismatch"
    PROJECT_NOT_FOUND = "project_not_found"


@dataclass
class Success:
    collection: ProjectCollection
    cid: str


@dataclass
class NoOp:
    reason: NoOpReason
    cid: Optional[str] = None


@dataclass
class Fatal:
    error: PublishError


Outcome = Union[Success, NoOp, Fatal]


class Uploader(Protocol):
    async def upload(self, files: FileSet) -> str: ...


class RegistryClient(Protocol):
    async def resolve_linked_accounts(self, identity_id: str) -> List[LinkedAccount]: ...

    async def get_collection(self, namespace_key: str) -> ProjectCollection: ...

    async def set_collection(self, namespace_key: str, collection: ProjectCollection) -> ProjectCollection: ...

    async def load_project_owner(self, project_id: str) -> str: ...


def find_github_account(accounts: List[LinkedAccount]) -> Optional[LinkedAccount]:
    return next((a for a in accounts if a.host == GITHUB_HOST), None)


def authorize(accounts: List[LinkedAccount], repository_owner: str) -> Optional[NoOpReason]:
    """Check the owner's linked accounts against the repository owner login.

    Returns:
        None when authorized, otherwise the reason the run ends as a no-op.
    """
    if not accounts:
        return NoOpReason.NO_LINKED_ACCOUNTS
    github_account = find_github_account(accounts)
    if github_account is None:
        return NoOpReason.NO_GITHUB_ACCOUNT
    if repository_owner != github_account.id:
        return NoOpReason.OWNER_MISMATCH
    return None


def upsert_project(collection: ProjectCollection, project_id: str, cid: str) -> Optional[ProjectCollection]:
    """Return a new collection whose project `project_id` points at `cid`.

    Untouched projects keep their order; the updated project is appended.
    The input collection is not modified.

    Returns:
        The new collection, or None if the project is not in the collection.
    """
    project = collection.find(project_id)
    if project is None:
        return None
    remaining = [p for p in collection.projects if p.id != project_id]
    return ProjectCollection(projects=[*remaining, project.with_gitbook_cid(cid)])


class PublishOrchestrator:
    """Runs one authorized publish-and-upsert for a single project."""

    def __init__(
        self,
        uploader: Uploader,
        context_resolver: Callable[[], RunContext],
        registry: RegistryClient,
        project_id: str,
        namespace_key: str,
        files_loader: Callable[[], FileSet],
    ):
        self.uploader = uploader
        self.context_resolver = context_resolver
        self.registry = registry
        self.project_id = project_id
        self.namespace_key = namespace_key
        self.files_loader = files_loader

    async def run(self) -> Outcome:
        try:
            return await self._run()
        except PublishError as e:
            logger.error(f"Publish failed: {type(e).__name__}: {e.message}")
            return Fatal(error=e)

    async def _run(self) -> Outcome:
        logger.info("Stage 1/7: uploading files")
        cid = await self.uploader.upload(self.files_loader())

        logger.info("Stage 2/7: resolving CI context")
        context = self.context_resolver()

        logger.info(f"Stage 3/7: loading owner of project {self.project_id}")
        owner = await self.registry.load_project_owner(self.project_id)

        logger.info(f"Stage 4/7: authorizing {context.repository_owner} against {owner}")
        accounts = await self.registry.resolve_linked_accounts(owner)
        reason = authorize(accounts, context.repository_owner)
        if reason is not None:
            logger.info(f"No-op: {reason.value} (owner {owner}, repository owner {context.repository_owner})")
            return NoOp(reason=reason, cid=cid)

        logger.info(f"Stage 5/7: loading collection {self.namespace_key}")
        collection = await self.registry.get_collection(self.namespace_key)

        logger.info(f"Stage 6/7: setting gitbookCid of {self.project_id} to {cid}")
        updated = upsert_project(collection, self.project_id, cid)
        if updated is None:
            logger.info(f"No-op: project {self.project_id} not found in {self.namespace_key}")
            return NoOp(reason=NoOpReason.PROJECT_NOT_FOUND, cid=cid)

        logger.info("Stage 7/7: committing collection")
        committed = await self.registry.set_collection(self.namespace_key, updated)
        logger.info(f"Published {cid} for project {self.project_id}")
        return Success(collection=committed, cid=cid)
