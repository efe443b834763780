"""compass-publish entry point.

Builds the per-run collaborators (HTTP client, storage client, Ceramic
session) from settings, runs the orchestrator once and maps the outcome to
an exit code:

    0  success or no-op
    1  fatal publish error
    2  configuration error
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from compass_publish import __version__
from compass_publish.identity import CeramicSession, IdentityRegistryClient
from compass_publish.models import PublishedModel
from compass_publish.orchestrator import Fatal, NoOp, Outcome, PublishOrchestrator, Success
from compass_publish.primitives.errors import ConfigurationError
from compass_publish.primitives.http_client import HttpClientPrimitive
from compass_publish.runtime.config import Settings, get_settings
from compass_publish.runtime.context import load_event_payload, resolve_context
from compass_publish.storage import ContentUploader, Web3StorageClient, get_files_from_path

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compass-publish",
        description="Upload gitbook files and attach their cid to a dCompass project",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--path",
        help="File or directory to upload (default: GITBOOK_PATH)",
    )
    parser.add_argument(
        "--project-id",
        help="Target project stream id (default: DCOMPASS_PROJECT_ID)",
    )
    parser.add_argument(
        "--event-path",
        help="GitHub event payload file (default: GITHUB_EVENT_PATH)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    update: Dict[str, Any] = {}
    if args.path:
        update["gitbook_path"] = Path(args.path)
    if args.project_id:
        update["dcompass_project_id"] = args.project_id
    if args.event_path:
        update["github_event_path"] = Path(args.event_path)
    return settings.model_copy(update=update) if update else settings


async def publish(settings: Settings, http: Optional[HttpClientPrimitive] = None) -> Outcome:
    """Wire up the collaborators for one run and execute it.

    Raises:
        ConfigurationError: If the published model, a definition alias or the
            DID key is unusable. Raised before anything is uploaded.
    """
    http = http or HttpClientPrimitive(timeout=settings.http_timeout)
    try:
        model = PublishedModel.load(settings.published_model_path)
        model.definition_id(settings.projects_alias)

        session = CeramicSession.authenticate(settings.did_key, settings.ceramic_node_url, http)
        registry = IdentityRegistryClient(session, model, settings.also_known_as_definition)
        storage = Web3StorageClient(http, settings.web3storage_token, settings.web3storage_endpoint)

        orchestrator = PublishOrchestrator(
            uploader=ContentUploader(storage),
            context_resolver=lambda: resolve_context(load_event_payload(settings.github_event_path)),
            registry=registry,
            project_id=settings.dcompass_project_id,
            namespace_key=settings.projects_alias,
            files_loader=lambda: get_files_from_path(settings.gitbook_path),
        )
        return await orchestrator.run()
    finally:
        await http.close()


def summarize(outcome: Outcome) -> Dict[str, Any]:
    if isinstance(outcome, Success):
        return {
            "status": "success",
            "cid": outcome.cid,
            "projects": len(outcome.collection.projects),
        }
    if isinstance(outcome, NoOp):
        return {"status": "noop", "reason": outcome.reason.value, "cid": outcome.cid}
    return {
        "status": "fatal",
        "error": type(outcome.error).__name__,
        "message": outcome.error.message,
    }


def exit_code(outcome: Outcome) -> int:
    return EXIT_FATAL if isinstance(outcome, Fatal) else EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="[%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = apply_overrides(get_settings(), args)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG

    if not args.debug:
        logging.getLogger().setLevel(settings.log_level.upper())

    try:
        outcome = asyncio.run(publish(settings))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        return EXIT_CONFIG

    print(json.dumps(summarize(outcome), indent=2))
    return exit_code(outcome)


if __name__ == "__main__":
    sys.exit(main())
