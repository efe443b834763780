"""Shared fixtures for compass_publish tests."""

import json
from typing import Dict, List

import pytest

from compass_publish.models import LinkedAccount, ProjectCollection
from compass_publish.storage import FileSet, LocalFile

from fakes import NAMESPACE


@pytest.fixture
def scenario_collection() -> ProjectCollection:
    return ProjectCollection.model_validate(
        {"projects": [{"id": "p1", "gitbookCid": None}, {"id": "p2", "gitbookCid": "X"}]}
    )


@pytest.fixture
def github_accounts() -> List[LinkedAccount]:
    return [
        LinkedAccount(host="twitter.com", id="cali_tw"),
        LinkedAccount(host="github.com", id="Cali93"),
    ]


@pytest.fixture
def file_set(tmp_path) -> FileSet:
    root = tmp_path / "book"
    root.mkdir()
    (root / "README.md").write_text("# Book\n")
    (root / "SUMMARY.md").write_text("* [Intro](README.md)\n")
    files = [
        LocalFile(path=root / name, name=name, size=(root / name).stat().st_size)
        for name in ("README.md", "SUMMARY.md")
    ]
    return FileSet(files=files, name="book")


@pytest.fixture
def event_payload() -> Dict:
    return {
        "commits": [
            {"id": "abc", "author": {"name": "Cali", "email": "cali@example.com", "username": "Cali93"}},
            {"id": "def", "author": {"name": "Bot", "email": "bot@example.com"}},
        ],
        "repository": {"name": "knowsis", "owner": {"login": "Cali93"}},
    }


@pytest.fixture
def event_file(tmp_path, event_payload):
    path = tmp_path / "event.json"
    path.write_text(json.dumps(event_payload))
    return path


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(
        json.dumps(
            {
                "schemas": {"AppProjects": "ceramic://k3y52schema"},
                "definitions": {
                    NAMESPACE: "kjzl6defprojects",
                    "alsoKnownAs": "kjzl6defaka",
                },
                "tiles": {},
            }
        )
    )
    return path
