"""Shared fixtures for all tests."""

import os
import pytest

from gha_taint.parser import parse_workflow
from gha_taint.rules import run_all_rules


# tests/fixtures is laid out like a repository root
FIXTURES_ROOT = os.path.join(os.path.dirname(__file__), "fixtures")
FIXTURES_DIR = os.path.join(FIXTURES_ROOT, ".github", "workflows")


class SingleFileClient:
    """Repository client that lists exactly one fixture file."""

    def __init__(self, path, root=FIXTURES_ROOT):
        self.path = path
        self.root = root
        self.reads = []

    def list_files(self):
        return [self.path]

    def get_file_content(self, path):
        self.reads.append(path)
        with open(os.path.join(self.root, path), "rb") as f:
            return f.read()


class InMemoryClient:
    """Repository client serving files from a dict of path -> text."""

    def __init__(self, files):
        self.files = files

    def list_files(self):
        return list(self.files)

    def get_file_content(self, path):
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path].encode("utf-8")


def workflow_path(name):
    """Repository-relative path of a fixture workflow."""
    return f".github/workflows/{name}"


@pytest.fixture
def fixtures_root():
    """Path to the fixture repository root."""
    return FIXTURES_ROOT


@pytest.fixture
def fixtures_dir():
    """Path to the fixtures workflow directory."""
    return FIXTURES_DIR


@pytest.fixture
def load_fixture():
    """Parse a fixture workflow by file name."""
    def _load(name):
        return parse_workflow(os.path.join(FIXTURES_DIR, name))
    return _load


@pytest.fixture
def fixture_findings(load_fixture):
    """All findings for a fixture workflow by file name."""
    def _findings(name):
        return run_all_rules(load_fixture(name))
    return _findings
