"""CLI tests: help flags and commands wired to an in-memory store."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from canvas_fs.cli.app import app
from canvas_fs.db import InMemoryNodeStore
from canvas_fs.models import ROOT_NODE_ID

runner = CliRunner()


@pytest.mark.parametrize(
    "args",
    [
        [],
        ["db"],
        ["db", "migrate"],
        ["project"],
        ["project", "create"],
        ["tree"],
        ["tree", "search"],
        ["serve"],
    ],
    ids=["root", "db", "db-migrate", "project", "project-create", "tree", "tree-search", "serve"],
)
def test_short_help_flag(args: list[str]) -> None:
    result = runner.invoke(app, [*args, "-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output


@pytest.fixture
def store() -> Iterator[InMemoryNodeStore]:
    shared = InMemoryNodeStore()
    with (
        patch("canvas_fs.cli.project._get_store", return_value=shared),
        patch("canvas_fs.cli.tree._get_store", return_value=shared),
    ):
        yield shared


def test_project_create_and_list(store: InMemoryNodeStore) -> None:
    result = runner.invoke(app, ["project", "create", "Website", "--owner", "kim"])
    assert result.exit_code == 0, result.output
    assert "Created" in result.output

    [project] = store.projects.values()
    assert project.owner == "kim"
    assert (project.id, ROOT_NODE_ID) in store.nodes

    listed = runner.invoke(app, ["project", "list"])
    assert listed.exit_code == 0
    assert "Website" in listed.output


def test_project_create_rejects_blank_name(store: InMemoryNodeStore) -> None:
    result = runner.invoke(app, ["project", "create", "  "])
    assert result.exit_code == 1
    assert "ValidationError" in result.output


def test_project_delete_requires_confirmation(store: InMemoryNodeStore) -> None:
    runner.invoke(app, ["project", "create", "Doomed"])
    [project_id] = store.projects

    aborted = runner.invoke(app, ["project", "delete", project_id], input="n\n")
    assert aborted.exit_code == 1
    assert store.projects[project_id].is_active

    confirmed = runner.invoke(app, ["project", "delete", project_id, "--yes"])
    assert confirmed.exit_code == 0
    assert not store.projects[project_id].is_active


def test_tree_show_search_and_stats(store: InMemoryNodeStore) -> None:
    runner.invoke(app, ["project", "create", "Demo"])
    [project_id] = store.projects

    shown = runner.invoke(app, ["tree", "show", project_id])
    assert shown.exit_code == 0
    assert "Home/" in shown.output

    found = runner.invoke(app, ["tree", "search", "home", "--type", "folder"])
    assert found.exit_code == 0
    assert "(1 matches)" in found.output

    stats = runner.invoke(app, ["tree", "stats", "--project", project_id])
    assert stats.exit_code == 0
    assert "total_folders" in stats.output


def test_tree_show_unknown_project(store: InMemoryNodeStore) -> None:
    result = runner.invoke(app, ["tree", "show", "nope"])
    assert result.exit_code == 1
    assert "NotFound" in result.output
