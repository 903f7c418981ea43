"""
Tests for the click CLI.
"""

import json
import os

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from cli import cli
from src.bedtime.utils.db_storage import UserStorage
from src.bedtime.utils.repository import DatabaseStoryRepository
from tests.test_constants import FOUR_PARAGRAPHS, TEST_EMAIL, TEST_PASSWORD


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def user(db_path):
    return UserStorage(db_path).create_user(TEST_EMAIL, TEST_PASSWORD, "Sam")


@pytest.fixture
def story(db_path, user):
    repo = DatabaseStoryRepository(db_path=db_path)
    return repo.create(
        {"title": "Moonlight", "content": FOUR_PARAGRAPHS, "images": ["imgA"], "metadata": {}},
        user["id"],
    )


def test_init_db(runner, db_path):
    result = runner.invoke(cli, ["--db", db_path, "init-db"])
    assert result.exit_code == 0
    assert "Database ready" in result.output
    assert os.path.exists(db_path)


def test_create_user(runner, db_path):
    result = runner.invoke(cli, ["--db", db_path, "create-user", TEST_EMAIL, "--name", "Sam", "--password", TEST_PASSWORD])
    assert result.exit_code == 0, result.output
    assert "Created user" in result.output
    assert UserStorage(db_path).verify_credentials(TEST_EMAIL, TEST_PASSWORD) is not None


def test_create_user_duplicate(runner, db_path, user):
    result = runner.invoke(cli, ["--db", db_path, "create-user", TEST_EMAIL, "--password", TEST_PASSWORD])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_create_user_short_password(runner, db_path):
    result = runner.invoke(cli, ["--db", db_path, "create-user", TEST_EMAIL, "--password", "short"])
    assert result.exit_code == 1


def test_list_stories_table(runner, db_path, user, story):
    with patch.dict(os.environ, {"STORY_STORAGE": "database"}):
        result = runner.invoke(cli, ["--db", db_path, "list-stories", "--user-id", user["id"]])
    assert result.exit_code == 0, result.output
    assert story.id in result.output
    assert "Total: 1 stories" in result.output


def test_list_stories_json(runner, db_path, user, story):
    with patch.dict(os.environ, {"STORY_STORAGE": "database"}):
        result = runner.invoke(cli, ["--db", db_path, "list-stories", "--user-id", user["id"], "--format", "json"])
    assert result.exit_code == 0, result.output
    assert [item["id"] for item in json.loads(result.output)] == [story.id]


def test_list_stories_empty(runner, db_path):
    with patch.dict(os.environ, {"STORY_STORAGE": "database"}):
        result = runner.invoke(cli, ["--db", db_path, "list-stories", "--user-id", "nobody"])
    assert "No stories found." in result.output


def test_show_blocks(runner, db_path, user, story):
    with patch.dict(os.environ, {"STORY_STORAGE": "database"}):
        result = runner.invoke(cli, ["--db", db_path, "show-blocks", story.id, "--user-id", user["id"]])
    assert result.exit_code == 0, result.output
    lines = [line.strip() for line in result.output.splitlines() if line.strip().startswith("[")]
    assert [line.split("]")[0] + "]" for line in lines] == [
        "[text 0]", "[text 1]", "[image 0]", "[text 2]", "[text 3]"
    ]


def test_show_blocks_other_owner(runner, db_path, story):
    with patch.dict(os.environ, {"STORY_STORAGE": "database"}):
        result = runner.invoke(cli, ["--db", db_path, "show-blocks", story.id, "--user-id", "someone-else"])
    assert result.exit_code == 1
    assert "Story not found" in result.output


def test_export_markdown(runner, db_path, user, story, tmp_path):
    output = tmp_path / "story.md"
    with patch.dict(os.environ, {"STORY_STORAGE": "database"}):
        result = runner.invoke(cli, [
            "--db", db_path, "export", story.id, "--user-id", user["id"], "--format", "markdown", "-o", str(output)
        ])
    assert result.exit_code == 0, result.output
    assert output.read_text(encoding="utf-8").startswith("# Moonlight")


def test_check_setup_reports_missing_keys(runner, db_path):
    env = {"GOOGLE_API_KEY": "", "FIREWORKS_API_KEY": "", "DATABASE_PATH": db_path}
    with patch.dict(os.environ, env):
        result = runner.invoke(cli, ["--db", db_path, "check-setup"])
    assert result.exit_code == 1
    assert "✓ Database writable" in result.output
    assert "GOOGLE_API_KEY not set" in result.output
