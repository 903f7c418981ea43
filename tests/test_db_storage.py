"""
Tests for SQLite storage of stories, users and sessions.
"""

import sqlite3

import pytest

from src.bedtime.utils.db_storage import StoryStorage, UserStorage, db_transaction, init_database
from tests.test_constants import TEST_EMAIL, TEST_PASSWORD


@pytest.fixture
def story_storage(db_path):
    return StoryStorage(db_path=db_path)


@pytest.fixture
def user_storage(db_path):
    return UserStorage(db_path=db_path)


def _fields(title="A Story", images=None):
    return {"title": title, "content": "Once.\n\nTwice.", "images": images or [], "metadata": {"age": "4-6"}}


class TestInitDatabase:

    def test_creates_tables(self, db_path):
        init_database(db_path)
        with db_transaction(db_path) as conn:
            names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert {"users", "sessions", "stories"} <= names

    def test_is_idempotent(self, db_path):
        init_database(db_path)
        init_database(db_path)

    def test_transaction_rolls_back(self, db_path):
        init_database(db_path)
        with pytest.raises(sqlite3.IntegrityError):
            with db_transaction(db_path) as conn:
                conn.execute(
                    "INSERT INTO users (id, email, password_hash, created_at) VALUES ('u1', 'a@b.c', 'h', 'now')"
                )
                conn.execute(
                    "INSERT INTO users (id, email, password_hash, created_at) VALUES ('u1', 'x@b.c', 'h', 'now')"
                )
        with db_transaction(db_path) as conn:
            assert conn.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0


class TestStoryStorage:

    def test_create_and_load_round_trip(self, story_storage):
        created = story_storage.create_story("user-1", _fields(images=["a.png"]))
        loaded = story_storage.load_story(created["id"], "user-1")
        assert loaded["title"] == "A Story"
        assert loaded["images"] == ["a.png"]
        assert loaded["metadata"] == {"age": "4-6"}
        assert loaded["created_at"] == loaded["updated_at"]

    def test_load_scoped_to_owner(self, story_storage):
        created = story_storage.create_story("user-1", _fields())
        assert story_storage.load_story(created["id"], "user-2") is None
        assert story_storage.load_story(created["id"]) is not None

    def test_list_newest_first_and_scoped(self, story_storage):
        first = story_storage.create_story("user-1", _fields("First"))
        second = story_storage.create_story("user-1", _fields("Second"))
        story_storage.create_story("user-2", _fields("Other"))
        stories = story_storage.list_stories("user-1")
        assert [story["id"] for story in stories] == [second["id"], first["id"]]

    def test_update_images(self, story_storage):
        created = story_storage.create_story("user-1", _fields())
        updated = story_storage.update_images(created["id"], "user-1", ["x.png", "y.png"])
        assert updated["images"] == ["x.png", "y.png"]
        assert updated["updated_at"] >= created["updated_at"]

    def test_update_images_other_owner(self, story_storage):
        created = story_storage.create_story("user-1", _fields())
        assert story_storage.update_images(created["id"], "user-2", ["x.png"]) is None
        assert story_storage.load_story(created["id"])["images"] == []

    def test_count(self, story_storage):
        story_storage.create_story("user-1", _fields())
        story_storage.create_story("user-2", _fields())
        assert story_storage.count_stories() == 2
        assert story_storage.count_stories("user-1") == 1


class TestUserStorage:

    def test_create_and_verify(self, user_storage):
        user = user_storage.create_user(TEST_EMAIL, TEST_PASSWORD, "Sam")
        assert user["email"] == TEST_EMAIL
        assert user_storage.verify_credentials(TEST_EMAIL.upper(), TEST_PASSWORD) == user
        assert user_storage.verify_credentials(TEST_EMAIL, "wrong-password") is None
        assert user_storage.verify_credentials("nobody@example.com", TEST_PASSWORD) is None

    def test_password_is_hashed(self, user_storage, db_path):
        user_storage.create_user(TEST_EMAIL, TEST_PASSWORD)
        with db_transaction(db_path) as conn:
            stored = conn.execute("SELECT password_hash FROM users").fetchone()[0]
        assert stored != TEST_PASSWORD

    def test_duplicate_email(self, user_storage):
        assert user_storage.create_user(TEST_EMAIL, TEST_PASSWORD) is not None
        assert user_storage.create_user(TEST_EMAIL, "another-password") is None

    def test_sessions(self, user_storage):
        user = user_storage.create_user(TEST_EMAIL, TEST_PASSWORD)
        token = user_storage.create_session(user["id"])
        assert user_storage.get_user_id_for_token(token) == user["id"]
        user_storage.delete_session(token)
        assert user_storage.get_user_id_for_token(token) is None

    def test_get_user(self, user_storage):
        user = user_storage.create_user(TEST_EMAIL, TEST_PASSWORD, "Sam")
        assert user_storage.get_user(user["id"]) == {"id": user["id"], "email": TEST_EMAIL, "name": "Sam"}
        assert user_storage.get_user("missing") is None
