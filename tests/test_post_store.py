"""
Tests for the Post Store and its persistence media

Covers creation, the draft -> scheduled -> published lifecycle, immutable
fields, idempotent delete, display ordering, stats, corruption tolerance,
storage failures, and the file/Redis repositories.
"""

import json
from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import redis

from linkpost.core.exceptions import StorageError
from linkpost.schemas.post import PostStatus
from linkpost.services.post_repository import (
    FileRepository,
    InMemoryRepository,
    RedisRepository,
    build_repository,
)
from linkpost.services import post_store
from linkpost.services.post_store import STORAGE_KEY, PostStore


class FailingRepository(InMemoryRepository):
    """Reads work; every write fails like a full or unavailable medium."""

    def set_item(self, key, value):
        raise StorageError("quota exceeded")

    def remove_item(self, key):
        raise StorageError("unavailable")


class UnreadableRepository(InMemoryRepository):
    def get_item(self, key):
        raise StorageError("medium unavailable")


class FlakyReadRepository(InMemoryRepository):
    """Fails the next `failures` reads, then behaves normally."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.failures = 0

    def get_item(self, key):
        if self.failures:
            self.failures -= 1
            raise StorageError("read timed out")
        return super().get_item(key)


STORED_DRAFT = {"id": "1", "content": "ok", "status": "draft", "createdAt": "2030-01-01T00:00:00.000Z"}


# =============================================================================
# Creation
# =============================================================================

class TestCreate:
    def test_create_draft(self, store):
        post = store.create_draft("Hello", image="data:image/png;base64,AAAA", first_comment="link")
        assert post.status == PostStatus.DRAFT
        assert post.scheduledTime is None
        assert post.publishedAt is None
        assert post.image == "data:image/png;base64,AAAA"
        assert post.firstComment == "link"
        assert post.createdAt.endswith("Z")
        assert store.list_all() == [post]

    def test_create_draft_normalizes_empty_optionals(self, store):
        post = store.create_draft("Hello", image="", first_comment="")
        assert post.image is None
        assert post.firstComment is None

    def test_create_scheduled(self, store):
        post = store.create_scheduled("Soon", "2030-01-01T09:00:00.000Z")
        assert post.status == PostStatus.SCHEDULED
        assert post.scheduledTime == "2030-01-01T09:00:00.000Z"

    def test_create_scheduled_accepts_past_time(self, store):
        post = store.create_scheduled("Late", "2001-01-01T00:00:00.000Z")
        assert post.status == PostStatus.SCHEDULED

    def test_create_post_keeps_positional_order(self, store):
        post = store.create_post("Body", None, "2030-05-05T05:05:00.000Z", "first")
        assert post.scheduledTime == "2030-05-05T05:05:00.000Z"
        assert post.firstComment == "first"

    def test_ids_unique_within_same_millisecond(self, store):
        ids = {store.create_draft(f"post {i}").id for i in range(50)}
        assert len(ids) == 50

    def test_ids_skip_ones_already_stored(self):
        # another process (or an earlier run with a faster clock) already used this id
        existing = dict(STORED_DRAFT, id="1000000")
        store = PostStore(InMemoryRepository({STORAGE_KEY: json.dumps([existing])}))
        with patch.object(post_store.time, "time", return_value=1000.0):
            post = store.create_draft("new")
        assert post.id != "1000000"
        assert [p.id for p in store.list_all()] == ["1000000", post.id]
        assert store.delete(post.id) is True
        assert [p.id for p in store.list_all()] == ["1000000"]

    def test_persisted_as_json_array(self, store, repository):
        store.create_draft("Hello")
        data = json.loads(repository.get_item(STORAGE_KEY))
        assert isinstance(data, list)
        assert data[0]["content"] == "Hello"
        assert data[0]["status"] == "draft"


# =============================================================================
# Updates and transitions
# =============================================================================

class TestLifecycle:
    def test_update_round_trip(self, store):
        post = store.create_draft("c1")
        store.update(post.id, {"content": "c2"})
        posts = store.list_all()
        assert len(posts) == 1
        assert posts[0].content == "c2"
        assert posts[0].status == PostStatus.DRAFT
        assert posts[0].createdAt == post.createdAt

    def test_update_ignores_id_and_created_at(self, store):
        post = store.create_draft("c1")
        updated = store.update(post.id, {"id": "hijack", "createdAt": "1999-01-01T00:00:00.000Z", "content": "c2"})
        assert updated.id == post.id
        assert updated.createdAt == post.createdAt
        assert store.get("hijack") is None

    def test_update_accepts_keyword_fields(self, store):
        post = store.create_draft("c1")
        assert store.update(post.id, firstComment="fc").firstComment == "fc"

    def test_update_cannot_change_status(self, store):
        post = store.create_draft("c1")
        assert store.update(post.id, {"status": "published"}).status == PostStatus.DRAFT

    def test_update_does_not_schedule_a_draft(self, store):
        post = store.create_draft("c1")
        updated = store.update(post.id, {"scheduledTime": "2030-01-01T00:00:00.000Z"})
        assert updated.scheduledTime is None

    def test_update_retimes_scheduled_post(self, store):
        post = store.create_scheduled("c", "2030-01-01T00:00:00.000Z")
        assert store.update(post.id, {"scheduledTime": "2031-01-01T00:00:00.000Z"}).scheduledTime == (
            "2031-01-01T00:00:00.000Z"
        )

    def test_update_unknown_id(self, store):
        assert store.update("missing", {"content": "x"}) is None

    @pytest.mark.parametrize("bad_time", ["", None, "not a date"])
    def test_scheduled_post_keeps_a_valid_time(self, store, bad_time):
        post = store.create_scheduled("c", "2030-01-01T00:00:00.000Z")
        updated = store.update(post.id, {"scheduledTime": bad_time, "content": "c2"})
        assert updated.scheduledTime == "2030-01-01T00:00:00.000Z"
        assert updated.content == "c2"
        assert store.get(post.id).scheduledTime == "2030-01-01T00:00:00.000Z"

    def test_null_content_is_ignored(self, store):
        post = store.create_draft("c1")
        updated = store.update(post.id, {"content": None, "firstComment": "fc"})
        assert updated.content == "c1"
        assert updated.firstComment == "fc"

    def test_invalid_field_types_leave_post_unchanged(self, store):
        post = store.create_draft("c1")
        assert store.update(post.id, {"content": ["not", "text"]}) == post
        assert store.get(post.id) == post

    def test_schedule_then_publish(self, store):
        post = store.create_draft("c")
        scheduled = store.schedule_draft(post.id, "2030-02-15T14:30:00.000Z")
        assert scheduled.status == PostStatus.SCHEDULED
        assert scheduled.scheduledTime == "2030-02-15T14:30:00.000Z"
        assert scheduled.content == "c"

        published = store.publish(post.id)
        assert published.status == PostStatus.PUBLISHED
        assert published.publishedAt is not None

    def test_publish_draft_directly(self, store):
        post = store.create_draft("c")
        assert store.publish(post.id).status == PostStatus.PUBLISHED

    def test_published_is_terminal(self, store):
        post = store.create_draft("c")
        published = store.publish(post.id)
        assert store.update(post.id, {"content": "changed"}).content == "c"
        assert store.schedule_draft(post.id, "2030-01-01T00:00:00.000Z").status == PostStatus.PUBLISHED
        assert store.publish(post.id).publishedAt == published.publishedAt

    def test_transitions_on_unknown_id(self, store):
        assert store.schedule_draft("nope", "2030-01-01T00:00:00.000Z") is None
        assert store.publish("nope") is None

    def test_delete_is_idempotent(self, store):
        post = store.create_draft("c")
        assert store.delete(post.id) is True
        assert store.delete(post.id) is True
        assert all(p.id != post.id for p in store.list_all())

    def test_delete_any_status(self, store):
        post = store.create_draft("c")
        store.publish(post.id)
        assert store.delete(post.id) is True
        assert store.list_all() == []

    def test_clear(self, store, repository):
        store.create_draft("a")
        store.create_draft("b")
        assert store.clear() is True
        assert store.list_all() == []
        assert repository.get_item(STORAGE_KEY) is None


# =============================================================================
# Queries
# =============================================================================

class TestQueries:
    def test_insertion_order_and_display_order(self, store):
        later = store.create_post("later", None, "2030-03-02T10:00:00.000Z")
        earlier = store.create_post("earlier", None, "2030-03-01T10:00:00.000Z")
        assert [p.id for p in store.list_all()] == [later.id, earlier.id]
        assert [p.id for p in store.sorted_for_display()] == [earlier.id, later.id]

    def test_drafts_sort_first(self, store):
        scheduled = store.create_scheduled("s", "2030-01-01T00:00:00.000Z")
        draft = store.create_draft("d")
        assert [p.id for p in store.sorted_for_display()] == [draft.id, scheduled.id]

    def test_list_by_status(self, store):
        store.create_draft("d")
        store.create_scheduled("s", "2030-01-01T00:00:00.000Z")
        assert [p.content for p in store.list_by_status("draft")] == ["d"]
        assert [p.content for p in store.list_by_status(PostStatus.SCHEDULED)] == ["s"]
        assert store.list_by_status("published") == []

    def test_list_by_status_rejects_unknown(self, store):
        with pytest.raises(ValueError):
            store.list_by_status("archived")

    def test_list_for_date(self, store):
        store.create_scheduled("a", "2030-02-15T09:00:00.000Z")
        store.create_scheduled("b", "2030-02-16T09:00:00.000Z")
        store.create_draft("c")
        assert [p.content for p in store.list_for_date(date(2030, 2, 15))] == ["a"]

    def test_stats(self, store):
        store.create_draft("d1")
        store.create_draft("d2")
        s = store.create_scheduled("s", "2030-01-01T00:00:00.000Z")
        store.publish(s.id)
        store.create_scheduled("s2", "2030-01-01T00:00:00.000Z")
        assert store.stats() == {"total": 4, "drafts": 2, "scheduled": 1, "published": 1}


# =============================================================================
# Corruption and storage failures
# =============================================================================

class TestFailureSemantics:
    @pytest.mark.parametrize("raw", ["not json", "{}", '"text"', "42", ""])
    def test_corrupt_data_reads_empty(self, raw):
        store = PostStore(InMemoryRepository({STORAGE_KEY: raw}))
        assert store.list_all() == []
        assert store.stats()["total"] == 0

    def test_malformed_records_are_skipped(self):
        good = {"id": "1", "content": "ok", "status": "draft", "createdAt": "2030-01-01T00:00:00.000Z"}
        bad = {"content": "no id"}
        store = PostStore(InMemoryRepository({STORAGE_KEY: json.dumps([bad, good])}))
        assert [p.id for p in store.list_all()] == ["1"]

    def test_write_failure_is_reported_not_raised(self):
        store = PostStore(FailingRepository({STORAGE_KEY: json.dumps([STORED_DRAFT])}))
        post = store.create_draft("hello")
        assert post.content == "hello"
        assert isinstance(store.last_error, StorageError)
        assert store.delete("1") is False
        assert store.clear() is False

    def test_delete_of_unknown_id_skips_the_write(self):
        store = PostStore(FailingRepository({STORAGE_KEY: json.dumps([STORED_DRAFT])}))
        assert store.delete("missing") is True
        assert store.last_error is None


class TestReadFailureDuringWrite:
    @pytest.fixture
    def flaky(self):
        return FlakyReadRepository()

    @pytest.fixture
    def seeded(self, flaky):
        store = PostStore(flaky)
        ids = [store.create_draft("a").id, store.create_draft("b").id]
        flaky.failures = 1
        return store, ids

    def test_delete_keeps_existing_posts(self, seeded):
        store, ids = seeded
        assert store.delete("nonexistent") is False
        assert isinstance(store.last_error, StorageError)
        assert [p.id for p in store.list_all()] == ids

    def test_create_does_not_overwrite(self, seeded):
        store, ids = seeded
        assert store.create_draft("c") is None
        assert [p.id for p in store.list_all()] == ids

    def test_update_does_not_overwrite(self, seeded):
        store, ids = seeded
        assert store.update(ids[0], {"content": "changed"}) is None
        assert [p.content for p in store.list_all()] == ["a", "b"]

    @pytest.mark.parametrize("operation", ["publish", "schedule_draft"])
    def test_transitions_do_not_overwrite(self, seeded, operation):
        store, ids = seeded
        args = (ids[1], "2030-01-01T00:00:00.000Z") if operation == "schedule_draft" else (ids[1],)
        assert getattr(store, operation)(*args) is None
        assert [p.status for p in store.list_all()] == ["draft", "draft"]

    def test_error_clears_after_a_good_read(self, seeded):
        store, _ = seeded
        store.list_all()
        assert store.last_error is not None
        store.list_all()
        assert store.last_error is None

    def test_read_failure_degrades_to_empty(self):
        store = PostStore(UnreadableRepository())
        assert store.list_all() == []
        assert store.get("1") is None
        assert isinstance(store.last_error, StorageError)


# =============================================================================
# Repositories
# =============================================================================

class TestFileRepository:
    def test_set_get_remove(self, tmp_path):
        repo = FileRepository(tmp_path / "store")
        assert repo.get_item("k") is None
        repo.set_item("k", "[1]")
        assert repo.get_item("k") == "[1]"
        assert (tmp_path / "store" / "k.json").read_text() == "[1]"
        repo.remove_item("k")
        repo.remove_item("k")
        assert repo.get_item("k") is None

    def test_no_temp_files_left_behind(self, tmp_path):
        repo = FileRepository(tmp_path)
        repo.set_item("k", "a")
        repo.set_item("k", "b")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]

    def test_store_survives_restart(self, tmp_path):
        first = PostStore(FileRepository(tmp_path))
        post = first.create_draft("persisted")
        second = PostStore(FileRepository(tmp_path))
        assert second.get(post.id).content == "persisted"

    def test_corrupt_file_reads_empty(self, tmp_path):
        (tmp_path / f"{STORAGE_KEY}.json").write_text("{broken")
        assert PostStore(FileRepository(tmp_path)).list_all() == []

    def test_unwritable_directory_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        repo = FileRepository(blocker / "sub")
        with pytest.raises(StorageError):
            repo.set_item("k", "v")


class TestRedisRepository:
    def test_prefixes_keys(self):
        client = MagicMock()
        client.get.return_value = "[]"
        repo = RedisRepository("redis://unused", client=client)
        assert repo.get_item("posts") == "[]"
        repo.set_item("posts", "[1]")
        repo.remove_item("posts")
        client.get.assert_called_once_with("linkpost:posts")
        client.set.assert_called_once_with("linkpost:posts", "[1]")
        client.delete.assert_called_once_with("linkpost:posts")

    def test_redis_errors_become_storage_errors(self):
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")
        repo = RedisRepository("redis://unused", client=client)
        with pytest.raises(StorageError):
            repo.set_item("posts", "[]")

    def test_store_over_failing_redis(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        store = PostStore(RedisRepository("redis://unused", client=client))
        assert store.list_all() == []


class TestBuildRepository:
    def test_memory(self, test_settings):
        assert isinstance(build_repository(test_settings), InMemoryRepository)

    def test_file(self, test_settings, tmp_path):
        settings = test_settings.model_copy(update={"post_storage": "file", "post_storage_dir": str(tmp_path)})
        repo = build_repository(settings)
        assert isinstance(repo, FileRepository)
        assert repo.directory == tmp_path
