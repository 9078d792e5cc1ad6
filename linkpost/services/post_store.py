"""Post store: CRUD and draft -> scheduled -> published transitions over a key-value medium."""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError

from linkpost.core.exceptions import StorageError
from linkpost.schemas.post import Post, PostStatus
from linkpost.services.post_repository import PostRepository
from linkpost.services.schedule_utils import is_on_date, parse_timestamp, utc_now_iso

logger = logging.getLogger(__name__)

STORAGE_KEY = "linkedinPosts"
EDITABLE_FIELDS = frozenset({"content", "image", "firstComment", "scheduledTime"})


class PostStore:
    """
    Owns the ordered post collection persisted under a single key.

    Reads never raise: a missing or corrupt value reads as an empty list, and
    an unreadable medium reads as empty with the error kept on `last_error`.
    Mutations never persist on top of a failed read; they return None/False
    instead. Write failures are logged, kept on `last_error`, and the
    in-memory result is still returned.
    """

    def __init__(self, repository: PostRepository, storage_key: str = STORAGE_KEY):
        self.repository = repository
        self.storage_key = storage_key
        self.last_error: Optional[StorageError] = None
        self._lock = threading.RLock()
        self._last_id = 0

    # ---- persistence ----
    def _read(self) -> list[Post]:
        """Decode the stored collection; raises StorageError if the medium cannot be read."""
        self.last_error = None
        raw = self.repository.get_item(self.storage_key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored posts under %r are not valid JSON; treating as empty", self.storage_key)
            return []
        if not isinstance(data, list):
            logger.warning("Stored posts under %r are not a list; treating as empty", self.storage_key)
            return []
        posts = []
        for item in data:
            try:
                posts.append(Post.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed post record: %r", item)
        return posts

    def _read_for_write(self) -> Optional[list[Post]]:
        try:
            return self._read()
        except StorageError as e:
            logger.error("Error reading posts, write aborted: %s", e)
            self.last_error = e
            return None

    def _load(self) -> list[Post]:
        posts = self._read_for_write()
        return [] if posts is None else posts

    def _save(self, posts: list[Post]) -> bool:
        value = json.dumps([p.model_dump() for p in posts])
        try:
            self.repository.set_item(self.storage_key, value)
        except StorageError as e:
            logger.error("Error saving posts: %s", e)
            self.last_error = e
            return False
        self.last_error = None
        return True

    def _next_id(self, taken: set[str]) -> str:
        candidate = max(int(time.time() * 1000), self._last_id + 1)
        while str(candidate) in taken:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    # ---- creation ----
    def _create(
        self,
        content: str,
        image: Optional[str],
        first_comment: Optional[str],
        status: PostStatus,
        scheduled_time: Optional[str],
    ) -> Optional[Post]:
        with self._lock:
            posts = self._read_for_write()
            if posts is None:
                return None
            post = Post(
                id=self._next_id({p.id for p in posts}),
                content=content,
                image=image or None,
                firstComment=first_comment or None,
                scheduledTime=scheduled_time,
                status=status,
                createdAt=utc_now_iso(),
            )
            posts.append(post)
            self._save(posts)
            return post

    def create_draft(
        self, content: str, image: Optional[str] = None, first_comment: Optional[str] = None
    ) -> Optional[Post]:
        return self._create(content, image, first_comment, PostStatus.DRAFT, None)

    def create_scheduled(
        self,
        content: str,
        scheduled_time: str,
        image: Optional[str] = None,
        first_comment: Optional[str] = None,
    ) -> Optional[Post]:
        """Past timestamps are accepted; the future-only check belongs to the composer."""
        return self._create(content, image, first_comment, PostStatus.SCHEDULED, scheduled_time)

    def create_post(
        self,
        content: str,
        image: Optional[str],
        scheduled_time: str,
        first_comment: Optional[str] = None,
    ) -> Optional[Post]:
        return self.create_scheduled(content, scheduled_time, image=image, first_comment=first_comment)

    # ---- reads ----
    def get(self, post_id: str) -> Optional[Post]:
        return next((p for p in self._load() if p.id == post_id), None)

    def list_all(self) -> list[Post]:
        return self._load()

    def list_by_status(self, status: PostStatus | str) -> list[Post]:
        status = PostStatus(status)
        return [p for p in self._load() if p.status == status]

    def list_for_date(self, day: date) -> list[Post]:
        return [p for p in self._load() if p.scheduledTime and is_on_date(p.scheduledTime, day)]

    def sorted_for_display(self, posts: Optional[list[Post]] = None) -> list[Post]:
        """Drafts first (insertion order), then everything else by ascending scheduledTime."""
        posts = self._load() if posts is None else posts
        drafts = [p for p in posts if p.status == PostStatus.DRAFT]
        others = [p for p in posts if p.status != PostStatus.DRAFT]

        def _key(p: Post):
            ts = parse_timestamp(p.scheduledTime)
            return (ts is None, ts.timestamp() if ts else 0.0)

        return drafts + sorted(others, key=_key)

    def stats(self) -> dict[str, int]:
        posts = self._load()
        return {
            "total": len(posts),
            "drafts": sum(1 for p in posts if p.status == PostStatus.DRAFT),
            "scheduled": sum(1 for p in posts if p.status == PostStatus.SCHEDULED),
            "published": sum(1 for p in posts if p.status == PostStatus.PUBLISHED),
        }

    # ---- mutations ----
    def _mutate(self, post_id: str, build_changes) -> Optional[Post]:
        """
        Read, let `build_changes(current)` decide the merge, validate, persist.
        `build_changes` returns None to leave the post untouched.
        """
        with self._lock:
            posts = self._read_for_write()
            if posts is None:
                return None
            index = next((i for i, p in enumerate(posts) if p.id == post_id), None)
            if index is None:
                return None
            current = posts[index]
            changes = build_changes(current)
            if changes is None:
                return current
            merged = current.model_dump()
            merged.update(changes)
            merged["id"] = current.id
            merged["createdAt"] = current.createdAt
            try:
                posts[index] = Post.model_validate(merged)
            except ValidationError as e:
                logger.warning("Rejected invalid changes to post %s: %s", post_id, e)
                return current
            self._save(posts)
            return posts[index]

    def update(self, post_id: str, fields: Optional[dict[str, Any]] = None, **kwargs: Any) -> Optional[Post]:
        """
        Merge editable fields into the post. `id` and `createdAt` overrides are
        dropped silently; status changes go through schedule_draft/publish.
        """
        requested = {**(fields or {}), **kwargs}
        requested = {k: v for k, v in requested.items() if k in EDITABLE_FIELDS}
        if requested.get("content", "") is None:
            requested.pop("content")

        def _changes(current: Post) -> Optional[dict[str, Any]]:
            if current.status == PostStatus.PUBLISHED:
                logger.warning("Ignoring update of published post %s", post_id)
                return None
            changes = dict(requested)
            if "scheduledTime" in changes and (
                current.status == PostStatus.DRAFT or parse_timestamp(changes["scheduledTime"] or None) is None
            ):
                # drafts never carry a schedule (use schedule_draft); scheduled posts keep a valid one
                changes.pop("scheduledTime")
            return changes

        return self._mutate(post_id, _changes)

    def schedule_draft(self, post_id: str, scheduled_time: str) -> Optional[Post]:
        def _changes(current: Post) -> Optional[dict[str, Any]]:
            if current.status == PostStatus.PUBLISHED:
                logger.warning("Cannot schedule published post %s", post_id)
                return None
            return {"status": PostStatus.SCHEDULED.value, "scheduledTime": scheduled_time}

        return self._mutate(post_id, _changes)

    def publish(self, post_id: str) -> Optional[Post]:
        """Local transition only; call after the external publish has succeeded."""

        def _changes(current: Post) -> Optional[dict[str, Any]]:
            if current.status == PostStatus.PUBLISHED:
                return None
            return {"status": PostStatus.PUBLISHED.value, "publishedAt": utc_now_iso()}

        return self._mutate(post_id, _changes)

    def delete(self, post_id: str) -> bool:
        with self._lock:
            posts = self._read_for_write()
            if posts is None:
                return False
            remaining = [p for p in posts if p.id != post_id]
            if len(remaining) == len(posts):
                return True
            return self._save(remaining)

    def clear(self) -> bool:
        with self._lock:
            try:
                self.repository.remove_item(self.storage_key)
            except StorageError as e:
                logger.error("Error clearing posts: %s", e)
                self.last_error = e
                return False
            self.last_error = None
            return True
