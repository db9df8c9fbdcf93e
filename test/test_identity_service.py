"""
Tests for the slug identity manager

Covers validation, uniqueness, the create/update/rename save protocol and
reconciliation of interrupted renames.
"""

from datetime import datetime, timezone

import pytest

from editorial.constants import ARTICLES, BLOG_POSTS
from editorial.exceptions import ConflictError, RenameError, StorageError, ValidationError
from editorial.services.editor_service import EditorSession
from editorial.services.identity_service import RenameStrategy, SaveAction, SlugIdentityManager


def new_session(config, title):
    session = EditorSession(config)
    session.edit_title(title)
    return session


class TestValidation:
    async def test_empty_title_blocks_save_without_repository_call(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = EditorSession(ARTICLES)

        with pytest.raises(ValidationError):
            await manager.save(session)

        assert memory_repository.calls == []
        assert session.key is None

    async def test_empty_slug_rejected(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = new_session(ARTICLES, "!!!")
        assert session.slug == ""

        with pytest.raises(ValidationError) as exc_info:
            await manager.save(session)

        assert exc_info.value.details["field"] == "slug"
        assert memory_repository.calls == []

    async def test_non_canonical_slug_rejected(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = new_session(ARTICLES, "Hello")
        session.slug = "Not A Slug"

        with pytest.raises(ValidationError):
            await manager.save(session)


class TestCreate:
    async def test_create_article_gets_generated_key(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(ARTICLES, "Villa in Palm Jumeirah")

        result = await manager.save(session)

        assert result.action == SaveAction.CREATED
        assert session.key == result.key
        assert result.key != "villa-in-palm-jumeirah"
        assert session.status == "published"

        record = await repository.fetch_by_key("articles", result.key)
        assert record["slug"] == "villa-in-palm-jumeirah"
        assert record["status"] == "published"
        assert record["created_at"] is not None
        assert record["updated_at"] is not None
        assert record["translations"]["en"]["title"] == "Villa in Palm Jumeirah"

    async def test_create_blog_post_keyed_by_slug(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(BLOG_POSTS, "My First Post")

        result = await manager.save(session)

        assert result.key == "my-first-post"
        record = await repository.fetch_by_key("blog_posts", "my-first-post")
        assert record["id"] == "my-first-post"
        assert record["slug"] == "my-first-post"

    async def test_draft_status_kept_on_create(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(ARTICLES, "Draft Article")
        session.set_status("draft")

        result = await manager.save(session)

        record = await repository.fetch_by_key("articles", result.key)
        assert record["status"] == "draft"

    async def test_storage_failure_leaves_session_untouched(self, memory_repository):
        memory_repository.fail_on["upsert"] = 1
        manager = SlugIdentityManager(memory_repository)
        session = new_session(BLOG_POSTS, "Unsaved Post")

        with pytest.raises(StorageError):
            await manager.save(session)

        assert session.key is None
        assert session.status is None
        assert session.slug == "unsaved-post"

        # retry succeeds with the same form state
        result = await manager.save(session)
        assert result.key == "unsaved-post"


class TestUpdate:
    async def test_merge_update_preserves_untouched_fields(self, repository):
        await repository.upsert(
            "articles",
            "a1",
            {
                "slug": "old-title",
                "translations": {"en": {"title": "Old Title"}},
                "views": 42,
                "category": "Laws",
            },
            merge=False,
        )
        record = await repository.fetch_by_key("articles", "a1")
        session = EditorSession.from_record(ARTICLES, record)
        session.edit_title("New Title")

        result = await SlugIdentityManager(repository).save(session)

        assert result.action == SaveAction.UPDATED
        assert result.key == "a1"
        stored = await repository.fetch_by_key("articles", "a1")
        assert stored["views"] == 42
        assert stored["slug"] == "new-title"
        assert stored["translations"]["en"]["title"] == "New Title"

    async def test_saving_own_slug_is_not_a_conflict(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(ARTICLES, "Stable Title")
        await manager.save(session)

        session.edit_translation("content", "<p>Body</p>")
        result = await manager.save(session)

        assert result.action == SaveAction.UPDATED


class TestConflicts:
    async def test_conflict_on_create(self, repository):
        manager = SlugIdentityManager(repository)
        first = new_session(ARTICLES, "Same Title")
        await manager.save(first)

        second = new_session(ARTICLES, "Same Title")
        with pytest.raises(ConflictError) as exc_info:
            await manager.save(second)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["holders"] == [first.key]
        assert second.key is None
        assert len(await repository.fetch_all("articles")) == 1

    async def test_conflict_on_rename(self, repository):
        manager = SlugIdentityManager(repository)
        await manager.save(new_session(BLOG_POSTS, "Taken"))
        other = new_session(BLOG_POSTS, "Other")
        await manager.save(other)

        other.edit_slug("taken")
        with pytest.raises(ConflictError):
            await manager.save(other)

        assert other.key == "other"
        assert await repository.fetch_by_key("blog_posts", "other") is not None

    async def test_is_unique(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(ARTICLES, "Unique Title")
        await manager.save(session)

        assert not await manager.is_unique("articles", "unique-title")
        assert await manager.is_unique("articles", "unique-title", self_key=session.key)
        assert await manager.is_unique("articles", "something-else")
        assert await manager.is_unique("blog_posts", "unique-title")


class TestRenameTransaction:
    async def test_rename_moves_document(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(BLOG_POSTS, "First Post")
        await manager.save(session)
        await repository.upsert("blog_posts", "first-post", {"views": 7}, merge=True)
        original = await repository.fetch_by_key("blog_posts", "first-post")

        session = EditorSession.from_record(BLOG_POSTS, original)
        session.edit_slug("Second Post")
        result = await manager.save(session)

        assert result.action == SaveAction.RENAMED
        assert result.key == "second-post"
        assert result.previous_key == "first-post"
        assert session.key == "second-post"

        assert await repository.fetch_by_key("blog_posts", "first-post") is None
        moved = await repository.fetch_by_key("blog_posts", "second-post")
        assert moved["id"] == "second-post"
        assert moved["views"] == 7
        assert moved["moved_from"] is None
        assert moved["created_at"] == original["created_at"]

    async def test_articles_never_rename(self, repository):
        manager = SlugIdentityManager(repository)
        session = new_session(ARTICLES, "Article")
        await manager.save(session)
        key = session.key

        session.edit_slug("renamed-article")
        result = await manager.save(session)

        assert result.action == SaveAction.UPDATED
        assert result.key == key


class TestRenameTwoPhase:
    async def _saved_post(self, manager, title="First Post"):
        session = new_session(BLOG_POSTS, title)
        await manager.save(session)
        return session

    async def test_strategy_resolution(self, memory_repository, repository):
        assert SlugIdentityManager(memory_repository)._resolve_strategy() == RenameStrategy.TWO_PHASE
        assert SlugIdentityManager(repository)._resolve_strategy() == RenameStrategy.TRANSACTION
        assert (
            SlugIdentityManager(memory_repository, rename_strategy="transaction")._resolve_strategy()
            == RenameStrategy.TWO_PHASE
        )
        assert (
            SlugIdentityManager(repository, rename_strategy="two_phase")._resolve_strategy()
            == RenameStrategy.TWO_PHASE
        )

    async def test_rename_writes_new_before_deleting_old(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = await self._saved_post(manager)
        memory_repository.calls.clear()

        session.edit_slug("second-post")
        await manager.save(session)

        writes = memory_repository.write_calls()
        assert writes[0] == ("upsert", "blog_posts", "second-post")
        assert writes[1] == ("delete", "blog_posts", "first-post")
        assert writes[2] == ("upsert", "blog_posts", "second-post")
        assert memory_repository.collections["blog_posts"]["second-post"]["moved_from"] is None

    async def test_failed_delete_leaves_marker_and_session(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = await self._saved_post(manager)
        memory_repository.fail_on["delete"] = 1

        session.edit_slug("second-post")
        with pytest.raises(RenameError) as exc_info:
            await manager.save(session)

        assert exc_info.value.step == "delete"
        assert session.key == "first-post"
        docs = memory_repository.collections["blog_posts"]
        assert docs["second-post"]["moved_from"] == "first-post"
        assert "first-post" in docs

        pending = await manager.pending_renames("blog_posts")
        assert [(p["key"], p["moved_from"]) for p in pending] == [("second-post", "first-post")]

    async def test_retry_after_interrupted_rename(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = await self._saved_post(manager)
        memory_repository.fail_on["delete"] = 1
        session.edit_slug("second-post")
        with pytest.raises(RenameError):
            await manager.save(session)

        result = await manager.save(session)

        assert result.action == SaveAction.RENAMED
        assert set(memory_repository.collections["blog_posts"]) == {"second-post"}

    async def test_failed_create_deletes_nothing(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = await self._saved_post(manager)
        memory_repository.fail_on["upsert"] = 1

        session.edit_slug("second-post")
        with pytest.raises(RenameError) as exc_info:
            await manager.save(session)

        assert exc_info.value.step == "create"
        assert set(memory_repository.collections["blog_posts"]) == {"first-post"}

    async def test_reconcile_finishes_interrupted_rename(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = await self._saved_post(manager)
        memory_repository.fail_on["delete"] = 1
        session.edit_slug("second-post")
        with pytest.raises(RenameError):
            await manager.save(session)

        report = await manager.reconcile_renames("blog_posts")

        assert [r["key"] for r in report.reconciled] == ["second-post"]
        assert report.unresolved == []
        docs = memory_repository.collections["blog_posts"]
        assert set(docs) == {"second-post"}
        assert docs["second-post"]["moved_from"] is None

    async def test_reconcile_reports_unresolved(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = await self._saved_post(manager)
        memory_repository.fail_on["delete"] = 2
        session.edit_slug("second-post")
        with pytest.raises(RenameError):
            await manager.save(session)

        report = await manager.reconcile_renames("blog_posts")

        assert report.reconciled == []
        assert [r["moved_from"] for r in report.unresolved] == ["first-post"]
        assert memory_repository.collections["blog_posts"]["second-post"]["moved_from"] == "first-post"


class TestOldKeyReuse:
    """A key freed by an unfinished rename is never lost to reconciliation"""

    async def _interrupted_rename(self, manager, memory_repository, fail):
        session = new_session(BLOG_POSTS, "First Post")
        await manager.save(session)
        fail(memory_repository)
        session.edit_slug("second-post")
        with pytest.raises(RenameError):
            await manager.save(session)
        return session

    async def test_new_record_cannot_claim_key_of_pending_rename(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)

        def fail_clear_marker(repo):
            repo.fail_after["upsert"] = 1

        await self._interrupted_rename(manager, memory_repository, fail_clear_marker)
        assert set(memory_repository.collections["blog_posts"]) == {"second-post"}

        newcomer = new_session(BLOG_POSTS, "First Post")
        with pytest.raises(ConflictError) as exc_info:
            await manager.save(newcomer)
        assert exc_info.value.details["holders"] == ["second-post"]
        assert not await manager.is_unique("blog_posts", "first-post")

        await manager.reconcile_renames("blog_posts")
        result = await manager.save(newcomer)

        assert result.key == "first-post"
        assert set(memory_repository.collections["blog_posts"]) == {"first-post", "second-post"}

    async def test_reverting_after_cleared_old_key_survives_reconcile(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)

        def fail_clear_marker(repo):
            repo.fail_after["upsert"] = 1

        session = await self._interrupted_rename(manager, memory_repository, fail_clear_marker)

        session.edit_slug("first-post")
        result = await manager.save(session)
        report = await manager.reconcile_renames("blog_posts")

        assert result.action == SaveAction.UPDATED
        assert report.reconciled == []
        docs = memory_repository.collections["blog_posts"]
        assert set(docs) == {"first-post", "second-post"}
        assert docs["second-post"]["moved_from"] is None

    async def test_reverting_after_failed_delete_survives_reconcile(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)

        def fail_delete(repo):
            repo.fail_on["delete"] = 1

        session = await self._interrupted_rename(manager, memory_repository, fail_delete)

        session.edit_slug("first-post")
        result = await manager.save(session)
        await manager.reconcile_renames("blog_posts")

        assert result.action == SaveAction.UPDATED
        assert result.key == "first-post"
        docs = memory_repository.collections["blog_posts"]
        assert "first-post" in docs
        assert docs["second-post"]["moved_from"] is None
        assert await manager.pending_renames("blog_posts") == []

    async def test_reconcile_skips_old_key_saved_after_rename(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        memory_repository.collections["blog_posts"] = {
            "second-post": {
                "slug": "second-post",
                "moved_from": "first-post",
                "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
            },
            "first-post": {"slug": "first-post", "updated_at": datetime(2024, 2, 1, tzinfo=timezone.utc)},
        }

        report = await manager.reconcile_renames("blog_posts")

        assert report.reconciled == []
        assert [r["key"] for r in report.unresolved] == ["second-post"]
        docs = memory_repository.collections["blog_posts"]
        assert "first-post" in docs
        assert docs["second-post"]["moved_from"] == "first-post"

    async def test_retry_after_old_key_deleted_keeps_stored_fields(self, memory_repository):
        manager = SlugIdentityManager(memory_repository)
        session = new_session(BLOG_POSTS, "First Post")
        await manager.save(session)
        await memory_repository.upsert("blog_posts", "first-post", {"views": 3}, merge=True)
        created_at = memory_repository.collections["blog_posts"]["first-post"]["created_at"]
        memory_repository.fail_after["upsert"] = 1
        session.edit_slug("second-post")
        with pytest.raises(RenameError) as exc_info:
            await manager.save(session)
        assert exc_info.value.step == "clear_marker"

        result = await manager.save(session)

        assert result.action == SaveAction.RENAMED
        moved = memory_repository.collections["blog_posts"]["second-post"]
        assert moved["views"] == 3
        assert moved["created_at"] == created_at
        assert moved["moved_from"] is None
