"""
Slug Identity Manager

Validates a record's slug, enforces its uniqueness inside the collection
and turns an editor save into one of three repository operations:

1. create   - the session has no key yet
2. update   - merge-write at the existing key
3. rename   - slug-keyed collection whose slug no longer equals the key:
              write the full document at the new key, then delete the old one

Renames never delete before the new document exists. When the repository
supports transactions both writes run in one; otherwise the new document
carries a ``moved_from`` marker until the old key is gone, and
``reconcile_renames`` finishes any rename that was interrupted.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from editorial.config import settings
from editorial.constants import DEFAULT_STATUS
from editorial.exceptions import ConflictError, RenameError, StorageError, ValidationError
from editorial.services.editor_service import EditorSession
from editorial.services.list_view_service import to_epoch_millis
from editorial.services.repository import SERVER_TIMESTAMP, RecordRepository
from editorial.utils.slugify import slugify

logger = logging.getLogger(__name__)


class SaveAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    RENAMED = "renamed"


class RenameStrategy(str, Enum):
    AUTO = "auto"
    TRANSACTION = "transaction"
    TWO_PHASE = "two_phase"


@dataclass
class SaveResult:
    action: SaveAction
    key: str
    previous_key: str | None = None


@dataclass
class ReconcileReport:
    reconciled: list[dict[str, Any]] = field(default_factory=list)
    unresolved: list[dict[str, Any]] = field(default_factory=list)


def _rename_entry(record: dict[str, Any]) -> dict[str, Any]:
    return {"key": record["key"], "moved_from": record["moved_from"], "updated_at": record.get("updated_at")}


class SlugIdentityManager:
    def __init__(self, repository: RecordRepository, rename_strategy: str = settings.rename_strategy):
        self.repository = repository
        self.rename_strategy = RenameStrategy(rename_strategy)

    # ── Validation ────────────────────────────────────────────────────────────

    @staticmethod
    def validate(session: EditorSession) -> str:
        """Check the session can be saved and return its slug. Makes no repository call."""
        slug = session.slug
        if not slug:
            raise ValidationError("Slug is required", field="slug")
        if slug != slugify(slug):
            raise ValidationError(
                "Slug may only contain lowercase letters, digits, underscores and single hyphens", field="slug"
            )
        if not session.primary_title.strip():
            raise ValidationError(
                f"Title is required in the primary locale ({session.primary_locale})", field="title"
            )
        return slug

    async def find_conflicts(self, collection: str, slug: str, self_key: str | None = None) -> list[str]:
        """
        Return the keys of records other than ``self_key`` holding ``slug``.

        A record moved away from ``self_key`` by an unfinished rename counts
        as ``self_key`` too, so retrying that rename is not a conflict.
        A pending rename still claims the key it was moved from; only the
        record it was moved from may take that slug back.
        """
        holders = []
        for match in await self.repository.query_by_field(collection, "slug", slug):
            if self_key is None or (match["key"] != self_key and match.get("moved_from") != self_key):
                holders.append(match["key"])
        for pending in await self.repository.query_by_field(collection, "moved_from", slug):
            if pending["key"] not in holders and self_key not in (pending["key"], pending["moved_from"]):
                holders.append(pending["key"])
        return holders

    async def is_unique(self, collection: str, slug: str, self_key: str | None = None) -> bool:
        return not await self.find_conflicts(collection, slug, self_key)

    # ── Save protocol ─────────────────────────────────────────────────────────

    async def save(self, session: EditorSession) -> SaveResult:
        """
        Persist the session.

        The session is only updated (new key, timestamps) once the
        repository has accepted every write, so a failed save leaves the
        form exactly as it was for a retry.

        Raises:
            ValidationError: slug or primary title missing; nothing is sent
            ConflictError: another record holds the slug; nothing is written
            StorageError: the repository failed (RenameError during a rename)
        """
        config = session.config
        slug = self.validate(session)

        holders = await self.find_conflicts(config.name, slug, session.key)
        if holders:
            logger.info(f"Slug conflict on {config.name}: {slug}")
            raise ConflictError(config.name, slug, holders)

        document = session.to_document()
        document["updated_at"] = SERVER_TIMESTAMP

        if session.is_new:
            result = await self._create(session, slug, document)
        elif config.slug_is_key and session.key != slug:
            result = await self._rename(session, slug, document)
        else:
            if config.slug_is_key:
                await self._release_key(config.name, session.key)
            await self.repository.upsert(config.name, session.key, document, merge=True)
            result = SaveResult(SaveAction.UPDATED, session.key)

        session.key = result.key
        if session.status is None and result.action == SaveAction.CREATED:
            session.status = DEFAULT_STATUS.value
        logger.info(f"Record {result.action.value}: {config.name}/{result.key}")
        return result

    async def _create(self, session: EditorSession, slug: str, document: dict[str, Any]) -> SaveResult:
        config = session.config
        document["created_at"] = SERVER_TIMESTAMP
        document.setdefault("status", DEFAULT_STATUS.value)

        if config.slug_is_key:
            await self.repository.upsert(config.name, slug, document, merge=False)
            return SaveResult(SaveAction.CREATED, slug)

        key = await self.repository.create(config.name, document)
        return SaveResult(SaveAction.CREATED, key)

    async def _release_key(self, collection: str, key: str) -> None:
        """Abandon pending renames away from ``key`` before that key is written again."""
        for pending in await self.repository.query_by_field(collection, "moved_from", key):
            if pending["key"] == key:
                continue
            logger.warning(f"Abandoning pending rename {collection}/{key} -> {pending['key']}: {key} is saved again")
            await self.repository.upsert(collection, pending["key"], {"moved_from": None}, merge=True)

    def _resolve_strategy(self) -> RenameStrategy:
        if self.rename_strategy == RenameStrategy.AUTO:
            if self.repository.supports_transactions:
                return RenameStrategy.TRANSACTION
            return RenameStrategy.TWO_PHASE
        if self.rename_strategy == RenameStrategy.TRANSACTION and not self.repository.supports_transactions:
            logger.warning("Repository has no transactions, falling back to two-phase rename")
            return RenameStrategy.TWO_PHASE
        return self.rename_strategy

    async def _rename(self, session: EditorSession, new_key: str, document: dict[str, Any]) -> SaveResult:
        collection = session.config.name
        old_key = session.key

        try:
            previous = await self.repository.fetch_by_key(collection, old_key)
            if previous is None:
                # Old key already gone: resume from the copy an interrupted rename left behind
                resumed = await self.repository.fetch_by_key(collection, new_key)
                if resumed is not None and resumed.get("moved_from") == old_key:
                    previous = resumed
        except StorageError as e:
            raise RenameError(old_key, new_key, step="fetch") from e

        # Full document at the new key: untouched stored fields come along
        moved = {k: v for k, v in (previous or {}).items() if k not in ("key", "moved_from")}
        moved.update(document)
        if previous is None or previous.get("created_at") is None:
            moved["created_at"] = SERVER_TIMESTAMP

        strategy = self._resolve_strategy()
        logger.info(f"Renaming {collection}/{old_key} -> {new_key} ({strategy.value})")

        if strategy == RenameStrategy.TRANSACTION:
            try:
                async with self.repository.transaction():
                    await self.repository.upsert(collection, new_key, moved, merge=False)
                    await self.repository.delete(collection, old_key)
            except StorageError as e:
                raise RenameError(old_key, new_key, step="transaction") from e
        else:
            await self._rename_two_phase(collection, old_key, new_key, moved)

        return SaveResult(SaveAction.RENAMED, new_key, previous_key=old_key)

    async def _rename_two_phase(self, collection: str, old_key: str, new_key: str, moved: dict[str, Any]) -> None:
        moved["moved_from"] = old_key
        try:
            await self.repository.upsert(collection, new_key, moved, merge=False)
        except StorageError as e:
            raise RenameError(old_key, new_key, step="create") from e

        # From here on the marker lets reconcile_renames finish the job
        try:
            await self.repository.delete(collection, old_key)
        except StorageError as e:
            raise RenameError(old_key, new_key, step="delete") from e

        try:
            await self.repository.upsert(collection, new_key, {"moved_from": None}, merge=True)
        except StorageError as e:
            raise RenameError(old_key, new_key, step="clear_marker") from e

    # ── Reconciliation ────────────────────────────────────────────────────────

    async def pending_renames(self, collection: str) -> list[dict[str, Any]]:
        records = await self.repository.fetch_all(collection)
        return [_rename_entry(record) for record in records if record.get("moved_from")]

    async def reconcile_renames(self, collection: str) -> ReconcileReport:
        """
        Finish renames that stopped after the new document was written.

        The old key is deleted if it still exists and the marker is
        cleared. A document at the old key saved after the marker was
        written is left alone. Such entries, and renames that fail again,
        stay marked and are reported as unresolved for operator review.
        """
        report = ReconcileReport()
        for entry in await self.pending_renames(collection):
            try:
                original = await self.repository.fetch_by_key(collection, entry["moved_from"])
                if original is not None and to_epoch_millis(original.get("updated_at")) > to_epoch_millis(
                    entry["updated_at"]
                ):
                    logger.warning(
                        f"{collection}/{entry['moved_from']} was saved after its rename to {entry['key']}; "
                        "leaving it for review"
                    )
                    report.unresolved.append(entry)
                    continue
                await self.repository.delete(collection, entry["moved_from"])
                await self.repository.upsert(collection, entry["key"], {"moved_from": None}, merge=True)
            except StorageError as e:
                logger.warning(f"Rename {entry['moved_from']} -> {entry['key']} still unresolved: {e.message}")
                report.unresolved.append(entry)
            else:
                logger.info(f"Rename reconciled: {collection}/{entry['moved_from']} -> {entry['key']}")
                report.reconciled.append(entry)
        return report
