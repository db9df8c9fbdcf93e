import logging

from editorial.config import settings
from editorial.constants import CollectionConfig
from editorial.exceptions import RecordNotFoundError
from editorial.services.editor_service import EditorSession
from editorial.services.identity_service import SlugIdentityManager
from editorial.services.list_view_service import ListView, ListViewState, process_list_view
from editorial.services.repository import RecordRepository

logger = logging.getLogger(__name__)


async def load_session(repository: RecordRepository, config: CollectionConfig, key: str) -> EditorSession:
    """
    Open an editor session on a stored record.

    Raises:
        RecordNotFoundError: If no record exists at ``key``.
    """
    record = await repository.fetch_by_key(config.name, key)
    if record is None:
        raise RecordNotFoundError(key)
    return EditorSession.from_record(config, record)


async def list_records(
    repository: RecordRepository,
    identity: SlugIdentityManager,
    config: CollectionConfig,
    state: ListViewState,
    page_size: int = settings.page_size,
) -> tuple[ListView, list[dict]]:
    """
    Fetch the whole collection and run it through the list view.

    Interrupted renames are reconciled first so a record never shows up
    twice; any that still cannot be finished are returned next to the view.
    """
    report = await identity.reconcile_renames(config.name)
    records = await repository.fetch_all(config.name)
    view = process_list_view(records, state, config, page_size)
    logger.debug(f"Listed {config.name}: {view.page.total} match(es), page {view.page.page}/{view.page.total_pages}")
    return view, report.unresolved


async def delete_record(repository: RecordRepository, config: CollectionConfig, key: str) -> None:
    deleted = await repository.delete(config.name, key)
    if not deleted:
        raise RecordNotFoundError(key)
    logger.info(f"Record removed by operator: {config.name}/{key}")
