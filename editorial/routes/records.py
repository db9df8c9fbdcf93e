"""
Record Routes

Editor and list endpoints for every registered collection.
"""

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, Query, Response, status

from editorial.config import settings
from editorial.constants import CollectionConfig
from editorial.dependencies import get_collection, get_identity_manager, get_repository
from editorial.exceptions import ValidationError
from editorial.schemas.record import (
    EditorEditRequest,
    EditorState,
    ListViewResponse,
    PendingRename,
    ReconcileResponse,
    SaveResponse,
    SlugCheckResponse,
    SlugifyResponse,
)
from editorial.services import record_service
from editorial.services.editor_service import EditorSession
from editorial.services.identity_service import SlugIdentityManager
from editorial.services.list_view_service import ListViewState, SortDirection, SortState
from editorial.services.repository import RecordRepository
from editorial.utils.slugify import slugify

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/slugify", response_model=SlugifyResponse)
async def preview_slug(text: str = Query("", description="Text to turn into a slug")):
    return SlugifyResponse(text=text, slug=slugify(text))


@router.get("/collections/{collection}/records", response_model=ListViewResponse)
async def list_records(
    q: str = Query("", description="Case-insensitive search over the collection's search fields"),
    sort: str | None = Query(None, description="Sort key"),
    direction: SortDirection | None = Query(None, description="Sort direction"),
    page: int = Query(1, ge=1),
    config: CollectionConfig = Depends(get_collection),
    repository: RecordRepository = Depends(get_repository),
    identity: SlugIdentityManager = Depends(get_identity_manager),
):
    """
    One page of a collection after search and sort.

    The client owns the list view state: header-click toggling happens on
    its side and arrives here as an explicit ``sort``/``direction`` pair.
    A search string always lands on its first page unless ``page`` is given.
    """
    state = ListViewState.for_collection(config)
    if sort or direction:
        state = replace(state, sort=SortState(sort or state.sort.key, direction or state.sort.direction))
    state = state.set_query(q).go_to(page)
    view, unresolved = await record_service.list_records(repository, identity, config, state)

    return ListViewResponse(
        items=view.page.items,
        total=view.page.total,
        page=view.page.page,
        page_size=view.page.page_size,
        total_pages=view.page.total_pages,
        has_next=view.page.has_next,
        has_previous=view.page.has_previous,
        query=state.query,
        sort=state.sort.key,
        direction=state.sort.direction.value,
        unresolved_renames=unresolved,
    )


@router.get("/collections/{collection}/records/{key}", response_model=EditorState)
async def get_record(
    key: str,
    config: CollectionConfig = Depends(get_collection),
    repository: RecordRepository = Depends(get_repository),
):
    session = await record_service.load_session(repository, config, key)
    return session.to_state()


@router.post("/collections/{collection}/editor", response_model=EditorState)
async def apply_edits(request: EditorEditRequest, config: CollectionConfig = Depends(get_collection)):
    """Apply a batch of editor edits to a form state and return the resulting state."""
    session = EditorSession.from_state(config, request.state)
    for edit in request.edits:
        session.apply(edit)
    return session.to_state()


async def _save(
    session: EditorSession, identity: SlugIdentityManager, repository: RecordRepository
) -> SaveResponse:
    result = await identity.save(session)
    record = await repository.fetch_by_key(session.config.name, result.key)
    return SaveResponse(
        action=result.action.value,
        key=result.key,
        previous_key=result.previous_key,
        record=record or {},
    )


@router.post("/collections/{collection}/records", response_model=SaveResponse, status_code=status.HTTP_201_CREATED)
async def create_record(
    state: EditorState,
    config: CollectionConfig = Depends(get_collection),
    repository: RecordRepository = Depends(get_repository),
    identity: SlugIdentityManager = Depends(get_identity_manager),
):
    if state.key:
        raise ValidationError("A new record must not carry a key; use PUT to save an existing one", field="key")
    session = EditorSession.from_state(config, state)
    return await _save(session, identity, repository)


@router.put("/collections/{collection}/records/{key}", response_model=SaveResponse)
async def save_record(
    key: str,
    state: EditorState,
    config: CollectionConfig = Depends(get_collection),
    repository: RecordRepository = Depends(get_repository),
    identity: SlugIdentityManager = Depends(get_identity_manager),
):
    session = EditorSession.from_state(config, state)
    session.key = key
    return await _save(session, identity, repository)


@router.delete("/collections/{collection}/records/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    key: str,
    config: CollectionConfig = Depends(get_collection),
    repository: RecordRepository = Depends(get_repository),
):
    await record_service.delete_record(repository, config, key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/collections/{collection}/slug-check", response_model=SlugCheckResponse)
async def check_slug(
    slug: str = Query(..., min_length=1),
    self_key: str | None = Query(None, description="Key of the record being edited"),
    config: CollectionConfig = Depends(get_collection),
    identity: SlugIdentityManager = Depends(get_identity_manager),
):
    unique = await identity.is_unique(config.name, slug, self_key)
    return SlugCheckResponse(slug=slug, unique=unique)


@router.get("/collections/{collection}/renames", response_model=list[PendingRename])
async def list_pending_renames(
    config: CollectionConfig = Depends(get_collection),
    identity: SlugIdentityManager = Depends(get_identity_manager),
):
    return await identity.pending_renames(config.name)


@router.post("/collections/{collection}/renames/reconcile", response_model=ReconcileResponse)
async def reconcile_renames(
    config: CollectionConfig = Depends(get_collection),
    identity: SlugIdentityManager = Depends(get_identity_manager),
):
    report = await identity.reconcile_renames(config.name)
    return ReconcileResponse(reconciled=report.reconciled, unresolved=report.unresolved)
