"""FastAPI dependencies shared by the record and media routes."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from editorial.constants import CollectionConfig, get_collection_config
from editorial.database import get_db
from editorial.services.identity_service import SlugIdentityManager
from editorial.services.repository import RecordRepository, SQLAlchemyRepository
from editorial.services.upload_service import UploadService, upload_service


def get_collection(collection: str) -> CollectionConfig:
    return get_collection_config(collection)


def get_repository(db: AsyncSession = Depends(get_db)) -> RecordRepository:
    return SQLAlchemyRepository(db)


def get_identity_manager(repository: RecordRepository = Depends(get_repository)) -> SlugIdentityManager:
    return SlugIdentityManager(repository)


def get_upload_service() -> UploadService:
    return upload_service
