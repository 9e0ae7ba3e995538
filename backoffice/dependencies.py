"""FastAPI dependencies wiring the engine's collaborators to a request."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings, get_settings
from backoffice.database import get_db
from backoffice.services.document_store import SqlDocumentStore
from backoffice.services.numbering_service import NumberingService


async def get_store(db: AsyncSession = Depends(get_db)) -> SqlDocumentStore:
    return SqlDocumentStore(db)


async def get_numbering(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> NumberingService:
    return NumberingService(db, settings.numbering_config())


def side_effect_payload(result) -> dict:
    """side_effects / side_effects_failed fields for a workflow response."""
    return {
        "side_effects": result.side_effect_responses(),
        "side_effects_failed": len(result.failures),
    }
