"""
Settings API Router
Per-user settings kept in the spreadsheet (labels, AI key, last sync)
"""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from apps.api.dependencies import get_session
from packages.common.session import SessionContext

router = APIRouter()


class StoreSettingsView(BaseModel):
    """Settings as shown to the user; the AI key is never echoed back"""
    gmail_search_label: str
    gmail_processed_label: str
    ai_key_configured: bool
    last_sync: str


class AIKeyUpdate(BaseModel):
    key: str


@router.get("", response_model=StoreSettingsView)
async def get_store_settings(session: SessionContext = Depends(get_session)) -> StoreSettingsView:
    current = await session.store_settings.get_settings()
    return StoreSettingsView(
        gmail_search_label=current.GMAIL_SEARCH_LABEL,
        gmail_processed_label=current.GMAIL_PROCESSED_LABEL,
        ai_key_configured=bool(current.AI_API_KEY),
        last_sync=current.LAST_SYNC,
    )


@router.put("/ai-key", status_code=status.HTTP_204_NO_CONTENT)
async def update_ai_key(update: AIKeyUpdate, session: SessionContext = Depends(get_session)) -> None:
    if not update.key.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="key must not be blank",
        )
    await session.store_settings.update_ai_key(update.key)
