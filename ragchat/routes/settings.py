"""
User settings routes (username and system message).
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db
from ..schemas import SettingsIn, SettingsOut
from ..services import settings_service

router = APIRouter(prefix="/api", tags=["settings"])


@router.get("/settings", response_model=SettingsOut)
def get_settings(db: Session = Depends(get_db)):
    """Current settings; empty fields when none were saved yet."""
    return settings_service.get_settings(db) or SettingsOut()


@router.put("/settings", response_model=SettingsOut)
def update_settings(body: SettingsIn, db: Session = Depends(get_db)):
    return settings_service.update_settings(db, body.username, body.system)
