"""
User settings: a single row holding the username and the system message.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..logging_config import logger
from ..models import UserSettings

MAX_USERNAME_CHARS = 100
MAX_SYSTEM_CHARS = 1000
SETTINGS_ID = 1

_UPSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def get_settings(db: Session) -> Optional[UserSettings]:
    stmt = (
        select(UserSettings)
        .where(UserSettings.id == SETTINGS_ID)
        .execution_options(populate_existing=True)
    )
    return db.scalars(stmt).first()


def update_settings(db: Session, username: Optional[str], system: Optional[str]) -> UserSettings:
    """
    Write the settings row.

    The row always has id 1, so concurrent updates race on one primary key
    and the last writer wins; a second row can never appear.
    """
    values = {
        "username": username[:MAX_USERNAME_CHARS] if username is not None else None,
        "system": system[:MAX_SYSTEM_CHARS] if system is not None else None,
    }
    insert = _UPSERTS.get(db.get_bind().dialect.name)
    try:
        if insert is not None:
            stmt = insert(UserSettings).values(id=SETTINGS_ID, **values)
            db.execute(stmt.on_conflict_do_update(index_elements=[UserSettings.id], set_=values))
        else:
            db.merge(UserSettings(id=SETTINGS_ID, **values))
        db.commit()
    except Exception:
        db.rollback()
        raise

    row = get_settings(db)
    logger.info("Updated settings", username=row.username)
    return row
