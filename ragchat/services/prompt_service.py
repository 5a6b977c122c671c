"""
Saved prompt snippets.
"""
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..errors import InvalidInputError
from ..logging_config import logger
from ..models import Prompt

MAX_TITLE_CHARS = 150
MAX_CONTENT_CHARS = 1000


def list_prompts(db: Session) -> List[Prompt]:
    return list(db.scalars(select(Prompt).order_by(Prompt.id)))


def add_prompt(db: Session, title: Optional[str], content: Optional[str]) -> Prompt:
    """
    Store a prompt; title and content are truncated to their column limits.

    Raises:
        InvalidInputError: If title or content is missing
    """
    if not title or not title.strip() or not content or not content.strip():
        raise InvalidInputError("Invalid form data")

    prompt = Prompt(title=title[:MAX_TITLE_CHARS], content=content[:MAX_CONTENT_CHARS])
    db.add(prompt)
    db.commit()
    logger.info("Added prompt", prompt_id=prompt.id)
    return prompt


def delete_prompt(db: Session, prompt_id: int) -> None:
    """Delete a prompt. Unknown ids are ignored."""
    db.execute(delete(Prompt).where(Prompt.id == prompt_id))
    db.commit()
    logger.info("Deleted prompt", prompt_id=prompt_id)
