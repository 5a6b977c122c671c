"""
Saved prompt routes.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db
from ..schemas import PromptIn, PromptOut
from ..services import prompt_service

router = APIRouter(prefix="/api", tags=["prompts"])


@router.get("/prompts", response_model=List[PromptOut])
def list_prompts(db: Session = Depends(get_db)):
    return prompt_service.list_prompts(db)


@router.post("/prompts", response_model=PromptOut, status_code=201)
def add_prompt(body: PromptIn, db: Session = Depends(get_db)):
    return prompt_service.add_prompt(db, body.title, body.content)


@router.delete("/prompts/{prompt_id}")
def delete_prompt(prompt_id: int, db: Session = Depends(get_db)):
    prompt_service.delete_prompt(db, prompt_id)
    return {"ok": True, "deleted": prompt_id}
