"""
Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """A single turn in a conversation."""
    role: Role
    content: str


class ChatBody(BaseModel):
    """Request body for the chat endpoint."""
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model: Optional[str] = Field(None, description="Model identifier: 'openai:gpt-4o-mini' or 'ollama:qwen2.5:3b'")
    messages: List[ChatMessage] = Field(..., min_length=1)
    settings_system_message: Optional[str] = Field(None, alias="settingsSystemMessage")
    id: Optional[str] = None
    rag_mode: bool = Field(False, alias="ragMode")
    top_k: Optional[int] = Field(None, ge=1, le=50)


class RetrieveBody(BaseModel):
    query: str = Field(..., min_length=1, description="The question to search for")
    top_k: Optional[int] = Field(None, ge=1, le=50, description="Number of chunks to retrieve")


class RetrievedChunk(BaseModel):
    chunk_text: str
    source_document_name: str
    distance: float
    document_id: int
    chunk_index: int


class DocumentOut(BaseModel):
    id: int
    name: str
    size: int
    extension: str
    created_at: Optional[datetime] = None
    num_chunks: int = 0


class PromptIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class PromptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str


class SettingsIn(BaseModel):
    username: Optional[str] = None
    system: Optional[str] = None


class SettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: Optional[str] = None
    system: Optional[str] = None
