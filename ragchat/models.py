from sqlalchemy import Column, String, Text, Integer, ForeignKey, BigInteger, TIMESTAMP, Index, CheckConstraint, func
from sqlalchemy.orm import declarative_base, relationship
from pgvector.sqlalchemy import Vector

from .config import settings

Base = declarative_base()


class Document(Base):
    __tablename__ = "documents"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    size = Column(BigInteger, nullable=False)
    extension = Column(String(10), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    chunks = relationship(
        "EmbeddingChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="EmbeddingChunk.chunk_index",
    )


class EmbeddingChunk(Base):
    __tablename__ = "embeddings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    chunk = Column(Text, nullable=False)
    embedding = Column(Vector(settings.EMBED_DIM), nullable=False)

    document = relationship("Document", back_populates="chunks")

    __table_args__ = (
        # Cosine is the store-wide metric; see vector_store.DISTANCE_METRIC
        Index(
            "idx_embeddings_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )


class Prompt(Base):
    __tablename__ = "prompts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(150), nullable=False)
    content = Column(String(1000), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)


class UserSettings(Base):
    """Singleton row: the primary key is pinned to 1."""
    __tablename__ = "settings"
    id = Column(Integer, primary_key=True, autoincrement=False, default=1)
    username = Column(String(100))
    system = Column(String(1000))

    __table_args__ = (CheckConstraint("id = 1", name="settings_singleton"),)
