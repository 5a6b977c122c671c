"""RAG chat service: document ingestion, vector retrieval and chat."""
