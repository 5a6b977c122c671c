"""
Utility helper functions.
"""
from typing import List, Dict


def dedupe_sources(chunks: List[Dict]) -> List[Dict]:
    """
    Deduplicate source documents from retrieved chunks.

    For each document keeps the closest chunk and a preview of its text.
    Returns sources sorted by distance (ascending).

    Example:
        >>> chunks = [
        ...     {"source_document_name": "doc1.txt", "distance": 0.2, "chunk_text": "Long text..."},
        ...     {"source_document_name": "doc1.txt", "distance": 0.4, "chunk_text": "Other text..."},
        ...     {"source_document_name": "doc2.txt", "distance": 0.3, "chunk_text": "More text..."}
        ... ]
        >>> dedupe_sources(chunks)
        [
            {"name": "doc1.txt", "distance": 0.2, "preview": "Long text..."},
            {"name": "doc2.txt", "distance": 0.3, "preview": "More text..."}
        ]
    """
    source_map = {}

    for chunk in chunks:
        name = chunk["source_document_name"]
        distance = float(chunk["distance"])
        if name not in source_map or distance < source_map[name]["distance"]:
            source_map[name] = {"distance": distance, "content": chunk.get("chunk_text", "")}

    sources = []
    for name, data in sorted(source_map.items(), key=lambda x: x[1]["distance"]):
        preview = data["content"][:200].strip()
        if len(data["content"]) > 200:
            preview += "..."
        sources.append({
            "name": name,
            "distance": round(data["distance"], 3),
            "preview": preview,
        })

    return sources
