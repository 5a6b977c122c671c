"""
Overlapping text chunker.

Chunks are exact slices of the source text: chunk ``i+1`` starts
``overlap`` characters before chunk ``i`` ends, so ``join_chunks`` gives the
original text back. Cut points prefer natural boundaries in the second half
of the window before falling back to a hard cut at ``max_chars``.
"""
from typing import List, Sequence

# Tried in order; the cut lands just after the separator
BOUNDARIES = ("\n\n", "\n", ". ", " ")


def _find_cut(text: str, start: int, end: int, overlap: int, max_chars: int) -> int:
    # never cut inside the overlap, otherwise the next chunk would not advance
    lo = start + max(overlap + 1, max_chars // 2)
    for sep in BOUNDARIES:
        k = text.rfind(sep, lo, end)
        if k != -1:
            return k + len(sep)
    return end


def split_text(text: str, max_chars: int = 1000, overlap: int = 100) -> List[str]:
    """
    Split text into chunks of at most ``max_chars`` characters with
    ``overlap`` characters shared between consecutive chunks.

    Text no longer than ``max_chars`` comes back as a single chunk.
    """
    if not text:
        raise ValueError("Cannot chunk empty text")
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if overlap < 0 or overlap >= max_chars:
        raise ValueError("overlap must be in [0, max_chars)")

    n = len(text)
    if n <= max_chars:
        return [text]

    chunks = []
    start = 0
    while True:
        end = start + max_chars
        if end >= n:
            chunks.append(text[start:])
            break
        cut = _find_cut(text, start, end, overlap, max_chars)
        chunks.append(text[start:cut])
        start = cut - overlap
    return chunks


def join_chunks(chunks: Sequence[str], overlap: int) -> str:
    """Inverse of ``split_text``: drop the leading overlap of every chunk after the first."""
    if not chunks:
        return ""
    return chunks[0] + "".join(c[overlap:] for c in chunks[1:])
