"""Paragraph-aware text chunking for retrieval and indexing."""
import re
from typing import List, Tuple

from ..utils.exceptions import EmptyInputError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _paragraph_spans(text: str) -> List[Tuple[int, int]]:
    # Each paragraph keeps its trailing blank-line separator, so the spans tile the text.
    spans = []
    start = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        spans.append((start, match.end()))
        start = match.end()
    if start < len(text):
        spans.append((start, len(text)))
    return spans


def _split_point(buffer: str, chunk_size: int, overlap: int) -> int:
    """Where to cut an oversized buffer: after the last sentence, else after the last space, else hard."""
    floor = max(chunk_size // 2, overlap)
    sentence = buffer.rfind(". ", 0, chunk_size)
    if sentence != -1 and sentence + 2 > floor:
        return sentence + 2
    space = buffer.rfind(" ", 0, chunk_size)
    if space != -1 and space + 1 > floor:
        return space + 1
    return chunk_size


def chunk_spans(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE,
                overlap: int = DEFAULT_OVERLAP) -> List[Tuple[int, int]]:
    """
    Computes chunk boundaries as (start, end) offsets into ``text``.

    Chunk i+1 starts ``min(overlap, len(chunk i))`` characters before chunk i
    ends, so dropping that prefix from every chunk after the first and joining
    the rest gives back ``text`` exactly.

    Raises:
        EmptyInputError: If text is empty or whitespace only.
        ValueError: If chunk_size/overlap cannot make progress.
    """
    if not text or not text.strip():
        raise EmptyInputError("Cannot chunk empty text")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(f"overlap must be in [0, chunk_size), got {overlap} for chunk_size {chunk_size}")

    spans: List[Tuple[int, int]] = []
    start = end = 0
    for piece_start, piece_end in _paragraph_spans(text):
        if end > start and (end - start) + (piece_end - piece_start) > chunk_size:
            spans.append((start, end))
            start = end - min(overlap, end - start)
        end = piece_end

        while end - start > chunk_size:
            cut = _split_point(text[start:end], chunk_size, overlap)
            spans.append((start, start + cut))
            start = start + cut - overlap

    if end > start:
        spans.append((start, end))
    return spans


def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP) -> List[str]:
    """Splits text into overlapping chunks of at most ``chunk_size`` characters."""
    return [text[start:end] for start, end in chunk_spans(text, chunk_size, overlap)]
