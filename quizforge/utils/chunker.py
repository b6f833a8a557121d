"""
Split extracted document text into bounded chunks for LLM prompts
"""
import re
from typing import Iterator, List, Tuple

# Blank line, or sentence-ending punctuation followed by whitespace
_BOUNDARY = re.compile(r"\n\s*\n\s*|(?<=[.!?])\s+")


def split_units(text: str) -> List[Tuple[str, str]]:
    """
    Split text into (unit, separator) pairs

    The separator is all whitespace between a unit and the next one in the
    source text; the last unit has an empty separator.
    """
    units = []
    pos = 0
    for match in _BOUNDARY.finditer(text):
        piece = text[pos:match.start()]
        unit = piece.strip()
        trailing = piece[len(piece.rstrip()):]
        pos = match.end()
        if not unit:
            if units:
                last, sep = units[-1]
                units[-1] = (last, sep + piece + match.group())
            continue
        units.append((unit, trailing + match.group()))

    tail = text[pos:].strip()
    if tail:
        units.append((tail, ""))
    return units


def chunk_text(text: str, max_chunk_size: int) -> Iterator[str]:
    """
    Greedily pack boundary-delimited units into chunks of at most
    ``max_chunk_size`` characters

    Units keep their original order and the separator between two units of
    the same chunk is kept verbatim. A unit longer than the budget on its own
    becomes a single oversized chunk; units are never split.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")

    current = ""
    pending_sep = ""

    for unit, sep in split_units(text or ""):
        if not current:
            current = unit
        elif len(current) + len(pending_sep) + len(unit) > max_chunk_size:
            yield current
            current = unit
        else:
            current = current + pending_sep + unit
        pending_sep = sep

    if current:
        yield current
