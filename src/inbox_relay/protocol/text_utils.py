"""
Text processing utilities for item context.

Email bodies can be arbitrarily large; the oracle only ever sees a bounded
context, cut on a sentence or word boundary where one is close to the limit.
"""

import re

TRUNCATION_MARKER = "\n...[truncated]"


def truncate_at_sentence_boundary(text: str, max_chars: int) -> str:
    """
    Truncate text at the nearest sentence boundary before max_chars.

    Looks for sentence-ending punctuation (. ! ?) followed by whitespace or end.
    Falls back to the last space if it is within 80% of the limit, then to a
    hard cut.

    Examples:
        >>> truncate_at_sentence_boundary("Hello. World. Test.", 15)
        'Hello. World.'
    """
    if len(text) <= max_chars:
        return text

    truncated_segment = text[:max_chars]

    matches = list(re.finditer(r'[.!?](?:\s|$)', truncated_segment))
    if matches:
        cutoff = matches[-1].end()
        if truncated_segment[cutoff - 1:cutoff].isspace():
            cutoff -= 1
        return text[:cutoff]

    last_space = truncated_segment.rfind(' ')
    if last_space > max_chars * 0.8:
        return text[:last_space]

    return text[:max_chars]


def bound_context(text: str | None, max_chars: int) -> str:
    """
    Bound an item context to max_chars, marker included.

    Text within the limit is returned unchanged (minus surrounding
    whitespace); longer text is truncated and suffixed with TRUNCATION_MARKER.
    """
    text = (text or "").strip()
    if len(text) <= max_chars:
        return text

    if max_chars <= len(TRUNCATION_MARKER):
        return text[:max_chars]

    room = max_chars - len(TRUNCATION_MARKER)
    return truncate_at_sentence_boundary(text, room).rstrip() + TRUNCATION_MARKER
