"""Identifier to wire-name conversion and separator-insensitive normalization."""

from __future__ import annotations

SEPARATORS = ("_", "-", " ", ".")


def to_wire_name(identifier: str) -> str:
    """Convert an identifier to its lowercase, ``_``-separated wire name.

    A separator goes before an uppercase letter (never the first one) when the
    previous character is lowercase or a digit, or when the next character is
    lowercase. Acronym runs stay together: ``UserID`` -> ``user_id``,
    ``HTTPServer`` -> ``http_server``.
    """
    out: list[str] = []
    last = len(identifier) - 1
    for i, ch in enumerate(identifier):
        if ch.isupper() and i > 0:
            prev = identifier[i - 1]
            nxt = identifier[i + 1] if i < last else ""
            after_word = prev.islower() or prev.isdigit()
            starts_word = nxt.islower() and prev not in SEPARATORS
            if after_word or starts_word:
                out.append("_")
        out.append(ch.lower())
    return "".join(out)


def normalize(name: str) -> str:
    """Lowercase *name* and drop every separator character."""
    result = name.lower()
    for sep in SEPARATORS:
        result = result.replace(sep, "")
    return result
