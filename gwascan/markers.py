"""Small helpers for rewriting allele and marker labels."""

from __future__ import annotations


def replace_slash(text: str) -> str:
    """Replace every ``/`` in ``text`` with a space."""
    return text.replace("/", " ")


def replace_arrow(text: str) -> str:
    """Replace the first ``->`` in ``text`` with a space."""
    return text.replace("->", " ", 1)