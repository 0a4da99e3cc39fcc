"""Sequence-token cell for one log stream."""

from __future__ import annotations


class SequenceTokenStore:
    """Holds the continuation token required for the next append.

    Only the dispatch worker writes it (one writer per stream identity), so
    there is no lock: replacing an attribute is atomic in Python.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        """Current token (None for a fresh stream)."""
        return self._token

    def set(self, token: str | None) -> None:
        """Replace the token with one returned by the service."""
        self._token = token

    def __repr__(self) -> str:
        return f"SequenceTokenStore(token={self._token!r})"
