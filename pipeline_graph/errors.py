"""Exceptions raised to callers of the reconstruction API."""

from __future__ import annotations


class NotFoundError(KeyError):
    """An explicitly requested run, stage or node does not exist."""

    def __init__(self, kind: str, ident: str):
        self.kind = kind
        self.ident = ident
        super().__init__(f"Unknown {kind}: {ident}")

    def __str__(self) -> str:
        return self.args[0]
