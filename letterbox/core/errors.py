"""Helpers for reporting exception cause chains in logs."""

from __future__ import annotations


def iter_error_chain(exc: BaseException) -> list[BaseException]:
    """Return ``exc`` followed by each explicit or implicit cause."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def format_error_chain(exc: BaseException) -> str:
    """
    Render an exception and its causes, outermost first.

    Example:
        Failed to insert new subscriber in the database

        Caused by:
            database is locked
    """
    chain = iter_error_chain(exc)
    lines = [str(exc) or type(exc).__name__]
    if len(chain) > 1:
        lines.append("")
        lines.append("Caused by:")
        for cause in chain[1:]:
            lines.append(f"\t{type(cause).__name__}: {cause}")
    return "\n".join(lines)
