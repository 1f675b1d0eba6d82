"""Selection strategies.

A selector decides which resolved entries get installed. The pipeline
only sees the resulting Selection, so interactive and headless runs
share everything else.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

import typer

from extpack.models.catalog import CatalogEntry, Selection
from extpack.utils.formatting import console, create_entries_table, print_error

logger = logging.getLogger(__name__)


class Selector(ABC):
    """Abstract base class for selection strategies."""

    @abstractmethod
    def choose(self, entries: Sequence[CatalogEntry]) -> Selection:
        """Pick the entries to install.

        Args:
            entries: Resolved catalog entries.

        Returns:
            Selection; ``confirmed`` is False if the operator cancelled.
        """


class SelectAll(Selector):
    """Non-interactive selector accepting every entry."""

    def choose(self, entries: Sequence[CatalogEntry]) -> Selection:
        return Selection(confirmed=True, identifiers=tuple(e.identifier for e in entries))


class SelectIdentifiers(Selector):
    """Non-interactive selector accepting a fixed set of identifiers.

    Identifiers that were not resolved are ignored.
    """

    def __init__(self, identifiers: Iterable[str]) -> None:
        self.identifiers = [identifier.strip() for identifier in identifiers if identifier.strip()]

    def choose(self, entries: Sequence[CatalogEntry]) -> Selection:
        wanted = {identifier.casefold() for identifier in self.identifiers}
        chosen = tuple(e.identifier for e in entries if e.identifier.casefold() in wanted)
        ignored = len(wanted) - len(chosen)
        if ignored:
            logger.info("%d requested identifier(s) were not resolved", ignored)
        return Selection(confirmed=True, identifiers=chosen)


def parse_selection(answer: str, count: int) -> list[int]:
    """Parse an operator's answer into zero-based entry indexes.

    Accepts ``all`` (or an empty answer), ``none``, and numbers or
    ranges like ``1-3`` separated by commas or spaces.

    Args:
        answer: Raw answer.
        count: Number of entries offered.

    Returns:
        Sorted, de-duplicated zero-based indexes.

    Raises:
        ValueError: If the answer contains an invalid token or out-of-range number.
    """
    text = answer.strip().lower()
    if text in ("", "all", "*"):
        return list(range(count))
    if text == "none":
        return []

    indexes: set[int] = set()
    for token in re.split(r"[,\s]+", text):
        if not token:
            continue
        match = re.fullmatch(r"(\d+)(?:-(\d+))?", token)
        if match is None:
            msg = f"Invalid selection: {token!r}"
            raise ValueError(msg)
        start = int(match.group(1))
        end = int(match.group(2) or start)
        if start > end:
            start, end = end, start
        if start < 1 or end > count:
            msg = f"Selection out of range: {token} (1-{count})"
            raise ValueError(msg)
        indexes.update(range(start - 1, end))
    return sorted(indexes)


class InteractiveSelector(Selector):
    """Selector asking the operator on the terminal.

    Shows a numbered table of entries, asks which ones to install and
    asks for a final confirmation. Declining or aborting (Ctrl-C)
    cancels the selection.
    """

    def choose(self, entries: Sequence[CatalogEntry]) -> Selection:
        try:
            return self._choose(entries)
        except typer.Abort:
            logger.debug("Selection aborted by operator")
            return Selection.cancelled()

    def _choose(self, entries: Sequence[CatalogEntry]) -> Selection:
        indexes: list[int] = []
        if entries:
            console.print(create_entries_table(entries, title="Available Extensions", numbered=True))
            while True:
                answer = typer.prompt(
                    "Extensions to install (numbers, ranges, 'all' or 'none')",
                    default="all",
                )
                try:
                    indexes = parse_selection(answer, len(entries))
                    break
                except ValueError as e:
                    print_error(str(e))

        chosen = tuple(entries[i].identifier for i in indexes)
        if not typer.confirm(f"Install {len(chosen)} extension(s)?", default=True):
            return Selection.cancelled()
        return Selection(confirmed=True, identifiers=chosen)
