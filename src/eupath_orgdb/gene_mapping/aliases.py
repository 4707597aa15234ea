"""Alias tables mapping legacy/foreign gene identifiers to canonical GIDs.

Alias files are tab-delimited with a variable number of columns per row.
The first column is the canonical ID; the rest are alternate identifiers.
Example entries (T. brucei):

    Tb927.10.2410  TRYP_x-70a06.p2kb545_720  Tb10.70.5290
    Tb927.9.15520  Tb09.244.2520  Tb09.244.2520:mRNA
    Tb927.8.5760   Tb08.26E13.490

Which alternate columns hold usable identifiers differs per organism, so the
columns to read (and an optional value pattern) are configurable.
"""

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentifierAlias:
    """A single foreign ID -> canonical GID mapping."""
    foreign_id: str
    gid: str


class AliasTable:
    """Read-only, case-sensitive exact-match lookup of foreign IDs.

    Many foreign IDs may map to the same GID. When the same foreign ID is
    listed for two different GIDs the first mapping is kept.
    """

    def __init__(self, aliases: Iterable[IdentifierAlias] = ()):
        self._mapping: dict[str, str] = {}
        self.conflicts: list[IdentifierAlias] = []
        for alias in aliases:
            existing = self._mapping.get(alias.foreign_id)
            if existing is None:
                self._mapping[alias.foreign_id] = alias.gid
            elif existing != alias.gid:
                self.conflicts.append(alias)

        if self.conflicts:
            logger.warning(
                f"{len(self.conflicts)} aliases map to more than one GID; "
                f"kept first mapping (first conflict: {self.conflicts[0].foreign_id})"
            )

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        columns: list[int] | None = None,
        pattern: str | None = None,
    ) -> "AliasTable":
        """Load an alias file.

        Args:
            path: Tab-delimited alias file
            columns: 0-based columns holding foreign IDs (default: all after
                the first). Rows too short for a column are skipped for it.
            pattern: Regex a foreign ID must match (searched, not anchored)

        Returns:
            AliasTable built from the file
        """
        path = Path(path)
        regex = re.compile(pattern) if pattern else None

        def _aliases() -> Iterator[IdentifierAlias]:
            with open(path, "r") as f:
                for line in f:
                    row = [field.strip() for field in line.rstrip("\r\n").split("\t")]
                    if not row or not row[0]:
                        continue
                    gid = row[0]
                    indices = columns if columns is not None else range(1, len(row))
                    for idx in indices:
                        if idx >= len(row) or not row[idx]:
                            continue
                        foreign_id = row[idx]
                        if regex is not None and not regex.search(foreign_id):
                            continue
                        yield IdentifierAlias(foreign_id=foreign_id, gid=gid)

        table = cls(_aliases())
        logger.info(f"Loaded {len(table)} aliases from {path}")
        return table

    def lookup(self, foreign_id: str) -> str | None:
        """Return the canonical GID for a foreign ID, or None."""
        return self._mapping.get(foreign_id)

    def __contains__(self, foreign_id: str) -> bool:
        return foreign_id in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)
