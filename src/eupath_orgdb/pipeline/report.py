"""Structured record of what happened during an organism build."""

from dataclasses import dataclass, field

from eupath_orgdb.errors import ParseError

# How many example IDs a warning carries
MAX_EXAMPLES = 5


@dataclass
class JoinMismatch:
    """Rows of a secondary table whose GID is not in the primary gene set.

    Attributes:
        table: Table the rows were dropped from
        dropped: Number of dropped rows
        examples: A few of the offending GIDs
    """
    table: str
    dropped: int
    examples: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"{self.table}: dropped {self.dropped} rows with GIDs absent from "
            f"the primary gene set (e.g. {', '.join(self.examples)})"
        )


@dataclass
class RunReport:
    """Warnings collected while building one organism's tables.

    Attributes:
        organism: Organism name
        stage_sources: stage -> computed | cached | partial | degraded | skipped
        degraded: table or source -> reason it is empty or incomplete
        join_mismatches: Rows dropped at final assembly, per table
        unmapped: table -> foreign IDs that could not be normalized
        malformed: Input lines dropped by lenient parsing
        warnings: Other free-text warnings
    """
    organism: str
    stage_sources: dict[str, str] = field(default_factory=dict)
    degraded: dict[str, str] = field(default_factory=dict)
    join_mismatches: list[JoinMismatch] = field(default_factory=list)
    unmapped: dict[str, list[str]] = field(default_factory=dict)
    malformed: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def degrade(self, name: str, reason: str) -> None:
        self.degraded[name] = reason

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    @property
    def has_warnings(self) -> bool:
        return bool(
            self.degraded
            or self.join_mismatches
            or self.unmapped
            or self.malformed
            or self.warnings
        )

    def summary(self) -> str:
        """Human-readable multi-line summary."""
        lines = [f"Organism: {self.organism}"]
        for stage, source in self.stage_sources.items():
            lines.append(f"  {stage}: {source}")
        for name, reason in self.degraded.items():
            lines.append(f"  DEGRADED {name}: {reason}")
        for mismatch in self.join_mismatches:
            lines.append(f"  JOIN MISMATCH {mismatch}")
        for table, ids in self.unmapped.items():
            lines.append(
                f"  UNMAPPED {table}: {len(ids)} identifiers "
                f"(e.g. {', '.join(ids[:MAX_EXAMPLES])})"
            )
        if self.malformed:
            lines.append(f"  MALFORMED: {len(self.malformed)} lines dropped")
            for error in self.malformed[:MAX_EXAMPLES]:
                lines.append(f"    {error}")
        for message in self.warnings:
            lines.append(f"  WARNING {message}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Plain-data form for the provenance sidecar."""
        return {
            "organism": self.organism,
            "stage_sources": dict(self.stage_sources),
            "degraded": dict(self.degraded),
            "join_mismatches": [
                {"table": m.table, "dropped": m.dropped, "examples": list(m.examples)}
                for m in self.join_mismatches
            ],
            "unmapped": {table: len(ids) for table, ids in self.unmapped.items()},
            "malformed_lines": [str(e) for e in self.malformed],
            "warnings": list(self.warnings),
        }
