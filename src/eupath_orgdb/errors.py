"""Exception hierarchy for annotation pipeline failures."""

from pathlib import Path


class AnnotationPipelineError(Exception):
    """Base class for all pipeline errors."""


class ParseError(AnnotationPipelineError):
    """Malformed input line or table.

    Attributes:
        source: Name of the file or stream being parsed
        line_number: 1-based line number of the offending line (None if unknown)
        line: Raw text of the offending line (None if unknown)
    """

    def __init__(
        self,
        message: str,
        source: str | Path | None = None,
        line_number: int | None = None,
        line: str | None = None,
    ):
        self.source = str(source) if source is not None else None
        self.line_number = line_number
        self.line = line
        location = ""
        if self.source is not None:
            location = self.source
            if line_number is not None:
                location += f":{line_number}"
            location += ": "
        super().__init__(f"{location}{message}")
        self.message = message


class FetchError(AnnotationPipelineError):
    """Network or remote API failure after retries were exhausted."""

    def __init__(
        self,
        message: str,
        organism: str | None = None,
        url: str | None = None,
    ):
        self.organism = organism
        self.url = url
        prefix = f"[{organism}] " if organism else ""
        super().__init__(f"{prefix}{message}")


class UnmappableIdentifier(AnnotationPipelineError):
    """Foreign identifier that no normalization rule can rewrite."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"No normalization rule maps identifier: {identifier}")


class MissingPrimarySource(AnnotationPipelineError):
    """Primary gene source (GFF) is absent or contains no genes."""
