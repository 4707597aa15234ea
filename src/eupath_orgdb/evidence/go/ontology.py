"""GO ontology loading for synonym resolution.

Only what is needed to map annotations onto current primary terms is read
from the OBO file: term IDs, their ``alt_id`` synonyms and obsolete flags.
"""

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from eupath_orgdb.parsing.report import open_report

logger = structlog.get_logger()


@dataclass
class GeneOntology:
    """Primary GO terms plus the alternate IDs that resolve to them.

    Attributes:
        terms: Current (non-obsolete) primary term IDs
        synonyms: Alternate ID -> primary ID
        obsolete: Obsolete term IDs
    """
    terms: set[str] = field(default_factory=set)
    synonyms: dict[str, str] = field(default_factory=dict)
    obsolete: set[str] = field(default_factory=set)

    def resolve(self, go_id: str) -> str | None:
        """Return the primary ID for a term, or None if obsolete or unknown."""
        if go_id in self.terms:
            return go_id
        return self.synonyms.get(go_id)


def load_obo(path: Path | str) -> GeneOntology:
    """Parse ``[Term]`` stanzas of an OBO file (plain or gzipped)."""
    path = Path(path)
    ontology = GeneOntology()

    def _finish(stanza: dict) -> None:
        term_id = stanza.get("id")
        if not term_id:
            return
        if stanza.get("is_obsolete"):
            ontology.obsolete.add(term_id)
            return
        ontology.terms.add(term_id)
        for alt_id in stanza.get("alt_id", []):
            ontology.synonyms[alt_id] = term_id

    current: dict = {}
    in_term = False
    with open_report(path) as fp:
        for raw in fp:
            line = raw.strip()
            if line.startswith("["):
                if in_term:
                    _finish(current)
                current = {}
                in_term = line == "[Term]"
                continue
            if not in_term or not line:
                continue
            if line.startswith("id:"):
                current["id"] = line.split("id:", 1)[1].strip()
            elif line.startswith("alt_id:"):
                current.setdefault("alt_id", []).append(line.split("alt_id:", 1)[1].strip())
            elif line.startswith("is_obsolete:"):
                current["is_obsolete"] = line.split("is_obsolete:", 1)[1].strip() == "true"
    if in_term:
        _finish(current)

    logger.info(
        "go_ontology_loaded",
        path=str(path),
        terms=len(ontology.terms),
        synonyms=len(ontology.synonyms),
        obsolete=len(ontology.obsolete),
    )
    return ontology
