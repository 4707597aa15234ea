"""Client for the KEGG REST API (https://www.kegg.jp/kegg/rest/keggapi.html)."""

import logging

import requests

from eupath_orgdb.api_clients.base import CachedAPIClient
from eupath_orgdb.config.schema import PipelineConfig
from eupath_orgdb.errors import FetchError
from eupath_orgdb.evidence.kegg.models import PathwayRecord

logger = logging.getLogger(__name__)

# Width of the key column in KEGG flat-file entries
KEGG_KEY_WIDTH = 12


def parse_link_response(text: str) -> list[tuple[str, str]]:
    """Parse a tab-delimited ``/link`` response into (source, target) pairs."""
    pairs = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        fields = line.split("\t")
        if len(fields) != 2:
            logger.warning(f"Skipping malformed KEGG link line: {line!r}")
            continue
        pairs.append((fields[0], fields[1]))
    return pairs


def parse_flat_entry(text: str) -> dict[str, list[str]]:
    """Parse a KEGG flat-file entry into a key -> value lines mapping.

    Keys occupy the first 12 columns; lines starting with whitespace continue
    the previous key. Parsing stops at the ``///`` terminator.
    """
    entry: dict[str, list[str]] = {}
    key = None
    for line in text.splitlines():
        if line.startswith("///"):
            break
        if not line.strip():
            continue
        head = line[:KEGG_KEY_WIDTH]
        value = line[KEGG_KEY_WIDTH:].strip()
        if head.strip():
            key = head.strip()
            entry.setdefault(key, []).append(value)
        elif key is not None:
            entry[key].append(value)
    return entry


def pathway_from_entry(pathway_id: str, entry: dict[str, list[str]]) -> PathwayRecord:
    """Build a PathwayRecord from a parsed flat-file entry.

    The pathway name is taken from the PATHWAY_MAP line (the text following
    the map identifier), falling back to NAME.
    """
    name = ""
    pathway_map = entry.get("PATHWAY_MAP")
    if pathway_map:
        parts = pathway_map[0].split(None, 1)
        name = parts[1].strip() if len(parts) > 1 else ""
    if not name and entry.get("NAME"):
        name = entry["NAME"][0]

    return PathwayRecord(
        pathway=pathway_id,
        name=name,
        pathway_class=" ".join(entry.get("CLASS", [])),
        description=" ".join(entry.get("DESCRIPTION", [])),
    )


class KEGGClient:
    """Fetches pathway membership and metadata for a KEGG organism."""

    def __init__(self, api: CachedAPIClient, base_url: str = "https://rest.kegg.jp"):
        self.api = api
        self.base_url = base_url.rstrip("/")

    def _get(self, path: str, organism: str | None = None) -> str:
        url = f"{self.base_url}/{path}"
        try:
            return self.api.get_text(url)
        except requests.RequestException as e:
            raise FetchError(f"KEGG request failed: {e}", organism=organism, url=url) from e

    def list_pathways(self, organism_code: str) -> list[str]:
        """Return the unique pathway IDs (e.g. 'path:lma00010') for an organism."""
        text = self._get(f"link/pathway/{organism_code}", organism=organism_code)
        pathways = []
        seen = set()
        for _, pathway in parse_link_response(text):
            if pathway not in seen:
                seen.add(pathway)
                pathways.append(pathway)
        logger.info(f"KEGG lists {len(pathways)} pathways for {organism_code}")
        return pathways

    def get_pathway(self, pathway_id: str) -> PathwayRecord:
        """Fetch pathway metadata (name, class, description)."""
        text = self._get(f"get/{pathway_id}")
        entry = parse_flat_entry(text)
        if not entry:
            raise FetchError(f"Empty KEGG entry for {pathway_id}")
        return pathway_from_entry(pathway_id, entry)

    def pathway_genes(self, organism_code: str, pathway_id: str) -> list[str]:
        """Return KEGG gene IDs (e.g. 'lma:LMJF_11_0100') linked to a pathway."""
        text = self._get(f"link/{organism_code}/{pathway_id}", organism=organism_code)
        return [gene for _, gene in parse_link_response(text)]

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        api: CachedAPIClient | None = None,
    ) -> "KEGGClient":
        """Create client from pipeline configuration."""
        return cls(
            api=api or CachedAPIClient.from_config(config),
            base_url=config.provider.kegg_url,
        )
