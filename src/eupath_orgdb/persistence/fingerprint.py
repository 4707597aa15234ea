"""Content fingerprints used as stage cache keys."""

import hashlib
import json
from pathlib import Path

# Bump a stage's version when its output for the same inputs changes
STAGE_VERSIONS = {
    "gene_info": 1,
    "chromosome": 1,
    "gene_type": 1,
    "go": 1,
    "interpro": 1,
    "kegg_mapping": 1,
    "kegg_pathways": 1,
}

_CHUNK_SIZE = 1 << 20


def file_fingerprint(path: Path) -> str:
    """SHA-256 of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def stage_fingerprint(stage: str, inputs: dict) -> str:
    """Combine a stage's name and version with its input identities.

    Args:
        stage: Stage name (must be a key of STAGE_VERSIONS)
        inputs: JSON-serializable description of the inputs, e.g. file
            content hashes, remote query identity and data source versions

    Returns:
        Hex SHA-256 digest
    """
    payload = {
        "stage": stage,
        "stage_version": STAGE_VERSIONS[stage],
        "inputs": inputs,
    }
    encoded = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
