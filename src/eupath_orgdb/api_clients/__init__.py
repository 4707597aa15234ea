"""HTTP clients for EuPathDB, KEGG and release file downloads."""

from eupath_orgdb.api_clients.base import CachedAPIClient
from eupath_orgdb.api_clients.download import download_source
from eupath_orgdb.api_clients.eupathdb import EuPathDBClient
from eupath_orgdb.api_clients.kegg import KEGGClient

__all__ = [
    "CachedAPIClient",
    "EuPathDBClient",
    "KEGGClient",
    "download_source",
]
