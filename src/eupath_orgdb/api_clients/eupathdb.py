"""Client for the EuPathDB gene query web services.

See http://tritrypdb.org/tritrypdb/serviceList.jsp for the service list.
"""

import logging
from typing import Any
from urllib.parse import quote

import requests

from eupath_orgdb.api_clients.base import CachedAPIClient
from eupath_orgdb.config.schema import PipelineConfig
from eupath_orgdb.errors import FetchError

logger = logging.getLogger(__name__)

# Longest query URL written to the log before truncation
MAX_LOGGED_URL = 160


class EuPathDBClient:
    """Queries EuPathDB GeneQuestions services and unwraps the record set."""

    def __init__(
        self,
        api: CachedAPIClient,
        base_url: str,
        gene_service: str = "webservices/GeneQuestions/GenesByTaxonGene.json",
        gene_type_service: str = "webservices/GeneQuestions/GenesByTaxon.json",
    ):
        self.api = api
        self.base_url = base_url.rstrip("/")
        self.gene_service = gene_service
        self.gene_type_service = gene_type_service

    def build_query_url(
        self,
        organism: str,
        query_args: str,
        service: str | None = None,
    ) -> str:
        """Construct a query URL for an organism.

        The organism name is percent-encoded with reserved characters
        escaped (spaces become %20, not '+').

        Args:
            organism: Full organism name (e.g. "Leishmania major strain Friedlin")
            query_args: Additional pre-encoded query arguments (e.g. "o-tables=GOTerms")
            service: Service path relative to the base URL (default: gene service)

        Returns:
            Complete request URL
        """
        service = service or self.gene_service
        encoded = quote(organism, safe="")
        return f"{self.base_url}/{service}?organism={encoded}&{query_args}"

    def query(
        self,
        organism: str,
        query_args: str,
        service: str | None = None,
    ) -> dict[str, Any]:
        """Run a query and return the decoded JSON document.

        Raises:
            FetchError: On network failure after retries, HTTP error or
                undecodable response
        """
        url = self.build_query_url(organism, query_args, service)
        log_url = url if len(url) <= MAX_LOGGED_URL else url[:MAX_LOGGED_URL] + "..."
        logger.info(f"Querying {log_url}")

        try:
            return self.api.get_json(url)
        except requests.RequestException as e:
            raise FetchError(f"EuPathDB query failed: {e}", organism=organism, url=url) from e
        except ValueError as e:
            raise FetchError(
                f"EuPathDB returned invalid JSON: {e}", organism=organism, url=url
            ) from e

    def fetch_records(
        self,
        organism: str,
        query_args: str,
        service: str | None = None,
    ) -> list[dict[str, Any]]:
        """Run a query and return ``response.recordset.records``.

        Raises:
            FetchError: If the request fails or the document lacks a record set
        """
        document = self.query(organism, query_args, service)
        try:
            records = document["response"]["recordset"]["records"]
        except (KeyError, TypeError) as e:
            raise FetchError(
                f"EuPathDB response has no record set (missing {e})",
                organism=organism,
            ) from e

        if records is None:
            return []
        logger.info(f"Retrieved {len(records)} records for {organism}")
        return list(records)

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        api: CachedAPIClient | None = None,
    ) -> "EuPathDBClient":
        """Create client from pipeline configuration."""
        return cls(
            api=api or CachedAPIClient.from_config(config),
            base_url=config.provider.eupathdb_url,
            gene_service=config.provider.gene_service,
            gene_type_service=config.provider.gene_type_service,
        )
