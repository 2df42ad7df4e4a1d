"""Elasticsearch sink.

Writes normalized documents to daily indices with the bulk API. Each
document is indexed under its generated id, so a replay overwrites the
earlier write instead of duplicating it.

Index templates, ingest pipelines and dashboards are managed elsewhere;
the writer only indexes.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any, Sequence

from elasticsearch import AsyncElasticsearch
from elasticsearch import ApiError, TransportError

from shc2es.errors import IndexingError
from shc2es.normalize.transform import NormalizedDocument

logger = logging.getLogger("shc2es.ingest.writer")


class IndexWriter:
    """Bulk writer for an Elasticsearch cluster.

    Required config keys:
        endpoint: str       - Elasticsearch URL (e.g. https://host:9200)

    Optional config keys:
        auth_user: str      - Username for basic authentication
        auth_password: str  - Password for basic authentication
        tls_verify: bool    - Verify TLS certificates (default: True)
        ca_cert: str        - Path to CA certificate file
        refresh: bool       - Refresh after each bulk request (default: False)
    """

    def __init__(self, config: dict[str, Any], client: AsyncElasticsearch | None = None):
        self.config = config
        self._client = client
        self._tls_verify = config.get("tls_verify", True)
        self._ca_cert = config.get("ca_cert", "")
        self._refresh = bool(config.get("refresh", False))

    def _build_ssl_context(self) -> ssl.SSLContext:
        """Build SSL context from configuration."""
        if not self._tls_verify:
            ctx = ssl.create_default_context()
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            return ctx

        if self._ca_cert:
            return ssl.create_default_context(cafile=self._ca_cert)

        return ssl.create_default_context()

    def _create_client(self) -> AsyncElasticsearch:
        endpoint = self.config["endpoint"]
        client_kwargs: dict[str, Any] = {
            "hosts": [endpoint],
            "request_timeout": 30,
            "retry_on_timeout": True,
            "max_retries": 3,
        }
        if str(endpoint).startswith("https://"):
            client_kwargs["ssl_context"] = self._build_ssl_context()

        auth_user = self.config.get("auth_user", "")
        auth_password = self.config.get("auth_password", "")
        if auth_user and auth_password:
            client_kwargs["basic_auth"] = (auth_user, auth_password)

        return AsyncElasticsearch(**client_kwargs)

    async def connect(self) -> str:
        """Create the client and verify the cluster answers.

        Returns the cluster version.

        Raises:
            IndexingError: If the cluster cannot be reached.
        """
        if self._client is None:
            self._client = self._create_client()
        endpoint = self.config.get("endpoint", "")
        try:
            info = await self._client.info()
        except (ApiError, TransportError) as e:
            raise IndexingError(
                f"Failed to connect to Elasticsearch at {endpoint}: {e}",
                index="",
                code="CONNECTION_FAILED",
            ) from e
        info = getattr(info, "body", info)
        version = info.get("version", {}).get("number", "unknown")
        logger.info("Connected to Elasticsearch %s at %s", version, endpoint)
        return version

    async def write(self, index: str, documents: Sequence[NormalizedDocument]) -> int:
        """Bulk index documents into one index.

        Per-document failures are logged and excluded from the returned
        count. A request that fails as a whole raises IndexingError.
        """
        if not documents:
            return 0
        if self._client is None:
            raise IndexingError("Writer is not connected", index, "NOT_CONNECTED")

        operations: list[dict[str, Any]] = []
        for doc in documents:
            operations.append({"index": {"_index": index, "_id": doc.doc_id}})
            operations.append(doc.to_source())

        try:
            resp = await self._client.bulk(operations=operations, refresh=self._refresh)
        except (ApiError, TransportError) as e:
            raise IndexingError(
                f"Bulk request to {index} failed: {e}", index, "BULK_FAILED"
            ) from e

        items = getattr(resp, "body", resp).get("items", [])
        failed = [
            item["index"]["error"]
            for item in items
            if item.get("index", {}).get("error")
        ]
        if failed:
            logger.error(
                "Failed to index %d documents to %s", len(failed), index,
                extra={"index": index, "errors": failed[:3]},
            )

        indexed = len(items) - len(failed)
        logger.info(
            "Indexed %d documents to %s", indexed, index,
            extra={"index": index, "document_count": len(documents)},
        )
        return indexed

    async def close(self) -> None:
        """Close the Elasticsearch client connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None
