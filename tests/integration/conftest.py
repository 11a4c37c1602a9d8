"""Integration test fixtures — Live search backends.

Expects backends to be running, for example::

    docker run -p 9200:9200 -e discovery.type=single-node -e xpack.security.enabled=false \
        docker.elastic.co/elasticsearch/elasticsearch:8.13.0
    docker run -p 9201:9200 -e discovery.type=single-node -e DISABLE_SECURITY_PLUGIN=true \
        opensearchproject/opensearch:2.13.0

Tests skip when a backend does not answer.
"""

from __future__ import annotations

import time

import httpx
import pytest

ELASTICSEARCH_HOST = "http://localhost:9200"
OPENSEARCH_HOST = "http://localhost:9201"


def _wait_for_service(url: str, timeout: float = 60.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=10)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(2)
    return False


@pytest.fixture(scope="session")
def elasticsearch_ready() -> str:
    """Ensure Elasticsearch is running."""
    if not _wait_for_service(ELASTICSEARCH_HOST):
        pytest.skip(f"Elasticsearch not available at {ELASTICSEARCH_HOST}")
    return ELASTICSEARCH_HOST


@pytest.fixture(scope="session")
def opensearch_ready() -> str:
    """Ensure OpenSearch is running."""
    if not _wait_for_service(OPENSEARCH_HOST):
        pytest.skip(f"OpenSearch not available at {OPENSEARCH_HOST}")
    return OPENSEARCH_HOST
