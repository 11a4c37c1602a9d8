"""Document store layer — Pluggable backends holding the documents.

Built-in stores:
  - elasticsearch: Elasticsearch REST API over httpx
  - opensearch: OpenSearch v2+ via opensearch-py (optional extra)
  - memory: in-process store with the same versioning rules

Implement ``DocumentStore`` to connect your own backend.
"""
