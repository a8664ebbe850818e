"""
Serving — the four public operations and their FastAPI front end.

:class:`~atlas_rag.serving.service.RagService` implements index management,
ingestion, querying and collection stats; :mod:`atlas_rag.serving.app`
exposes it over HTTP.
"""
