"""FastAPI application exposing the RAG pipeline as a REST API."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from atlas_rag.config import get_settings
from atlas_rag.serving.schemas import (
    CreateIndexRequest,
    IndexResponse,
    IngestRequest,
    IngestResponse,
    OperationResult,
    QueryRequest,
    QueryResponse,
    StatsRequest,
    StatsResponse,
)
from atlas_rag.serving.service import RagService

# Failures are still returned as structured bodies; the status code only
# mirrors their category.
_STATUS_BY_ERROR_TYPE = {
    "configuration_error": 400,
    "unsupported_format": 400,
    "index_permission_error": 403,
    "dimension_mismatch": 409,
    "embedding_provider_error": 502,
    "completion_provider_error": 502,
}


def _respond(result: OperationResult) -> JSONResponse:
    status_code = 200 if result.success else _STATUS_BY_ERROR_TYPE.get(result.error_type or "", 500)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json", by_alias=True))


def get_service(request: Request) -> RagService:
    return request.app.state.service


def create_app(service: RagService | None = None) -> FastAPI:
    """Build the application around *service* (default: from environment settings)."""
    app = FastAPI(
        title="Atlas RAG API",
        version="0.1.0",
        description="Ingest documents into MongoDB Atlas Vector Search and ask questions about them.",
    )
    app.state.service = service or RagService(get_settings())

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check."""
        return {"status": "ok"}

    # Sync handlers: FastAPI runs them in its thread pool.
    @app.post("/api/create-vector-index", response_model=IndexResponse)
    def create_vector_index(
        body: CreateIndexRequest, svc: RagService = Depends(get_service)
    ) -> JSONResponse:
        """Create (or reset) the collection and its vector search index."""
        return _respond(svc.create_or_reset_index(body))

    @app.post("/api/process-documents", response_model=IngestResponse)
    def process_documents(body: IngestRequest, svc: RagService = Depends(get_service)) -> JSONResponse:
        """Extract, chunk, embed and store a batch of uploaded files."""
        return _respond(svc.ingest_documents(body))

    @app.post("/api/query-documents", response_model=QueryResponse)
    def query_documents(body: QueryRequest, svc: RagService = Depends(get_service)) -> JSONResponse:
        """Retrieve cited context for a question and synthesize an answer."""
        return _respond(svc.query_documents(body))

    @app.post("/api/get-collection-stats", response_model=StatsResponse)
    def get_collection_stats(body: StatsRequest, svc: RagService = Depends(get_service)) -> JSONResponse:
        """Summarize what the collection holds."""
        return _respond(svc.get_collection_stats(body))

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
