"""Error taxonomy shared by the ingestion and query pipelines.

Every error carries a stable ``error_type`` so the service layer can turn
it into a structured failure without inspecting class names.
"""

from __future__ import annotations


class RagError(Exception):
    """Base class for all pipeline errors."""

    error_type = "rag_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RagError):
    """Missing or malformed connection string, credentials or names."""

    error_type = "configuration_error"


class UnsupportedFormatError(RagError):
    error_type = "unsupported_format"

    def __init__(self, filename: str, extension: str) -> None:
        shown = extension or "(none)"
        super().__init__(f"Unsupported file type {shown!r} for {filename}")
        self.filename = filename
        self.extension = extension


class ExtractionFailure(RagError):
    """An extractor raised on a supported format."""

    error_type = "extraction_failure"

    def __init__(self, filename: str, cause: BaseException) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.filename = filename
        self.cause = cause


class _ProviderError(RagError):
    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        status = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{provider} API error{status}: {message}")
        self.provider = provider
        self.status_code = status_code
        self.provider_message = message


class EmbeddingProviderError(_ProviderError):
    error_type = "embedding_provider_error"


class CompletionProviderError(_ProviderError):
    error_type = "completion_provider_error"


class DimensionMismatchError(RagError):
    """Stored vector length disagrees with the active provider's output length."""

    error_type = "dimension_mismatch"

    def __init__(self, *, expected: int, actual: int, field_path: str) -> None:
        super().__init__(
            f"Collection vectors in {field_path!r} have {expected} dimensions but the "
            f"configured embedding provider produces {actual}. Switch back to the original "
            "provider or reset the collection."
        )
        self.expected = expected
        self.actual = actual
        self.field_path = field_path


class VectorStoreError(RagError):
    error_type = "vector_store_error"


class IndexPermissionError(VectorStoreError):
    """The store refused to create a search index for lack of privilege."""

    error_type = "index_permission_error"
