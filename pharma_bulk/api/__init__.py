from pharma_bulk.api.client import ApiClient, ApiError, BulkCreateResponse, parse_bulk_response
from pharma_bulk.api.session import SessionContext

__all__ = [
    "ApiClient",
    "ApiError",
    "BulkCreateResponse",
    "SessionContext",
    "parse_bulk_response",
]
