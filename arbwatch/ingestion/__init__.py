from .odds_api import (
    OddsApiClient,
    OddsProvider,
    OddsQuery,
    client_from_settings,
    parse_credit_headers,
    parse_event,
)
from .service import IngestionResult, IngestionService

__all__ = [
    "OddsApiClient",
    "OddsProvider",
    "OddsQuery",
    "client_from_settings",
    "parse_credit_headers",
    "parse_event",
    "IngestionResult",
    "IngestionService",
]
