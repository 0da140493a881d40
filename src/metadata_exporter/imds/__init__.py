from .client import METADATA_ENDPOINT, MetadataClient, MetadataResponse
from .errors import (
    AuthError,
    DecodeError,
    ExporterError,
    NotFoundError,
    ResolutionError,
    StatusError,
    TokenError,
    TransportError,
)
from .token import TOKEN_ENDPOINT, HeaderTransport, TokenProvider

__all__ = [
    "METADATA_ENDPOINT",
    "TOKEN_ENDPOINT",
    "AuthError",
    "DecodeError",
    "ExporterError",
    "HeaderTransport",
    "MetadataClient",
    "MetadataResponse",
    "NotFoundError",
    "ResolutionError",
    "StatusError",
    "TokenError",
    "TokenProvider",
    "TransportError",
]
