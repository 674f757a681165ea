"""
simplehttp - a thin convenience layer over requests

Persistent headers and authentication, custom TLS trust, query-string
building and JSON helpers for talking to a single HTTP server.
"""

from .config import Config
from .exceptions import (
    CertificateError,
    ConfigurationError,
    DecodeError,
    RequestError,
    SimpleHttpError,
    StatusError,
    TransportError,
)
from .http_client import FormBody, HttpClient, JsonBody, Payload, RawBody
from .query import (
    QueryParam,
    build_url,
    params_from_dataclass,
    query_param,
    str_param,
    time_param,
    uint_param,
)

__all__ = [
    "CertificateError",
    "Config",
    "ConfigurationError",
    "DecodeError",
    "FormBody",
    "HttpClient",
    "JsonBody",
    "Payload",
    "QueryParam",
    "RawBody",
    "RequestError",
    "SimpleHttpError",
    "StatusError",
    "TransportError",
    "build_url",
    "params_from_dataclass",
    "query_param",
    "str_param",
    "time_param",
    "uint_param",
]
