"""
Custom exceptions for simplehttp
"""


class SimpleHttpError(Exception):
    """Base exception for all simplehttp errors"""

    pass


class ConfigurationError(SimpleHttpError):
    """
    Raised when client configuration values are missing or invalid.

    Misconfiguration is caught when the client is set up, before any request
    is sent, rather than silently falling back to defaults.
    """

    def __init__(self, message: str, config_key: str | None = None):
        self.config_key = config_key
        if config_key:
            super().__init__(f"Configuration error for '{config_key}': {message}")
        else:
            super().__init__(f"Configuration error: {message}")


class CertificateError(ConfigurationError):
    """
    Raised when a custom CA certificate cannot be parsed.

    This is a startup-time failure. The client's trust configuration is left
    as it was, and callers are not expected to recover from it.
    """

    pass


class RequestError(SimpleHttpError):
    """Base class for failures of a single HTTP request"""

    def __init__(self, message: str, method: str, url: str):
        self.method = method
        self.url = url
        super().__init__(message)


class TransportError(RequestError):
    """
    Raised when the request never produced an HTTP response.

    This includes DNS failures, refused connections and TLS handshake errors.
    The underlying requests exception is available as __cause__.
    """

    def __init__(self, method: str, url: str, reason: str):
        self.reason = reason
        super().__init__(f"{method} {url} failed: {reason}", method=method, url=url)


class StatusError(RequestError):
    """
    Raised when the server answers with a status code outside 200-299.

    The raw response body is kept so callers can read structured error
    payloads sent by the remote service.
    """

    def __init__(self, method: str, url: str, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"{method} error: {status_code}:\nBody: {body}\n", method=method, url=url
        )

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600


class DecodeError(SimpleHttpError):
    """
    Raised when a response body is not valid JSON.

    The request itself succeeded. The undecodable body is kept for inspection.
    """

    def __init__(self, message: str, body: str | None = None):
        self.body = body
        super().__init__(message)
