"""HTTP client with persistent headers, authentication and TLS trust settings."""

import base64
import dataclasses
import json
import logging
import ssl
import types
import typing
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict

from .exceptions import (
    CertificateError,
    ConfigurationError,
    DecodeError,
    StatusError,
    TransportError,
)
from .logging_config import get_module_logger
from .query import format_timestamp

if TYPE_CHECKING:
    from .config import Config

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class RawBody:
    """Request body sent verbatim, without a Content-Type header"""

    text: str


@dataclass(frozen=True)
class FormBody:
    """URL-encoded form body. Sequence values repeat the key."""

    fields: Mapping[str, Any] | Sequence[tuple[str, Any]]


@dataclass(frozen=True)
class JsonBody:
    """Any JSON-serializable value, plus dataclasses and datetimes"""

    value: Any


Payload = RawBody | FormBody | JsonBody


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_payload(payload: Payload) -> tuple[str, dict[str, str]]:
    """
    Turn a payload into body text and the headers it implies

    Returns:
        (body, headers) where headers holds Content-Type for form and JSON bodies
    """
    if isinstance(payload, RawBody):
        return payload.text, {}
    if isinstance(payload, FormBody):
        return urlencode(payload.fields, doseq=True), {"Content-Type": FORM_CONTENT_TYPE}
    if isinstance(payload, JsonBody):
        return json.dumps(payload.value, default=_json_default), {
            "Content-Type": JSON_CONTENT_TYPE
        }
    raise TypeError(
        f"Unsupported payload type {type(payload).__name__}, "
        "expected RawBody, FormBody or JsonBody"
    )


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, accepting a trailing 'Z' for UTC."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _is_dataclass_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def check_writable(dst: Any) -> None:
    """
    Make sure a decoded response can be written back into dst

    Raises:
        TypeError: If dst is a frozen dataclass or not a mapping, list or dataclass
    """
    if isinstance(dst, (MutableMapping, list)):
        return
    if _is_dataclass_instance(dst):
        if type(dst).__dataclass_params__.frozen:
            raise TypeError(
                f"Cannot write a response into frozen dataclass {type(dst).__name__}"
            )
        return
    raise TypeError(
        f"Cannot write a response into {type(dst).__name__}, "
        "expected a mapping, a list or a dataclass instance"
    )


def _convert(value: Any, target: Any, current: Any = None) -> Any:
    """Convert a decoded JSON value to a declared field type."""
    origin = typing.get_origin(target)

    if origin in (typing.Union, types.UnionType):
        if value is None:
            return None
        options = [arg for arg in typing.get_args(target) if arg is not type(None)]
        if len(options) == 1:
            return _convert(value, options[0], current)
        return value

    if origin is list:
        if not isinstance(value, list):
            raise ValueError(f"expected an array, got {type(value).__name__}")
        args = typing.get_args(target)
        return [_convert(item, args[0]) for item in value] if args else value

    if origin is dict:
        if not isinstance(value, Mapping):
            raise ValueError(f"expected an object, got {type(value).__name__}")
        args = typing.get_args(target)
        if len(args) == 2:
            return {key: _convert(item, args[1]) for key, item in value.items()}
        return dict(value)

    if target is datetime:
        if not isinstance(value, str):
            raise ValueError(f"expected a timestamp string, got {type(value).__name__}")
        return parse_timestamp(value)

    if isinstance(target, type) and dataclasses.is_dataclass(target):
        if not isinstance(value, Mapping):
            raise ValueError(
                f"expected an object for {target.__name__}, got {type(value).__name__}"
            )
        updates = _dataclass_updates(target, value, current)
        if isinstance(current, target):
            return dataclasses.replace(current, **updates)
        try:
            return target(**updates)
        except TypeError as e:
            raise ValueError(f"cannot build {target.__name__}: {e}") from e

    return value


def _dataclass_updates(cls: type, decoded: Mapping, current: Any) -> dict[str, Any]:
    hints = typing.get_type_hints(cls)
    updates = {}
    for f in dataclasses.fields(cls):
        if not f.init or f.name not in decoded:
            continue
        existing = getattr(current, f.name, None)
        updates[f.name] = _convert(decoded[f.name], hints.get(f.name, Any), existing)
    return updates


def decode_into(dst: Any, decoded: Any, body: str | None = None) -> None:
    """
    Write a decoded JSON value back into an existing container.

    Mappings get the decoded keys and lists are replaced wholesale. Dataclass
    instances get the fields present in the decoded object, converted to the
    declared field types (nested dataclasses, datetimes, lists and dicts of
    those). dst is only modified once the whole value has been converted.

    Raises:
        DecodeError: If the decoded value does not fit dst
    """
    try:
        if isinstance(dst, MutableMapping):
            if not isinstance(decoded, Mapping):
                raise ValueError(f"expected an object, got {type(decoded).__name__}")
            dst.update(decoded)
        elif isinstance(dst, list):
            if not isinstance(decoded, list):
                raise ValueError(f"expected an array, got {type(decoded).__name__}")
            dst[:] = decoded
        else:
            if not isinstance(decoded, Mapping):
                raise ValueError(
                    f"expected an object for {type(dst).__name__}, got {type(decoded).__name__}"
                )
            updates = _dataclass_updates(type(dst), decoded, dst)
            for name, value in updates.items():
                setattr(dst, name, value)
    except ValueError as e:
        raise DecodeError(f"Response does not fit {type(dst).__name__}: {e}", body=body) from e


def response_text(response: requests.Response) -> str:
    """
    Decode a response body.

    The charset from the Content-Type header is used when the server sent
    one, otherwise the body is taken as UTF-8.
    """
    content_type = response.headers.get("Content-Type", "")
    encoding = "utf-8"
    if "charset=" in content_type.lower() and response.encoding:
        encoding = response.encoding
    try:
        return response.content.decode(encoding, errors="replace")
    except LookupError:
        return response.content.decode("utf-8", errors="replace")


class TrustStoreAdapter(HTTPAdapter):
    """HTTPAdapter that hands a fixed SSLContext to its connection pools."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs):
        # init_poolmanager runs inside HTTPAdapter.__init__
        self.ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["ssl_context"] = self.ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        proxy_kwargs["ssl_context"] = self.ssl_context
        return super().proxy_manager_for(proxy, **proxy_kwargs)


def build_trust_context(pem_certificate: str) -> ssl.SSLContext:
    """
    Create an SSLContext trusting the platform roots plus one PEM certificate

    Raises:
        CertificateError: If the PEM block is missing or the certificate is malformed
    """
    try:
        der = ssl.PEM_cert_to_DER_cert(pem_certificate.strip())
    except ValueError as e:
        raise CertificateError(f"failed to parse certificate PEM: {e}") from e

    context = ssl.create_default_context()
    try:
        context.load_verify_locations(cadata=der)
    except (ssl.SSLError, ValueError) as e:
        raise CertificateError(f"failed to parse certificate: {e}") from e
    return context


class HttpClient:
    """
    HTTP client bound to one server.

    Every request goes to server_base + path and carries the static headers.
    Configure the client fully before sharing it between threads: headers and
    TLS settings are not synchronized.
    """

    def __init__(self, server_base: str, logger: logging.Logger | None = None):
        """
        Args:
            server_base: Prefix prepended to every request path
            logger: Logger for request tracing (defaults to the module logger)
        """
        self.server_base = server_base
        self.logger = logger or get_module_logger("http_client")
        self.static_headers: CaseInsensitiveDict = CaseInsensitiveDict()
        self.tls_ca_pem: str | None = None
        self.tls_skip_verify = False
        self.debug = False
        self.session = requests.Session()
        self._ssl_context: ssl.SSLContext | None = None

    @classmethod
    def from_config(cls, config: "Config", logger: logging.Logger | None = None) -> "HttpClient":
        """
        Build a client from the "client" section of a Config

        Raises:
            ConfigurationError: If base_url is missing or auth settings conflict
        """
        base_url = config.get("client.base_url")
        if not base_url:
            raise ConfigurationError("base URL is required", config_key="client.base_url")

        client = cls(base_url, logger=logger)

        for key, value in (config.get("client.headers") or {}).items():
            client.add_header(key, str(value))

        bearer_token = config.get("client.auth.bearer_token")
        basic = config.get("client.auth.basic")
        if bearer_token and basic:
            raise ConfigurationError(
                "bearer_token and basic are mutually exclusive", config_key="client.auth"
            )
        if bearer_token:
            client.set_bearer_auth(bearer_token)
        elif basic:
            if "username" not in basic or "password" not in basic:
                raise ConfigurationError(
                    "username and password are required", config_key="client.auth.basic"
                )
            client.set_basic_auth(str(basic["username"]), str(basic["password"]))

        ca_pem = config.ca_pem()
        if ca_pem:
            client.set_custom_ca(ca_pem)
        if config.get("client.tls.skip_verify", False):
            client.skip_tls_verification()

        client.set_debug(bool(config.get("client.debug", False)))
        return client

    # Configuration

    def add_header(self, key: str, value: str) -> None:
        self.static_headers[key] = value

    def set_bearer_auth(self, token: str) -> None:
        self.static_headers["Authorization"] = "Bearer " + token

    def set_basic_auth(self, username: str, password: str) -> None:
        """
        Set HTTP basic authentication.

        A colon inside the username is not escaped, so such credentials
        cannot be decoded unambiguously by the server.
        """
        credentials = f"{username}:{password}".encode()
        self.static_headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode(
            "ascii"
        )

    def set_custom_ca(self, pem_certificate: str) -> None:
        """
        Trust one extra root certificate in addition to the platform roots.

        Each call starts again from the platform roots, so only the most
        recently supplied certificate is added.

        Args:
            pem_certificate: A single PEM-encoded certificate

        Raises:
            CertificateError: If the PEM is missing or malformed. The existing
                trust configuration is kept in that case.
        """
        context = build_trust_context(pem_certificate)
        if self.tls_skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        self.tls_ca_pem = pem_certificate
        self._ssl_context = context
        previous = self.session.adapters.get("https://")
        self.session.mount("https://", TrustStoreAdapter(context))
        if previous is not None:
            previous.close()
        self.logger.info("Custom CA certificate installed")

    def skip_tls_verification(self) -> None:
        """
        Disable certificate chain and hostname validation.

        INSECURE: any server certificate is accepted for all later requests.
        """
        self.tls_skip_verify = True
        self.session.verify = False
        if self._ssl_context is not None:
            self._ssl_context.check_hostname = False
            self._ssl_context.verify_mode = ssl.CERT_NONE
        self.logger.warning(f"TLS verification disabled for {self.server_base}")

    def set_debug(self, enabled: bool) -> None:
        self.debug = enabled

    # Request execution

    def get(self, path: str) -> str:
        """
        Send a GET request to server_base + path

        Returns:
            Response body text

        Raises:
            TransportError: If no response was received
            StatusError: If the status code is outside 200-299
        """
        return self._send("GET", path)

    def post(self, path: str, payload: Payload) -> str:
        """
        Send a POST request with a body derived from the payload variant

        Returns:
            Response body text

        Raises:
            TransportError: If no response was received
            StatusError: If the status code is outside 200-299
        """
        return self._send("POST", path, payload)

    def put(self, path: str, payload: Payload) -> str:
        """Send a PUT request. Same contract as post()."""
        return self._send("PUT", path, payload)

    def get_json(self, path: str) -> Any:
        """
        GET and decode the response body as JSON

        Raises:
            TransportError, StatusError: As for get()
            DecodeError: If the body is not valid JSON
        """
        return self._decode(self.get(path))

    def post_json(self, path: str, dst: Any, parse_response: bool = False) -> Any:
        """
        POST dst as JSON, optionally reading the response back into it

        Args:
            path: Request path
            dst: Value sent as the JSON body. With parse_response it also
                 receives the decoded response, so afterwards it reflects the
                 server's answer rather than the original request.
            parse_response: Whether to decode the response body

        Returns:
            The decoded response when parse_response is set, otherwise None

        Raises:
            TypeError: With parse_response, before sending, if dst is a frozen
                dataclass or not a mapping, list or dataclass instance
            TransportError, StatusError: As for post()
            DecodeError: If the body is not valid JSON or does not fit dst
        """
        return self._send_json("POST", path, dst, parse_response)

    def put_json(self, path: str, dst: Any, parse_response: bool = False) -> Any:
        """PUT counterpart of post_json()."""
        return self._send_json("PUT", path, dst, parse_response)

    def close(self) -> None:
        """Close the underlying session and its pooled connections."""
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Internals

    def _send_json(self, method: str, path: str, dst: Any, parse_response: bool) -> Any:
        if parse_response:
            check_writable(dst)
        body = self._send(method, path, JsonBody(dst))
        if not parse_response:
            return None

        decoded = self._decode(body)
        decode_into(dst, decoded, body=body)
        return decoded

    def _decode(self, body: str) -> Any:
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in response: {e}")
            raise DecodeError(f"Response is not valid JSON: {e}", body=body) from e

    def _prepare(self, method: str, url: str, payload: Payload | None) -> requests.PreparedRequest:
        headers: CaseInsensitiveDict = CaseInsensitiveDict()
        data = None
        if payload is not None:
            body, payload_headers = encode_payload(payload)
            data = body.encode("utf-8")
            headers.update(payload_headers)
        # Static headers win over the payload's Content-Type
        headers.update(self.static_headers)

        request = requests.Request(method, url, headers=headers, data=data)
        return self.session.prepare_request(request)

    def _send(self, method: str, path: str, payload: Payload | None = None) -> str:
        url = self.server_base + path
        self.logger.info(f"{method}: {url}")

        prepared = self._prepare(method, url, payload)
        if self.debug:
            self._trace_request(prepared)

        settings = self.session.merge_environment_settings(prepared.url, {}, None, None, None)
        try:
            response = self.session.send(prepared, **settings)
        except requests.RequestException as e:
            self.logger.error(f"{method} {url} failed: {e}")
            raise TransportError(method, url, str(e)) from e

        body = response_text(response)
        if self.debug:
            self.logger.debug(f"Response: {response.status_code}\n{body}")

        if response.status_code < 200 or response.status_code > 299:
            self.logger.error(f"{method} {url} returned {response.status_code}")
            raise StatusError(method, url, response.status_code, body)

        return body

    def _trace_request(self, prepared: requests.PreparedRequest) -> None:
        lines = [f"{prepared.method} {prepared.url}"]
        lines.extend(f"{key}: {value}" for key, value in prepared.headers.items())
        if prepared.body:
            body = prepared.body
            if isinstance(body, bytes):
                body = body.decode("utf-8", errors="replace")
            lines.append("")
            lines.append(body)
        self.logger.debug("Request: " + "\n".join(lines))
