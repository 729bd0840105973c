"""
HTTP adapter — mTLS login, catalog fetch and list file download via httpx.

Adapter layer — implements the Authenticator and CatalogGateway ports with
httpx.AsyncClient.

Authentication flow:
  1. Resolve the client certificate (CertificateResolver port)
  2. POST {"userName", "password"} to the authenticate endpoint over mTLS
  3. Use the returned access token as `Authorization: Bearer ...` for
     catalog (JSON) and file (raw bytes) requests

Server certificates are always verified. No retries: a failed attempt is
final for that call. Errors are captured into Result failures; nothing
leaks to the caller as an exception.
"""

from __future__ import annotations

import asyncio
import ssl
import tempfile
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from railway import ErrorCode, Result

from fedsfm_client.domain.errors import (
    AuthenticationError,
    InvalidArgumentError,
    NotAuthorizedError,
)
from fedsfm_client.domain.models import (
    CatalogDescriptor,
    CertificateMaterial,
    coerce_publication_date,
)
from fedsfm_client.domain.ports import CertificateResolver

log = structlog.get_logger()

MAX_LOGGED_BODY = 2000

SslContextFactory = Callable[[CertificateMaterial], ssl.SSLContext]


# ═══════════════════════════════════════════════════════════════════════
# TLS contexts
# ═══════════════════════════════════════════════════════════════════════


def server_ssl_context(ca_bundle: Path | None = None) -> ssl.SSLContext:
    """
    Default trust roots plus an optional extra CA bundle.

    Hostname checks and certificate verification stay on.
    """
    context = ssl.create_default_context()
    if ca_bundle is not None:
        context.load_verify_locations(cafile=str(ca_bundle))
    return context


def build_client_ssl_context(
    material: CertificateMaterial,
    ca_bundle: Path | None = None,
    work_dir: Path | None = None,
) -> ssl.SSLContext:
    """
    Server-verifying TLS context that presents the client certificate.

    `ssl` only loads certificate chains from files, so the material is
    written to a temporary directory that is removed as soon as the chain
    is loaded, whether loading succeeded or not.
    """
    context = server_ssl_context(ca_bundle)
    with tempfile.TemporaryDirectory(prefix="fedsfm-tls-", dir=work_dir) as tmp:
        cert_path = Path(tmp) / "client-cert.pem"
        key_path = Path(tmp) / "client-key.pem"
        cert_path.write_bytes(_as_pem_certificate(material.certificate))
        key_path.write_bytes(material.private_key)
        # An encrypted key fails here instead of waiting on an OpenSSL prompt.
        context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path), password=b"")
    return context


def _as_pem_certificate(data: bytes) -> bytes:
    if b"-----BEGIN" in data:
        return data
    return ssl.DER_cert_to_PEM_cert(data).encode("ascii")


# ═══════════════════════════════════════════════════════════════════════
# Authenticator
# ═══════════════════════════════════════════════════════════════════════


class HttpAuthenticator:
    """
    Log in to the portal with credentials + client certificate.

    Implements the Authenticator port.
    """

    def __init__(
        self,
        authenticate_url: str,
        resolver: CertificateResolver,
        timeout: int = 60,
        ca_bundle: Path | None = None,
        ssl_context_factory: SslContextFactory | None = None,
    ) -> None:
        self._authenticate_url = authenticate_url
        self._resolver = resolver
        self._timeout = timeout
        self._ssl_context_factory = ssl_context_factory or (
            lambda material: build_client_ssl_context(material, ca_bundle)
        )

    @property
    def authenticate_url(self) -> str:
        return self._authenticate_url

    async def login(self, user_name: str, password: str, serial_number: str) -> Result[str]:
        """
        Exchange credentials for an access token.

        Blank arguments fail with VALIDATION_ERROR before any certificate
        or network work. Everything else fails with AUTHENTICATION_ERROR,
        the underlying exception kept as __cause__ of the AuthenticationError.
        """
        try:
            _require_non_blank(
                ("User name", user_name),
                ("Password", password),
                ("Certificate serial number", serial_number),
            )
        except InvalidArgumentError as e:
            log.error("auth.invalid_argument", error=str(e))
            return Result.failure(e.code, str(e), e)

        log.info("auth.loading_certificate", serial=serial_number.strip())
        resolved = await asyncio.to_thread(self._resolver.resolve, serial_number.strip())
        if resolved.is_failure():
            cause = resolved.error()
            error = AuthenticationError(
                f"Failed to create authorized connection: {cause.message}",
                cause=cause.exception,
            )
            log.error("auth.certificate_unavailable", error=cause.message)
            return Result.failure(error.code, str(error), error)

        try:
            token = await self._authenticate(user_name, password, resolved.value())
        except AuthenticationError as e:
            log.error("auth.failed", error=str(e), status=e.status_code)
            return Result.failure(e.code, str(e), e)
        except (httpx.HTTPError, httpx.InvalidURL, ssl.SSLError, OSError) as e:
            error = AuthenticationError(f"Authentication request failed: {e}", cause=e)
            log.error("auth.failed", error=str(error))
            return Result.failure(error.code, str(error), error)

        log.info("auth.succeeded")
        return Result.success(token)

    async def _authenticate(
        self, user_name: str, password: str, material: CertificateMaterial
    ) -> str:
        """Single mTLS POST; raises AuthenticationError on any protocol failure."""
        ssl_context = self._ssl_context_factory(material)
        log.info(
            "auth.request_sent",
            method="POST",
            url=self._authenticate_url,
            user_name=user_name,
            certificate_source=material.source,
        )
        async with httpx.AsyncClient(verify=ssl_context, timeout=self._timeout) as client:
            response = await client.post(
                self._authenticate_url,
                json={"userName": user_name, "password": password},
            )
        log.info(
            "auth.response_received",
            method="POST",
            url=self._authenticate_url,
            status=response.status_code,
        )

        if response.status_code != 200:
            raise AuthenticationError(
                f"Authentication error. HTTP Status: {response.status_code}, "
                f"Response: {response.text}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise AuthenticationError(
                "Failed to deserialize authentication response",
                cause=e,
                status_code=response.status_code,
                response_body=response.text,
            ) from e
        if not body or not isinstance(body, dict):
            raise AuthenticationError(
                "Failed to deserialize authentication response",
                status_code=response.status_code,
                response_body=response.text,
            )

        if not body.get("success"):
            raise AuthenticationError(
                f"Authentication failed: {_error_summary(body)}",
                status_code=response.status_code,
                response_body=response.text,
            )

        value = body.get("value")
        token = value.get("accessToken") if isinstance(value, dict) else None
        if not token:
            raise AuthenticationError(
                "Access token not found in authentication response",
                status_code=response.status_code,
            )

        current_user = value.get("currentUser")
        if isinstance(current_user, dict):
            log.info(
                "auth.current_user",
                user_id=current_user.get("id"),
                user_name=current_user.get("userName"),
                kb_short_name=current_user.get("kbShortName"),
                is_authenticated=current_user.get("isAuthenticated"),
            )
        return str(token)


def _require_non_blank(*fields: tuple[str, str | None]) -> None:
    for label, value in fields:
        if value is None or not value.strip():
            raise InvalidArgumentError(f"{label} cannot be empty")


def _error_summary(body: Mapping[str, Any]) -> str:
    message = str(body.get("error") or "Unknown authentication error")
    errors = body.get("errors")
    if errors:
        message += ". Additional errors: " + ", ".join(str(e) for e in errors)
    return message


# ═══════════════════════════════════════════════════════════════════════
# Catalog client
# ═══════════════════════════════════════════════════════════════════════


class HttpCatalogClient:
    """
    Fetch catalog metadata and download list files with a bearer token.

    Implements the CatalogGateway port. Both operations soft-fail: they log
    and return a Result failure, so a batch over several lists can move on.
    """

    def __init__(
        self,
        download_dir: Path = Path("."),
        timeout: int = 60,
        verify: ssl.SSLContext | bool = True,
    ) -> None:
        self._download_dir = download_dir
        self._timeout = timeout
        self._verify = verify

    @property
    def download_dir(self) -> Path:
        return self._download_dir

    async def fetch_catalog(
        self, access_token: str | None, url: str
    ) -> Result[CatalogDescriptor]:
        """
        POST to a catalog endpoint and parse the descriptor.

        Failure codes:
          AUTHORIZATION_ERROR    — no token, no request made
          NOT_FOUND              — response carries no document id (nothing published)
          EXTERNAL_SERVICE_ERROR — transport error, non-200, unparseable body
        """
        if not access_token:
            error = NotAuthorizedError("Access token is not initialized. Please authorize first.")
            log.error("catalog.not_authorized", url=url)
            return Result.failure(error.code, str(error), error)

        try:
            payload = await self._request_catalog(access_token, url)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            log.error("catalog.request_failed", url=url, error=str(e))
            return Result.failure(
                ErrorCode.EXTERNAL_SERVICE_ERROR, f"Catalog request to {url} failed: {e}", e
            )

        try:
            descriptor = catalog_from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            log.error("catalog.malformed_response", url=url, error=str(e))
            return Result.failure(
                ErrorCode.EXTERNAL_SERVICE_ERROR, f"Malformed catalog response from {url}: {e}", e
            )

        if descriptor is None:
            log.warning("catalog.not_published", url=url)
            return Result.failure(ErrorCode.NOT_FOUND, f"File ID not found in catalog response from {url}")

        log.info(
            "catalog.found",
            document_id=descriptor.document_id,
            publication_date=descriptor.publication_date.isoformat(),
            is_active=descriptor.is_active,
        )
        return Result.success(descriptor)

    async def _request_catalog(self, access_token: str, url: str) -> Any:
        log.info("catalog.request_sent", method="POST", url=url)
        async with httpx.AsyncClient(verify=self._verify, timeout=self._timeout) as client:
            response = await client.post(
                url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                content=b"",
            )
        log.info(
            "catalog.response_received",
            status=response.status_code,
            body=_describe_body(response),
        )
        response.raise_for_status()
        return response.json()

    async def download_file(
        self,
        access_token: str | None,
        descriptor: CatalogDescriptor | None,
        url: str,
        extension: str,
        prefix: str,
    ) -> Result[Path]:
        """
        Download the list file a descriptor points to and save it.

        Saved as `{download_dir}/{prefix}_{YYYYMMDD}.{extension}`. The body
        is written exactly as received; it is never decoded.
        """
        if not access_token:
            error = NotAuthorizedError("Access token is not initialized.")
            log.error("download.not_authorized", url=url)
            return Result.failure(error.code, str(error), error)

        if descriptor is None or not descriptor.document_id:
            error = InvalidArgumentError("Catalog descriptor or document id not specified.")
            log.error("download.missing_document_id", url=url)
            return Result.failure(error.code, str(error), error)

        form_body = f"id={quote(descriptor.document_id, safe='')}"
        log.info("download.request_sent", method="POST", url=url, body=form_body)
        try:
            async with httpx.AsyncClient(verify=self._verify, timeout=self._timeout) as client:
                response = await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                    content=form_body.encode("ascii"),
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error("download.request_failed", url=url, error=str(e))
            return Result.failure(
                ErrorCode.EXTERNAL_SERVICE_ERROR, f"File download from {url} failed: {e}", e
            )

        log.info(
            "download.response_received",
            status=response.status_code,
            size_bytes=len(response.content),
        )
        if response.status_code != 200:
            log.error(
                "download.failed",
                url=url,
                status=response.status_code,
                body=_describe_body(response),
            )
            return Result.failure(
                ErrorCode.EXTERNAL_SERVICE_ERROR,
                f"File download error: HTTP {response.status_code}",
            )

        return self._save(response.content, descriptor.file_name(prefix, extension))

    def _save(self, data: bytes, file_name: str) -> Result[Path]:
        target = self._download_dir / file_name
        try:
            self._download_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            log.error("download.write_failed", path=str(target), error=str(e))
            return Result.failure(ErrorCode.FILE_SYSTEM_ERROR, f"Cannot write {target}: {e}", e)
        log.info("download.saved", path=str(target.resolve()), size_bytes=len(data))
        return Result.success(target)


def catalog_from_payload(payload: Any) -> CatalogDescriptor | None:
    """
    Build a descriptor from a parsed catalog response.

    None when the payload carries no `idXml`. The `date` field may be an
    ISO-8601 string or an already-structured date/datetime.
    """
    if not isinstance(payload, Mapping) or not payload.get("idXml"):
        return None
    return CatalogDescriptor(
        document_id=str(payload["idXml"]),
        publication_date=coerce_publication_date(payload["date"]),
        is_active=bool(payload.get("isActive", False)),
        status_id=payload.get("idRecStatus"),
    )


def _describe_body(response: httpx.Response) -> str:
    """Text bodies are shown (truncated); binary bodies only by size."""
    content_type = response.headers.get("content-type", "")
    if not response.content:
        return ""
    if "json" in content_type or content_type.startswith("text/"):
        text = response.text
        if len(text) > MAX_LOGGED_BODY:
            return text[:MAX_LOGGED_BODY] + "...(truncated)"
        return text
    return f"<{len(response.content)} bytes {content_type or 'unknown content type'}>"
