"""
Ports — Protocol-based interfaces for the infrastructure adapters.

  Domain ← Ports (protocols) ← Adapters (implementations)

Adapters satisfy a port by implementing its methods; no inheritance.

Authorization flow:
  1. CertificateResolver → client certificate + key by serial number
  2. Authenticator       → mTLS login, bearer access token
  3. CatalogGateway      → catalog metadata and list file download (bearer)
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from railway import Result

from fedsfm_client.domain.models import CatalogDescriptor, CertificateMaterial


@runtime_checkable
class CertificateStore(Protocol):
    """
    Port: best-effort lookup of a certificate in a platform trust store.

    Returns None when nothing matches or the lookup itself failed; a store
    miss is never fatal.
    """

    def lookup(self, serial_number: str) -> CertificateMaterial | None: ...


@runtime_checkable
class CertificateResolver(Protocol):
    """
    Port: locate client certificate material for the given serial number.

    Failure codes: CERTIFICATE_ERROR, with a CertificateNotFoundError,
    CertificateExtractionError or FileReadError as the exception.
    """

    def resolve(self, serial_number: str) -> Result[CertificateMaterial]: ...


@runtime_checkable
class Authenticator(Protocol):
    """
    Port: exchange credentials + client certificate for an access token.

    Failure codes: VALIDATION_ERROR (blank input, no I/O attempted) or
    AUTHENTICATION_ERROR (everything else, cause preserved).
    """

    async def login(
        self, user_name: str, password: str, serial_number: str
    ) -> Result[str]: ...


@runtime_checkable
class CatalogGateway(Protocol):
    """
    Port: bearer-authenticated catalog fetch and list file download.

    Neither operation raises. fetch_catalog fails with NOT_FOUND when
    nothing is published and EXTERNAL_SERVICE_ERROR when the request failed;
    both mean "no catalog available" to a caller that doesn't care which.
    """

    async def fetch_catalog(
        self, access_token: str | None, url: str
    ) -> Result[CatalogDescriptor]: ...

    async def download_file(
        self,
        access_token: str | None,
        descriptor: CatalogDescriptor | None,
        url: str,
        extension: str,
        prefix: str,
    ) -> Result[Path]: ...
