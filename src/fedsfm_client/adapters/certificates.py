"""
Certificate resolution — find the client certificate used for mTLS login.

Implements the CertificateResolver port. Sources are tried in a fixed
order and the first one that is configured decides the outcome:

  1. Explicit PEM pair (certificate file + key file)   → fatal if unreadable
  2. PFX/P12 bundle, split with openssl               → fatal if extraction fails
  3. Host platform certificate store                   → best-effort

Only when all of them come up empty does resolution fail with
CertificateNotFoundError.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from railway import Result

from fedsfm_client.adapters.cert_stores import platform_store
from fedsfm_client.adapters.pfx import OpenSslPfxExtractor
from fedsfm_client.domain.errors import (
    CertificateError,
    CertificateNotFoundError,
    FileReadError,
)
from fedsfm_client.domain.models import CertificateMaterial, CertificateSources
from fedsfm_client.domain.ports import CertificateStore

log = structlog.get_logger()

CONFIGURATION_HINT = (
    "Provide one of: "
    "FEDSFM_API_CERTIFICATE_FILE together with FEDSFM_API_CERTIFICATE_KEY_FILE (PEM pair); "
    "FEDSFM_API_CERTIFICATE_PFX_FILE with optional FEDSFM_API_CERTIFICATE_PFX_PASSWORD (PFX/P12 bundle); "
    "or install the certificate in the OS certificate store "
    "(FEDSFM_API_CERTIFICATE_STORE_LOCATION / FEDSFM_API_CERTIFICATE_STORE_NAME on Windows)"
)


class ChainedCertificateResolver:
    """
    Resolve certificate material from the configured sources, in order.

    The store strategy defaults to the one for the host platform; tests and
    callers with unusual setups can inject their own.
    """

    def __init__(
        self,
        sources: CertificateSources,
        store: CertificateStore | None = None,
        pfx_extractor: OpenSslPfxExtractor | None = None,
    ) -> None:
        self._sources = sources
        self._store = store if store is not None else platform_store(sources)
        self._pfx_extractor = pfx_extractor or OpenSslPfxExtractor()

    def resolve(self, serial_number: str) -> Result[CertificateMaterial]:
        """
        Locate certificate + private key for `serial_number`.

        Returns Result.success(CertificateMaterial) or
        Result.failure(CERTIFICATE_ERROR) carrying the typed exception.
        """
        try:
            material = self._locate(serial_number)
        except CertificateError as e:
            log.error(
                "certificate.resolution_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return Result.failure(e.code, str(e), e)
        log.info("certificate.resolved", source=material.source)
        return Result.success(material)

    def _locate(self, serial_number: str) -> CertificateMaterial:
        sources = self._sources
        if sources.has_pem_pair:
            log.info("certificate.source_selected", source="pem-pair")
            return _read_pem_pair(sources.cert_file, sources.key_file)  # type: ignore[arg-type]

        if sources.pfx_file is not None:
            log.info("certificate.source_selected", source="pfx", bundle=str(sources.pfx_file))
            return self._pfx_extractor.extract(sources.pfx_file, sources.pfx_password)

        log.info("certificate.source_selected", source="os-store", serial=serial_number)
        material = self._store.lookup(serial_number)
        if material is not None:
            return material

        raise CertificateNotFoundError(
            f"Certificate with serial number {serial_number!r} not found. {CONFIGURATION_HINT}"
        )


def _read_pem_pair(cert_file: Path, key_file: Path) -> CertificateMaterial:
    try:
        certificate = cert_file.read_bytes()
        private_key = key_file.read_bytes()
    except OSError as e:
        raise FileReadError(
            f"Cannot read certificate file {cert_file} or key file {key_file}: {e}",
            cause=e,
        ) from e
    return CertificateMaterial(certificate=certificate, private_key=private_key, source="pem-pair")
