"""
Platform certificate stores — find a client certificate by serial number.

One strategy per host platform, picked once through a dispatch table keyed
by `sys.platform`:

  win32   → WindowsCertificateStore  (PowerShell, Cert:\\<location>\\<name>)
  darwin  → MacKeychainStore         (`security find-certificate`)
  other   → UnixTrustStore           (scan of trust-store directories)

Every strategy is best-effort: a miss or a failing lookup is logged and
reported as None, never raised.
"""

from __future__ import annotations

import os
import re
import secrets
import subprocess
import sys
import tempfile
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import structlog
from asn1crypto import pem, x509

from fedsfm_client.adapters.pfx import CommandRunner, OpenSslPfxExtractor
from fedsfm_client.domain.errors import CertificateExtractionError
from fedsfm_client.domain.models import CertificateMaterial, CertificateSources
from fedsfm_client.domain.ports import CertificateStore

log = structlog.get_logger()

_NON_HEX = re.compile(r"[^0-9A-Fa-f]")


def normalize_serial(serial_number: str) -> str:
    """Uppercase hex digits only: "0a:1b 2c" → "0A1B2C"."""
    return _NON_HEX.sub("", serial_number).upper()


def _same_serial(left: str, right: str) -> bool:
    return left.lstrip("0") == right.lstrip("0")


# ─────────────────────── Windows ───────────────────────

_EXPORT_SCRIPT = r"""
$ErrorActionPreference = 'Stop'
$store = "Cert:\$env:FEDSFM_STORE_LOCATION\$env:FEDSFM_STORE_NAME"
$cert = Get-ChildItem -Path $store |
    Where-Object { $_.SerialNumber -eq $env:FEDSFM_SERIAL } |
    Select-Object -First 1
if (-not $cert) { exit 2 }
$secret = ConvertTo-SecureString -String $env:FEDSFM_EXPORT_PASSWORD -Force -AsPlainText
Export-PfxCertificate -Cert $cert -FilePath $env:FEDSFM_EXPORT_PATH -Password $secret | Out-Null
"""

_NOT_IN_STORE = 2


class WindowsCertificateStore:
    """
    Export a certificate with its private key from the Windows store.

    The store entry is exported as a PFX protected by a random
    per-call password, then split into PEM certificate + key by the PFX
    extractor. The export lives in a temporary directory removed on exit.
    """

    def __init__(
        self,
        store_location: str = "CurrentUser",
        store_name: str = "My",
        run: CommandRunner = subprocess.run,
        extractor: OpenSslPfxExtractor | None = None,
        powershell: str = "powershell",
        work_dir: Path | None = None,
    ) -> None:
        self._store_location = store_location
        self._store_name = store_name
        self._run = run
        self._extractor = extractor or OpenSslPfxExtractor(work_dir=work_dir)
        self._powershell = powershell
        self._work_dir = work_dir

    def lookup(self, serial_number: str) -> CertificateMaterial | None:
        serial = normalize_serial(serial_number)
        log.info(
            "certificate.store_lookup",
            store="windows",
            location=self._store_location,
            name=self._store_name,
            serial=serial,
        )
        with tempfile.TemporaryDirectory(prefix="fedsfm-store-", dir=self._work_dir) as tmp:
            export_path = Path(tmp) / "export.pfx"
            export_password = secrets.token_urlsafe(24)
            env = {
                **os.environ,
                "FEDSFM_STORE_LOCATION": self._store_location,
                "FEDSFM_STORE_NAME": self._store_name,
                "FEDSFM_SERIAL": serial,
                "FEDSFM_EXPORT_PATH": str(export_path),
                "FEDSFM_EXPORT_PASSWORD": export_password,
            }
            try:
                self._run(
                    [self._powershell, "-NoProfile", "-NonInteractive", "-Command", _EXPORT_SCRIPT],
                    check=True,
                    capture_output=True,
                    env=env,
                )
                return self._extractor.extract(
                    export_path, export_password, source="windows-store"
                )
            except subprocess.CalledProcessError as e:
                if e.returncode == _NOT_IN_STORE:
                    log.warning("certificate.store_no_match", store="windows", serial=serial)
                else:
                    log.warning("certificate.store_lookup_failed", store="windows", error=str(e))
                return None
            except (OSError, CertificateExtractionError) as e:
                log.warning("certificate.store_lookup_failed", store="windows", error=str(e))
                return None


# ─────────────────────── macOS ───────────────────────

SYSTEM_KEYCHAIN = "/Library/Keychains/System.keychain"


class MacKeychainStore:
    """
    Query a keychain for a certificate whose label contains the serial.

    `security find-certificate -p` exports the certificate only, so the PEM
    bytes fill both the certificate and the key slot.
    """

    def __init__(
        self,
        keychain: str = SYSTEM_KEYCHAIN,
        run: CommandRunner = subprocess.run,
    ) -> None:
        self._keychain = keychain
        self._run = run

    def lookup(self, serial_number: str) -> CertificateMaterial | None:
        serial = normalize_serial(serial_number)
        log.info("certificate.store_lookup", store="keychain", keychain=self._keychain, serial=serial)
        try:
            completed = self._run(
                ["security", "find-certificate", "-c", serial, "-p", self._keychain],
                check=True,
                capture_output=True,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            log.warning("certificate.store_lookup_failed", store="keychain", error=str(e))
            return None

        exported: bytes = completed.stdout or b""
        if b"-----BEGIN CERTIFICATE-----" not in exported:
            log.warning("certificate.store_no_match", store="keychain", serial=serial)
            return None
        return CertificateMaterial(certificate=exported, private_key=exported, source="keychain")


# ─────────────────────── Unix-like ───────────────────────

DEFAULT_TRUST_DIRS: tuple[Path, ...] = (
    Path("/etc/ssl/certs"),
    Path("/etc/pki/tls/certs"),
    Path("/etc/pki/ca-trust/source/anchors"),
    Path("/usr/local/share/ca-certificates"),
)

CERTIFICATE_SUFFIXES = frozenset({".pem", ".crt", ".cer"})


class UnixTrustStore:
    """
    Scan trust-store directories for a certificate with a matching serial.

    Files may hold a single PEM certificate, a PEM bundle, or raw DER. The
    first match is returned re-armored as PEM, in both slots.
    """

    def __init__(self, directories: Sequence[Path] = DEFAULT_TRUST_DIRS) -> None:
        self._directories = tuple(directories)

    def lookup(self, serial_number: str) -> CertificateMaterial | None:
        serial = normalize_serial(serial_number)
        log.info(
            "certificate.store_lookup",
            store="trust-store",
            directories=[str(d) for d in self._directories],
            serial=serial,
        )
        try:
            for path in self._candidate_files():
                der = _find_in_file(path, serial)
                if der is not None:
                    armored = pem.armor("CERTIFICATE", der)
                    log.info("certificate.store_match", store="trust-store", path=str(path))
                    return CertificateMaterial(
                        certificate=armored, private_key=armored, source=f"trust-store:{path}"
                    )
        except OSError as e:
            log.warning("certificate.store_lookup_failed", store="trust-store", error=str(e))
            return None

        log.warning("certificate.store_no_match", store="trust-store", serial=serial)
        return None

    def _candidate_files(self) -> Iterator[Path]:
        for directory in self._directories:
            if not directory.is_dir():
                continue
            for path in sorted(directory.iterdir()):
                if path.suffix.lower() in CERTIFICATE_SUFFIXES and path.is_file():
                    yield path


def _find_in_file(path: Path, serial: str) -> bytes | None:
    try:
        data = path.read_bytes()
    except OSError as e:
        log.debug("certificate.unreadable", path=str(path), error=str(e))
        return None
    try:
        blobs = list(_certificate_blobs(data))
    except ValueError as e:
        log.debug("certificate.unparseable", path=str(path), error=str(e))
        return None
    for der in blobs:
        try:
            candidate = format(x509.Certificate.load(der).serial_number, "X")
        except (ValueError, TypeError) as e:
            log.debug("certificate.unparseable", path=str(path), error=str(e))
            continue
        if _same_serial(candidate, serial):
            return der
    return None


def _certificate_blobs(data: bytes) -> Iterator[bytes]:
    if not pem.detect(data):
        yield data
        return
    for object_type, _headers, der in pem.unarmor(data, multiple=True):
        if object_type == "CERTIFICATE":
            yield der


# ─────────────────────── Dispatch ───────────────────────

StoreFactory = Callable[[CertificateSources], CertificateStore]

PLATFORM_STORES: dict[str, StoreFactory] = {
    "win32": lambda sources: WindowsCertificateStore(sources.store_location, sources.store_name),
    "darwin": lambda sources: MacKeychainStore(),
}


def platform_store(sources: CertificateSources, platform: str | None = None) -> CertificateStore:
    """Pick the certificate store strategy for the host (or given) platform."""
    key = platform if platform is not None else sys.platform
    factory = PLATFORM_STORES.get(key, lambda _sources: UnixTrustStore())
    return factory(sources)
