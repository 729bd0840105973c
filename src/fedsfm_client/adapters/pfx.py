"""
PFX/P12 extraction via the OpenSSL command line tool.

The bundle is split into a PEM certificate and an unencrypted PEM private
key inside a per-call temporary directory. The directory is removed on
every exit path, so no key material outlives the call.

The bundle password is handed to openssl through the child environment
(`-passin env:...`), never on the command line.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import structlog

from fedsfm_client.domain.errors import CertificateExtractionError
from fedsfm_client.domain.models import CertificateMaterial

log = structlog.get_logger()

PASSWORD_ENV = "FEDSFM_PFX_PASSIN"
OPENSSL_HINT = "OpenSSL must be installed and available on PATH"

CommandRunner = Callable[..., subprocess.CompletedProcess[Any]]


class OpenSslPfxExtractor:
    """Split a PFX bundle into certificate + key bytes using `openssl pkcs12`."""

    def __init__(
        self,
        openssl: str = "openssl",
        run: CommandRunner = subprocess.run,
        work_dir: Path | None = None,
    ) -> None:
        self._openssl = openssl
        self._run = run
        self._work_dir = work_dir

    def extract(
        self, bundle: Path, password: str | None = None, source: str = "pfx"
    ) -> CertificateMaterial:
        """
        Extract the client certificate and its private key from `bundle`.

        Raises CertificateExtractionError (with the tool failure as cause)
        when openssl is missing, rejects the bundle, or produces nothing.
        """
        env = {**os.environ, PASSWORD_ENV: password or ""}
        with tempfile.TemporaryDirectory(prefix="fedsfm-pfx-", dir=self._work_dir) as tmp:
            cert_path = Path(tmp) / "client-cert.pem"
            key_path = Path(tmp) / "client-key.pem"
            try:
                self._pkcs12(bundle, cert_path, ("-clcerts", "-nokeys"), env)
                self._pkcs12(bundle, key_path, ("-nocerts", "-nodes"), env)
                certificate = cert_path.read_bytes()
                private_key = key_path.read_bytes()
            except subprocess.CalledProcessError as e:
                detail = _stderr_text(e) or f"exit status {e.returncode}"
                raise CertificateExtractionError(
                    f"Failed to extract certificate from {bundle}: {detail}. {OPENSSL_HINT}",
                    cause=e,
                ) from e
            except OSError as e:
                raise CertificateExtractionError(
                    f"Failed to extract certificate from {bundle}: {e}. {OPENSSL_HINT}",
                    cause=e,
                ) from e

        if not certificate.strip() or not private_key.strip():
            raise CertificateExtractionError(
                f"PFX bundle {bundle} yielded no certificate or no private key"
            )
        log.info("certificate.pfx_extracted", bundle=str(bundle), source=source)
        return CertificateMaterial(certificate=certificate, private_key=private_key, source=source)

    def _pkcs12(
        self, bundle: Path, output: Path, flags: Sequence[str], env: dict[str, str]
    ) -> None:
        command = [
            self._openssl,
            "pkcs12",
            "-in",
            str(bundle),
            *flags,
            "-out",
            str(output),
            "-passin",
            f"env:{PASSWORD_ENV}",
        ]
        self._run(command, check=True, capture_output=True, env=env)


def _stderr_text(error: subprocess.CalledProcessError) -> str:
    stderr = error.stderr
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return (stderr or "").strip()
