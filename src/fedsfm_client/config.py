"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings with the `FEDSFM_API_` prefix, so the variables are
FEDSFM_API_USERNAME, FEDSFM_API_CERTIFICATE_SERIAL_NUMBER, and so on.
Secrets are SecretStr and never show up in repr or logs.

Certificate sources (first configured wins):
  - FEDSFM_API_CERTIFICATE_FILE + FEDSFM_API_CERTIFICATE_KEY_FILE
  - FEDSFM_API_CERTIFICATE_PFX_FILE (+ FEDSFM_API_CERTIFICATE_PFX_PASSWORD)
  - the OS certificate store (FEDSFM_API_CERTIFICATE_STORE_LOCATION /
    FEDSFM_API_CERTIFICATE_STORE_NAME select the Windows store)

Credentials default to empty strings: blank values are rejected by the
authenticator before any network activity, not at load time.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fedsfm_client.domain.models import CertificateSources, Credentials, Environment
from fedsfm_client.endpoints import BASE_URL

# Resolve the .env file relative to the project root, so settings load the
# same way regardless of the working directory.
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables
      2. .env file
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="FEDSFM_API_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    username: str = Field(default="", description="Portal user name")
    password: SecretStr = Field(default=SecretStr(""), description="Portal password")

    certificate_serial_number: str = Field(default="", description="Client certificate serial number")
    certificate_store_location: str = Field(default="CurrentUser", description="Windows store location")
    certificate_store_name: str = Field(default="My", description="Windows store name")
    certificate_file: Path | None = Field(default=None, description="PEM client certificate")
    certificate_key_file: Path | None = Field(default=None, description="PEM private key")
    certificate_pfx_file: Path | None = Field(default=None, description="PFX/P12 bundle")
    certificate_pfx_password: SecretStr | None = Field(default=None, description="PFX/P12 password")

    ca_bundle: Path | None = Field(
        default=None, description="Extra CA bundle trusted for the portal's server certificate"
    )
    base_url: str = Field(default=BASE_URL, description="Portal base URL")
    test_mode: bool = Field(default=True, description="Use the test-contur endpoints")
    download_dir: Path = Field(default=Path("."), description="Where downloaded lists are saved")
    http_timeout_seconds: int = Field(default=60, ge=1)
    log_level: str = Field(default="INFO")

    @field_validator("certificate_store_location", "certificate_store_name")
    @classmethod
    def default_blank_store(cls, value: str, info: ValidationInfo) -> str:
        """Blank store settings fall back to CurrentUser / My."""
        if value.strip():
            return value.strip()
        return "CurrentUser" if info.field_name == "certificate_store_location" else "My"

    @model_validator(mode="after")
    def check_pem_pair(self) -> AppSettings:
        """A PEM certificate needs its key and vice versa."""
        if (self.certificate_file is None) != (self.certificate_key_file is None):
            raise ValueError(
                "Set both FEDSFM_API_CERTIFICATE_FILE and FEDSFM_API_CERTIFICATE_KEY_FILE, or neither"
            )
        return self

    def environment(self) -> Environment:
        return Environment.TEST if self.test_mode else Environment.PRODUCTION

    def credentials(self) -> Credentials:
        return Credentials(user_name=self.username, password=self.password.get_secret_value())

    def certificate_sources(self) -> CertificateSources:
        return CertificateSources(
            cert_file=self.certificate_file,
            key_file=self.certificate_key_file,
            pfx_file=self.certificate_pfx_file,
            pfx_password=(
                self.certificate_pfx_password.get_secret_value()
                if self.certificate_pfx_password is not None
                else None
            ),
            store_location=self.certificate_store_location,
            store_name=self.certificate_store_name,
        )
