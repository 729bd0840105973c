"""
Domain models — immutable value objects for credentials, certificates,
catalogs, and authorized sessions.

All models are frozen dataclasses. Secrets and key material are excluded
from repr so they never end up in log lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

COMPACT_DATE_FORMAT = "%Y%m%d"


class ListType(Enum):
    """
    Published lists, with the file prefix and default extension of each.

    TE2/TE21 — entities suspected of extremist or terrorist activity.
    MVK — persons under an interagency commission asset-freeze decision.
    UN — consolidated UN Security Council sanctions list.
    """

    TE2 = ("te2", "suspect", "zip")
    TE21 = ("te21", "suspect", "zip")
    MVK = ("mvk", "freeze", "xml")
    UN = ("un", "un", "xml")

    def __init__(self, key: str, prefix: str, extension: str) -> None:
        self.key = key
        self.prefix = prefix
        self.extension = extension

    @property
    def production_only(self) -> bool:
        return self in (ListType.TE21, ListType.UN)


class Environment(Enum):
    TEST = "test"
    PRODUCTION = "production"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Portal login; immutable for the process lifetime."""

    user_name: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class CertificateSources:
    """
    Which certificate sources are configured.

    Resolution order: explicit PEM pair, then PFX bundle, then the OS
    certificate store. The store location/name only matter on Windows.
    """

    cert_file: Path | None = None
    key_file: Path | None = None
    pfx_file: Path | None = None
    pfx_password: str | None = field(default=None, repr=False)
    store_location: str = "CurrentUser"
    store_name: str = "My"

    @property
    def has_pem_pair(self) -> bool:
        return self.cert_file is not None and self.key_file is not None


@dataclass(frozen=True, slots=True)
class CertificateMaterial:
    """
    A client certificate and its private key, PEM or DER encoded.

    Consumed once to build the TLS context for the login call.
    """

    certificate: bytes = field(repr=False)
    private_key: bytes = field(repr=False)
    source: str = "unknown"


@dataclass(frozen=True, slots=True)
class CatalogDescriptor:
    """
    One published list snapshot, as described by a catalog response.

    `document_id` is the server's `idXml`; it is what the download call sends.
    """

    document_id: str
    publication_date: date
    is_active: bool = False
    status_id: Any = None

    def file_name(self, prefix: str, extension: str) -> str:
        """`{prefix}_{YYYYMMDD}.{extension}` — the name a downloaded list is saved under."""
        return f"{prefix}_{format_compact_date(self.publication_date)}.{extension}"


@dataclass(frozen=True, slots=True)
class AuthorizedSession:
    """
    Proof of a successful login.

    Catalog and download operations take this value instead of reading
    hidden token state, so "authorize first" is visible in their signatures.
    """

    access_token: str = field(repr=False)
    environment: Environment
    authorized_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def coerce_publication_date(value: date | datetime | str) -> date:
    """
    Normalize a catalog `date` field to a calendar date.

    Accepts an ISO-8601 string or an already-structured date/datetime.
    Aware datetimes are converted to UTC first; naive ones are taken as-is.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return coerce_publication_date(datetime.fromisoformat(value.strip()))
    raise TypeError(f"Unsupported publication date value: {value!r}")


def format_compact_date(value: date) -> str:
    return value.strftime(COMPACT_DATE_FORMAT)


def parse_compact_date(value: str) -> date:
    return datetime.strptime(value, COMPACT_DATE_FORMAT).date()
