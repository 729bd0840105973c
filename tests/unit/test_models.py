"""
Unit tests for domain models — value objects and date handling.

Verifies list metadata, frozen dataclass behavior, secret-free reprs,
publication date coercion and the compact YYYYMMDD file naming.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from fedsfm_client.domain.models import (
    AuthorizedSession,
    CatalogDescriptor,
    CertificateMaterial,
    CertificateSources,
    Credentials,
    Environment,
    ListType,
    coerce_publication_date,
    format_compact_date,
    parse_compact_date,
)


class TestListType:
    """Verify per-list prefixes, extensions and environment availability."""

    @pytest.mark.parametrize(
        ("list_type", "prefix", "extension"),
        [
            (ListType.TE2, "suspect", "zip"),
            (ListType.TE21, "suspect", "zip"),
            (ListType.MVK, "freeze", "xml"),
            (ListType.UN, "un", "xml"),
        ],
    )
    def test_prefix_and_extension(self, list_type: ListType, prefix: str, extension: str) -> None:
        """
        GIVEN each published list
        WHEN its metadata is read
        THEN prefix and default extension match the saved file names.
        """
        assert list_type.prefix == prefix
        assert list_type.extension == extension

    def test_te2_and_te21_are_distinct_members(self) -> None:
        """
        GIVEN TE2 and TE21 share prefix and extension
        WHEN the enum is built
        THEN they stay separate members (no aliasing).
        """
        assert ListType.TE2 is not ListType.TE21
        assert len(list(ListType)) == 4

    def test_production_only_lists(self) -> None:
        assert ListType.TE21.production_only
        assert ListType.UN.production_only
        assert not ListType.TE2.production_only
        assert not ListType.MVK.production_only


class TestPublicationDate:
    """Verify date coercion from string and structured catalog values."""

    def test_string_and_structured_date_agree(self) -> None:
        """
        GIVEN the same publication date as an ISO string and as a date
        WHEN both are coerced
        THEN they produce the same calendar date.
        """
        assert coerce_publication_date("2024-03-05T00:00:00") == coerce_publication_date(
            date(2024, 3, 5)
        )

    def test_utc_suffix_string(self) -> None:
        assert coerce_publication_date("2024-03-05T10:15:00Z") == date(2024, 3, 5)

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert coerce_publication_date("  2023-12-31  ") == date(2023, 12, 31)

    def test_aware_datetime_is_converted_to_utc(self) -> None:
        """
        GIVEN 01:30 on March 6th at UTC+3
        WHEN coerced
        THEN the UTC calendar date (March 5th) is used.
        """
        moscow = timezone(timedelta(hours=3))
        value = datetime(2024, 3, 6, 1, 30, tzinfo=moscow)
        assert coerce_publication_date(value) == date(2024, 3, 5)

    def test_naive_datetime_is_taken_as_is(self) -> None:
        assert coerce_publication_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)

    def test_unsupported_value_raises_type_error(self) -> None:
        with pytest.raises(TypeError, match="Unsupported publication date"):
            coerce_publication_date(20240305)  # type: ignore[arg-type]

    def test_garbage_string_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            coerce_publication_date("not a date")


class TestCompactDate:
    """Verify the YYYYMMDD format used in saved file names."""

    @pytest.mark.parametrize(
        ("moment", "expected"),
        [
            (datetime(2024, 3, 5, 0, 0, tzinfo=UTC), "20240305"),
            (datetime(2024, 3, 5, 23, 59, 59, tzinfo=UTC), "20240305"),
            (datetime(2024, 2, 29, 12, 0, tzinfo=UTC), "20240229"),
            (datetime(1999, 12, 31, 23, 0, tzinfo=UTC), "19991231"),
        ],
    )
    def test_format_then_parse_returns_same_day(self, moment: datetime, expected: str) -> None:
        """
        GIVEN a UTC timestamp
        WHEN its date is formatted and parsed back
        THEN the compact string is as expected and the date survives.
        """
        compact = format_compact_date(coerce_publication_date(moment))
        assert compact == expected
        assert parse_compact_date(compact) == moment.date()


class TestCatalogDescriptor:
    """Verify file naming and immutability of catalog descriptors."""

    def test_te2_file_name(self, te2_descriptor: CatalogDescriptor) -> None:
        assert te2_descriptor.file_name("suspect", "zip") == "suspect_20240305.zip"

    def test_mvk_file_name(self, mvk_descriptor: CatalogDescriptor) -> None:
        assert mvk_descriptor.file_name("freeze", "xml") == "freeze_20231231.xml"

    def test_is_frozen(self, te2_descriptor: CatalogDescriptor) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            te2_descriptor.document_id = "other"  # type: ignore[misc]

    def test_defaults(self) -> None:
        descriptor = CatalogDescriptor(document_id="x", publication_date=date(2024, 1, 1))
        assert descriptor.is_active is False
        assert descriptor.status_id is None


class TestSecretsStayOutOfRepr:
    """Passwords, tokens and key material never show up in repr()."""

    def test_credentials_repr(self) -> None:
        credentials = Credentials(user_name="alice", password="s3cr3t")
        assert "alice" in repr(credentials)
        assert "s3cr3t" not in repr(credentials)

    def test_session_repr(self) -> None:
        session = AuthorizedSession(access_token="tok-123", environment=Environment.TEST)
        assert "tok-123" not in repr(session)
        assert session.authorized_at.tzinfo is not None

    def test_certificate_material_repr(self) -> None:
        material = CertificateMaterial(certificate=b"CERT", private_key=b"KEY", source="pfx")
        assert "KEY" not in repr(material)
        assert "pfx" in repr(material)

    def test_pfx_password_repr(self) -> None:
        sources = CertificateSources(pfx_password="bundle-pass")
        assert "bundle-pass" not in repr(sources)


class TestCertificateSources:
    def test_pem_pair_needs_both_files(self, tmp_path: Path) -> None:
        assert CertificateSources(cert_file=tmp_path / "c", key_file=tmp_path / "k").has_pem_pair
        assert not CertificateSources(cert_file=tmp_path / "c").has_pem_pair
        assert not CertificateSources(key_file=tmp_path / "k").has_pem_pair

    def test_store_defaults(self) -> None:
        sources = CertificateSources()
        assert sources.store_location == "CurrentUser"
        assert sources.store_name == "My"
