"""
Integration tests for the authorize → catalog → download flow.

Simulates the fedsfm portal using respx (like WireMock in Java):
  1. Authenticate endpoint (mTLS, JSON credentials) → access token
  2. Catalog endpoints (bearer token) → {idXml, date, isActive}
  3. File endpoints (bearer token, form body) → raw list bytes

The real resolver, authenticator, catalog client, facade and sync
pipeline are wired together; only the network and the TLS context are
simulated. The certificate comes from a PEM pair on disk.

Each test follows Given/When/Then BDD structure.
"""

from __future__ import annotations

import json
import ssl
from pathlib import Path

import httpx
import pytest
import respx
from railway import ErrorCode, ResultAssertions

from fedsfm_client.adapters.certificates import ChainedCertificateResolver
from fedsfm_client.adapters.http_client import HttpAuthenticator, HttpCatalogClient
from fedsfm_client.domain.models import CertificateSources, Credentials, Environment
from fedsfm_client.endpoints import EndpointSet
from fedsfm_client.pipeline import run_sync
from fedsfm_client.session import FedsfmApi
from tests.conftest import CERT_PEM, KEY_PEM

# ─────────────────────── Service URLs (simulated) ───────────────────────

BASE = "https://portal.example.ru:8081/Services/fedsfm-service"
TEST_ROOT = f"{BASE}/test-contur/suspect-catalogs"
PROD_ROOT = f"{BASE}/suspect-catalogs"

TE2_ZIP = b"PK\x03\x04te2-archive\x00\xff"
MVK_XML = "<?xml version='1.0' encoding='utf-8'?><Перечень/>".encode()
MVK_ZIP = b"PK\x03\x04mvk-archive\x00\x01"

# ─────────────────────── Fixtures ───────────────────────


def auth_response(token: str = "access-token-abc") -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "success": True,
            "value": {"accessToken": token, "currentUser": {"id": 1, "userName": "org-user"}},
            "error": None,
            "errors": [],
        },
    )


def catalog_response(document_id: str, published: str) -> httpx.Response:
    return httpx.Response(200, json={"idXml": document_id, "date": published, "isActive": True})


@pytest.fixture()
def pem_sources(tmp_path: Path) -> CertificateSources:
    cert = tmp_path / "client.pem"
    key = tmp_path / "client.key"
    cert.write_bytes(CERT_PEM)
    key.write_bytes(KEY_PEM)
    return CertificateSources(cert_file=cert, key_file=key)


@pytest.fixture()
def download_dir(tmp_path: Path) -> Path:
    return tmp_path / "lists"


def build_api(
    sources: CertificateSources, download_dir: Path, test_mode: bool, user_name: str = "org-user"
) -> FedsfmApi:
    endpoints = EndpointSet(base_url=BASE)
    environment = Environment.TEST if test_mode else Environment.PRODUCTION
    authenticator = HttpAuthenticator(
        authenticate_url=endpoints.authenticate_url(environment),
        resolver=ChainedCertificateResolver(sources),
        timeout=5,
        ssl_context_factory=lambda material: ssl.create_default_context(),
    )
    return FedsfmApi(
        authenticator=authenticator,
        catalog_client=HttpCatalogClient(download_dir=download_dir, timeout=5),
        credentials=Credentials(user_name=user_name, password="org-password"),
        serial_number="0A1B2C3D",
        endpoints=endpoints,
        test_mode=test_mode,
    )


# ─────────────────────── Tests ───────────────────────


class TestTestEnvironmentFlow:
    """
    Full flow against the test-contur endpoints.

    GIVEN a simulated portal publishing TE2 and MVK
    WHEN the session facade is used step by step
    THEN each list is saved under its dated name with the exact bytes served.
    """

    @pytest.mark.asyncio
    @respx.mock
    async def test_authorize_fetch_and_download(
        self, pem_sources: CertificateSources, download_dir: Path
    ) -> None:
        """
        GIVEN authenticate returns a token and TE2 is published on 2024-03-05
        WHEN authorize → get_te2_catalog → download_te2_file run in sequence
        THEN suspect_20240305.zip holds the served bytes
        AND every call after login carries the bearer token.
        """
        auth_route = respx.post(f"{BASE}/test-contur/authenticate").mock(return_value=auth_response())
        catalog_route = respx.post(f"{TEST_ROOT}/current-te2-catalog").mock(
            return_value=catalog_response("te2-doc-1", "2024-03-05T00:00:00")
        )
        file_route = respx.post(f"{TEST_ROOT}/current-te2-file").mock(
            return_value=httpx.Response(200, content=TE2_ZIP)
        )
        api = build_api(pem_sources, download_dir, test_mode=True)

        session = ResultAssertions.assert_success(await api.authorize())
        descriptor = ResultAssertions.assert_success(await api.get_te2_catalog(session))
        saved = ResultAssertions.assert_success(await api.download_te2_file(session, descriptor))

        assert saved == download_dir / "suspect_20240305.zip"
        assert saved.read_bytes() == TE2_ZIP
        assert json.loads(auth_route.calls.last.request.content) == {
            "userName": "org-user",
            "password": "org-password",
        }
        assert catalog_route.calls.last.request.headers["authorization"] == "Bearer access-token-abc"
        assert file_route.calls.last.request.headers["authorization"] == "Bearer access-token-abc"
        assert file_route.calls.last.request.content == b"id=te2-doc-1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_sync_downloads_test_plan(
        self, pem_sources: CertificateSources, download_dir: Path
    ) -> None:
        """
        GIVEN TE2 and MVK are published
        WHEN run_sync is called in test mode
        THEN TE2 (zip), MVK (xml) and MVK (zip) are saved
        AND the MVK catalog is requested only once.
        """
        respx.post(f"{BASE}/test-contur/authenticate").mock(return_value=auth_response())
        respx.post(f"{TEST_ROOT}/current-te2-catalog").mock(
            return_value=catalog_response("te2-doc-1", "2024-03-05T00:00:00")
        )
        mvk_catalog = respx.post(f"{TEST_ROOT}/current-mvk-catalog").mock(
            return_value=catalog_response("mvk-doc-7", "2023-12-31T21:00:00+00:00")
        )
        respx.post(f"{TEST_ROOT}/current-te2-file").mock(return_value=httpx.Response(200, content=TE2_ZIP))
        respx.post(f"{TEST_ROOT}/mvk-catalog-file").mock(return_value=httpx.Response(200, content=MVK_XML))
        respx.post(f"{TEST_ROOT}/current-mvk-file-zip").mock(return_value=httpx.Response(200, content=MVK_ZIP))
        api = build_api(pem_sources, download_dir, test_mode=True)

        report = ResultAssertions.assert_success(await run_sync(api))

        assert report.failures == []
        assert sorted(p.name for p in download_dir.iterdir()) == [
            "freeze_20231231.xml",
            "freeze_20231231.zip",
            "suspect_20240305.zip",
        ]
        assert (download_dir / "freeze_20231231.xml").read_bytes() == MVK_XML
        assert (download_dir / "freeze_20231231.zip").read_bytes() == MVK_ZIP
        assert mvk_catalog.call_count == 1


class TestProductionFlow:
    @pytest.mark.asyncio
    @respx.mock
    async def test_unpublished_list_is_skipped(
        self, pem_sources: CertificateSources, download_dir: Path
    ) -> None:
        """
        GIVEN production mode and a UN catalog with nothing published
        WHEN run_sync is called
        THEN TE21 and MVK are saved and UN is reported as NOT_FOUND.
        """
        respx.post(f"{BASE}/authenticate").mock(return_value=auth_response())
        respx.post(f"{PROD_ROOT}/current-te21-catalog").mock(
            return_value=catalog_response("te21-doc", "2024-03-05")
        )
        respx.post(f"{PROD_ROOT}/current-mvk-catalog").mock(
            return_value=catalog_response("mvk-doc", "2024-03-04")
        )
        respx.post(f"{PROD_ROOT}/current-un-catalog").mock(
            return_value=httpx.Response(200, json={"idXml": None, "date": None, "isActive": False})
        )
        respx.post(f"{PROD_ROOT}/current-te21-file").mock(return_value=httpx.Response(200, content=TE2_ZIP))
        respx.post(f"{PROD_ROOT}/current-mvk-file-zip").mock(return_value=httpx.Response(200, content=MVK_ZIP))
        api = build_api(pem_sources, download_dir, test_mode=False)

        report = ResultAssertions.assert_success(await run_sync(api))

        assert sorted(p.name for p in report.saved_paths) == ["freeze_20240304.zip", "suspect_20240305.zip"]
        [skipped] = report.failures
        assert skipped.failure is not None
        assert skipped.failure.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_rejected_login_stops_everything(
        self, pem_sources: CertificateSources, download_dir: Path, respx_mock: respx.MockRouter
    ) -> None:
        """
        GIVEN the portal rejects the credentials
        WHEN run_sync is called
        THEN AUTHENTICATION_ERROR is returned and no catalog is requested.
        """
        respx_mock.post(f"{BASE}/authenticate").mock(
            return_value=httpx.Response(
                200, json={"success": False, "error": "Invalid credentials", "errors": []}
            )
        )
        catalog = respx_mock.post(f"{PROD_ROOT}/current-te21-catalog").mock(
            return_value=catalog_response("te21-doc", "2024-03-05")
        )
        api = build_api(pem_sources, download_dir, test_mode=False)

        result = await run_sync(api)

        ResultAssertions.assert_failure(result, ErrorCode.AUTHENTICATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "Invalid credentials")
        assert not catalog.called
        assert not download_dir.exists()

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_blank_user_name_sends_nothing(
        self, pem_sources: CertificateSources, download_dir: Path, respx_mock: respx.MockRouter
    ) -> None:
        """
        GIVEN an empty user name
        WHEN authorize is called
        THEN VALIDATION_ERROR is returned and the portal never sees a request.
        """
        auth_route = respx_mock.post(f"{BASE}/authenticate").mock(return_value=auth_response())
        api = build_api(pem_sources, download_dir, test_mode=False, user_name="")

        result = await api.authorize()

        ResultAssertions.assert_failure(result, ErrorCode.VALIDATION_ERROR)
        assert not auth_route.called
