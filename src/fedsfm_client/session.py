"""
Session facade — authorize once, then fetch catalogs and download lists.

    api = FedsfmApi(authenticator, catalog_client, credentials, serial, endpoints, test_mode=False)
    session = (await api.authorize()).value()
    catalog = await api.get_un_catalog(session)
    if catalog.is_success():
        await api.download_un_file(session, catalog.value())

`authorize()` hands back an AuthorizedSession; every other operation takes
it as its first argument. Passing None instead gets the catalog client's
"not authorized" soft-fail (logged, no request made).

Environment selection: TEST when `test_mode` is set, else PRODUCTION.
TE21 and UN are production-only and always use production endpoints.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from railway import Result

from fedsfm_client.domain.models import (
    AuthorizedSession,
    CatalogDescriptor,
    Credentials,
    Environment,
    ListType,
)
from fedsfm_client.domain.ports import Authenticator, CatalogGateway
from fedsfm_client.endpoints import EndpointSet

log = structlog.get_logger()

_DESCRIPTIONS = {
    ListType.TE2: "entities and individuals suspected of extremist or terrorist activities (TE2)",
    ListType.TE21: "entities and individuals suspected of extremist or terrorist activities (TE21)",
    ListType.MVK: "persons subject to the Commission's decision to freeze financial resources or other assets",
    ListType.UN: "UN Security Council consolidated list (terrorism / WMD proliferation)",
}


class FedsfmApi:
    """Named catalog and download operations over one endpoint environment."""

    def __init__(
        self,
        authenticator: Authenticator,
        catalog_client: CatalogGateway,
        credentials: Credentials,
        serial_number: str,
        endpoints: EndpointSet | None = None,
        test_mode: bool = True,
    ) -> None:
        self._authenticator = authenticator
        self._catalog_client = catalog_client
        self._credentials = credentials
        self._serial_number = serial_number
        self._endpoints = endpoints or EndpointSet()
        self._environment = Environment.TEST if test_mode else Environment.PRODUCTION

    @property
    def environment(self) -> Environment:
        return self._environment

    # ──────────────────────── Authorization ────────────────────────

    async def authorize(self) -> Result[AuthorizedSession]:
        """
        Log in and return a fresh session.

        Each call re-authenticates; previously returned sessions keep
        whatever token they were issued.
        """
        log.info(
            "session.authorizing",
            base_url=self._endpoints.base_url,
            environment=self._environment.value,
            user_name=self._credentials.user_name,
            serial=self._serial_number,
        )
        token = await self._authenticator.login(
            self._credentials.user_name,
            self._credentials.password,
            self._serial_number,
        )
        return token.map(
            lambda access_token: AuthorizedSession(
                access_token=access_token, environment=self._environment
            )
        ).peek(lambda _: log.info("session.authorized", environment=self._environment.value))

    # ──────────────────────── Catalogs ────────────────────────

    async def get_catalog(
        self, session: AuthorizedSession | None, list_type: ListType
    ) -> Result[CatalogDescriptor]:
        log.info("session.catalog_requested", list_type=list_type.name, description=_DESCRIPTIONS[list_type])
        url = self._endpoints.catalog_url(list_type, self._environment)
        result = await self._catalog_client.fetch_catalog(_token(session), url)
        return result.peek_failure(
            lambda failure: log.warning(
                "session.no_catalog_available",
                list_type=list_type.name,
                reason=failure.code.value,
            )
        )

    async def get_te2_catalog(self, session: AuthorizedSession | None) -> Result[CatalogDescriptor]:
        return await self.get_catalog(session, ListType.TE2)

    async def get_te21_catalog(self, session: AuthorizedSession | None) -> Result[CatalogDescriptor]:
        return await self.get_catalog(session, ListType.TE21)

    async def get_mvk_catalog(self, session: AuthorizedSession | None) -> Result[CatalogDescriptor]:
        return await self.get_catalog(session, ListType.MVK)

    async def get_un_catalog(self, session: AuthorizedSession | None) -> Result[CatalogDescriptor]:
        return await self.get_catalog(session, ListType.UN)

    # ──────────────────────── Downloads ────────────────────────

    async def download(
        self,
        session: AuthorizedSession | None,
        list_type: ListType,
        descriptor: CatalogDescriptor | None,
        archive: bool = False,
    ) -> Result[Path]:
        """
        Download the file described by `descriptor`.

        `archive` selects the ZIP variant for lists offered both ways (MVK);
        the extension follows the endpoint, the prefix follows the list.
        """
        url = self._endpoints.file_url(list_type, self._environment, archive=archive)
        extension = "zip" if archive else list_type.extension
        return await self._catalog_client.download_file(
            _token(session), descriptor, url, extension, list_type.prefix
        )

    async def download_te2_file(
        self, session: AuthorizedSession | None, descriptor: CatalogDescriptor | None
    ) -> Result[Path]:
        return await self.download(session, ListType.TE2, descriptor)

    async def download_te21_file(
        self, session: AuthorizedSession | None, descriptor: CatalogDescriptor | None
    ) -> Result[Path]:
        return await self.download(session, ListType.TE21, descriptor)

    async def download_mvk_file(
        self, session: AuthorizedSession | None, descriptor: CatalogDescriptor | None
    ) -> Result[Path]:
        return await self.download(session, ListType.MVK, descriptor)

    async def download_mvk_zip_file(
        self, session: AuthorizedSession | None, descriptor: CatalogDescriptor | None
    ) -> Result[Path]:
        return await self.download(session, ListType.MVK, descriptor, archive=True)

    async def download_un_file(
        self, session: AuthorizedSession | None, descriptor: CatalogDescriptor | None
    ) -> Result[Path]:
        return await self.download(session, ListType.UN, descriptor)


def _token(session: AuthorizedSession | None) -> str | None:
    return session.access_token if session is not None else None
