"""
Endpoint table — REST paths of the fedsfm portal per list and environment.

The test environment ("test-contur") publishes only TE2 and MVK; TE21 and
UN exist in production only. MVK is the only list offered both as a plain
XML file and as a ZIP archive.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from fedsfm_client.domain.models import Environment, ListType

BASE_URL = "https://portal.fedsfm.ru:8081/Services/fedsfm-service"


@dataclass(frozen=True, slots=True)
class ListEndpoints:
    """Catalog, file and (optional) archive paths for one list."""

    catalog: str
    file: str
    zip_file: str | None = None


_TEST = "/test-contur"
_CATALOGS = "/suspect-catalogs"

AUTHENTICATE_PATHS: Mapping[Environment, str] = {
    Environment.TEST: f"{_TEST}/authenticate",
    Environment.PRODUCTION: "/authenticate",
}

LIST_PATHS: Mapping[tuple[ListType, Environment], ListEndpoints] = {
    (ListType.TE2, Environment.TEST): ListEndpoints(
        catalog=f"{_TEST}{_CATALOGS}/current-te2-catalog",
        file=f"{_TEST}{_CATALOGS}/current-te2-file",
    ),
    (ListType.MVK, Environment.TEST): ListEndpoints(
        catalog=f"{_TEST}{_CATALOGS}/current-mvk-catalog",
        file=f"{_TEST}{_CATALOGS}/mvk-catalog-file",
        zip_file=f"{_TEST}{_CATALOGS}/current-mvk-file-zip",
    ),
    (ListType.TE2, Environment.PRODUCTION): ListEndpoints(
        catalog=f"{_CATALOGS}/current-te2-catalog",
        file=f"{_CATALOGS}/current-te2-file",
    ),
    (ListType.TE21, Environment.PRODUCTION): ListEndpoints(
        catalog=f"{_CATALOGS}/current-te21-catalog",
        file=f"{_CATALOGS}/current-te21-file",
    ),
    (ListType.MVK, Environment.PRODUCTION): ListEndpoints(
        catalog=f"{_CATALOGS}/current-mvk-catalog",
        file=f"{_CATALOGS}/mvk-catalog-file",
        zip_file=f"{_CATALOGS}/current-mvk-file-zip",
    ),
    (ListType.UN, Environment.PRODUCTION): ListEndpoints(
        catalog=f"{_CATALOGS}/current-un-catalog",
        file=f"{_CATALOGS}/current-un-file",
    ),
}


class EndpointSet:
    """
    Resolve absolute URLs for (list type, environment) combinations.

    Lists that exist only in production always resolve against production,
    whatever environment is requested.
    """

    def __init__(
        self,
        base_url: str = BASE_URL,
        authenticate_paths: Mapping[Environment, str] = AUTHENTICATE_PATHS,
        list_paths: Mapping[tuple[ListType, Environment], ListEndpoints] = LIST_PATHS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._authenticate_paths = authenticate_paths
        self._list_paths = list_paths

    @property
    def base_url(self) -> str:
        return self._base_url

    def authenticate_url(self, environment: Environment) -> str:
        return self._url(self._authenticate_paths[environment])

    def effective_environment(self, list_type: ListType, environment: Environment) -> Environment:
        return Environment.PRODUCTION if list_type.production_only else environment

    def for_list(self, list_type: ListType, environment: Environment) -> ListEndpoints:
        """
        Paths for a list. Raises LookupError for a combination the portal
        does not publish.
        """
        key = (list_type, self.effective_environment(list_type, environment))
        try:
            return self._list_paths[key]
        except KeyError:
            raise LookupError(
                f"No endpoints for {list_type.name} in {key[1].value} environment"
            ) from None

    def catalog_url(self, list_type: ListType, environment: Environment) -> str:
        return self._url(self.for_list(list_type, environment).catalog)

    def file_url(
        self, list_type: ListType, environment: Environment, archive: bool = False
    ) -> str:
        endpoints = self.for_list(list_type, environment)
        if not archive:
            return self._url(endpoints.file)
        if endpoints.zip_file is None:
            raise LookupError(f"{list_type.name} is not published as a ZIP archive")
        return self._url(endpoints.zip_file)

    def _url(self, path: str) -> str:
        if not path:
            raise LookupError("Endpoint path must not be empty")
        return f"{self._base_url}{path}"
