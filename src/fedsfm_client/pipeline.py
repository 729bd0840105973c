"""
Sync pipeline — authorize, then fetch and download each planned list.

  authorize()
    → for each planned list:
        get_catalog(session, list)
          → download(session, list, descriptor)

Authorization failure short-circuits the whole run. A failing list is
recorded in the report and the run moves on to the next one.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from railway import FailureDescription, Result

from fedsfm_client.domain.models import (
    AuthorizedSession,
    CatalogDescriptor,
    Environment,
    ListType,
)
from fedsfm_client.session import FedsfmApi

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ListDownload:
    """One step of a sync plan: which list, and whether to fetch the ZIP variant."""

    list_type: ListType
    archive: bool = False


@dataclass(frozen=True, slots=True)
class ListOutcome:
    """What happened to one planned list."""

    step: ListDownload
    descriptor: CatalogDescriptor | None = None
    saved_path: Path | None = None
    failure: FailureDescription | None = None

    @property
    def saved(self) -> bool:
        return self.saved_path is not None


@dataclass(frozen=True, slots=True)
class SyncReport:
    outcomes: list[ListOutcome] = field(default_factory=list)

    @property
    def saved_paths(self) -> list[Path]:
        return [o.saved_path for o in self.outcomes if o.saved_path is not None]

    @property
    def failures(self) -> list[ListOutcome]:
        return [o for o in self.outcomes if o.failure is not None]


TEST_PLAN: tuple[ListDownload, ...] = (
    ListDownload(ListType.TE2),
    ListDownload(ListType.MVK),
    ListDownload(ListType.MVK, archive=True),
)

PRODUCTION_PLAN: tuple[ListDownload, ...] = (
    ListDownload(ListType.TE21),
    ListDownload(ListType.MVK, archive=True),
    ListDownload(ListType.UN),
)


def default_plan(environment: Environment) -> tuple[ListDownload, ...]:
    return TEST_PLAN if environment is Environment.TEST else PRODUCTION_PLAN


async def run_sync(
    api: FedsfmApi,
    plan: Sequence[ListDownload] | None = None,
) -> Result[SyncReport]:
    """
    Execute a sync plan against the portal.

    Returns the authorization failure, or Success(SyncReport) with one
    outcome per step. Catalogs are fetched once per list type, so MVK
    file + archive share a single catalog request.
    """
    steps = tuple(plan) if plan is not None else default_plan(api.environment)
    authorized = await api.authorize()
    if authorized.is_failure():
        log.error("sync.authorization_failed", failure=str(authorized.error()))
        return Result.failure_from(authorized.error())

    session = authorized.value()
    catalogs: dict[ListType, Result[CatalogDescriptor]] = {}
    outcomes: list[ListOutcome] = []
    for step in steps:
        if step.list_type not in catalogs:
            catalogs[step.list_type] = await api.get_catalog(session, step.list_type)
        outcomes.append(await _download_step(api, session, step, catalogs[step.list_type]))

    report = SyncReport(outcomes=outcomes)
    log.info(
        "sync.completed",
        planned=len(steps),
        saved=len(report.saved_paths),
        failed=len(report.failures),
    )
    return Result.success(report)


async def _download_step(
    api: FedsfmApi,
    session: AuthorizedSession,
    step: ListDownload,
    catalog: Result[CatalogDescriptor],
) -> ListOutcome:
    if catalog.is_failure():
        return ListOutcome(step=step, failure=catalog.error())

    descriptor = catalog.value()
    saved = await api.download(session, step.list_type, descriptor, archive=step.archive)
    return saved.either(
        on_success=lambda path: ListOutcome(step=step, descriptor=descriptor, saved_path=path),
        on_failure=lambda failure: ListOutcome(step=step, descriptor=descriptor, failure=failure),
    )
