"""
Application entry point — wires dependencies and runs one sync.

Composition root: creates the concrete adapters, injects them into the
session facade, and runs the sync plan for the configured environment.

Responsibilities:
  1. Configure structlog for structured console logging
  2. Load and validate configuration from environment
  3. Create the certificate resolver, authenticator and catalog client
  4. Run the default plan (test or production) and report the outcome

Exit status: 0 when the run completed (even if some lists had nothing to
download), 1 on configuration or authorization failure.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import structlog

from fedsfm_client import __version__
from fedsfm_client.adapters.certificates import ChainedCertificateResolver
from fedsfm_client.adapters.http_client import (
    HttpAuthenticator,
    HttpCatalogClient,
    server_ssl_context,
)
from fedsfm_client.config import AppSettings
from fedsfm_client.endpoints import EndpointSet
from fedsfm_client.pipeline import SyncReport, run_sync
from fedsfm_client.session import FedsfmApi


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for structured, key-value console logging.

    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_api(settings: AppSettings) -> FedsfmApi:
    """
    Instantiate all concrete adapters from application settings.

    This is the ONLY place where concrete adapter classes are created.
    """
    endpoints = EndpointSet(base_url=settings.base_url)

    resolver = ChainedCertificateResolver(settings.certificate_sources())
    authenticator = HttpAuthenticator(
        authenticate_url=endpoints.authenticate_url(settings.environment()),
        resolver=resolver,
        timeout=settings.http_timeout_seconds,
        ca_bundle=settings.ca_bundle,
    )
    catalog_client = HttpCatalogClient(
        download_dir=settings.download_dir,
        timeout=settings.http_timeout_seconds,
        verify=server_ssl_context(settings.ca_bundle),
    )
    return FedsfmApi(
        authenticator=authenticator,
        catalog_client=catalog_client,
        credentials=settings.credentials(),
        serial_number=settings.certificate_serial_number,
        endpoints=endpoints,
        test_mode=settings.test_mode,
    )


def _log_report(report: SyncReport) -> None:
    log = structlog.get_logger()
    for outcome in report.outcomes:
        step = outcome.step
        if outcome.saved_path is not None:
            log.info(
                "app.list_saved",
                list_type=step.list_type.name,
                archive=step.archive,
                path=str(outcome.saved_path),
            )
        elif outcome.failure is not None:
            log.warning(
                "app.list_skipped",
                list_type=step.list_type.name,
                archive=step.archive,
                reason=outcome.failure.code.value,
                message=outcome.failure.message,
            )


async def run(settings: AppSettings) -> int:
    """Run one sync with the given settings; returns the process exit status."""
    log = structlog.get_logger()
    api = create_api(settings)
    result = await run_sync(api)
    if result.is_failure():
        log.error("app.authorization_failed", failure=str(result.error()))
        return 1
    _log_report(result.value())
    return 0


def main() -> None:
    """Load settings, configure logging, and run the sync."""
    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level)
    log = structlog.get_logger()
    log.info(
        "app.starting",
        version=__version__,
        log_level=settings.log_level,
        test_mode=settings.test_mode,
        download_dir=str(settings.download_dir),
    )

    try:
        exit_code = asyncio.run(run(settings))
    except KeyboardInterrupt:
        log.info("app.shutdown", reason="interrupted")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
