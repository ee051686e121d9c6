"""Application composition root.

This module wires together configuration, the report document store, and the optional remote
collaborators (Power BI backend, GitHub publisher) for the bot runtime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.actions.executor import ActionExecutor
from src.config.settings import Settings
from src.intent.context import CommandContext
from src.powerbi.client import PowerBIBackend, PowerBIConfig
from src.powerbi.credentials import ClientCredentialsProvider
from src.publish.github import GitHubConfig, GitHubPublisher
from src.report.storage import DocumentStorage
from src.report.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    context: CommandContext
    store: DocumentStore
    executor: ActionExecutor
    backend: PowerBIBackend | None = None
    publisher: GitHubPublisher | None = None


def create_backend(settings: Settings) -> PowerBIBackend | None:
    """Build the Power BI backend, or return None when its identifiers are incomplete."""

    if not settings.powerbi_configured:
        return None

    credentials = ClientCredentialsProvider(
        settings.powerbi_tenant_id or "",
        settings.powerbi_client_id or "",
        settings.powerbi_client_secret or "",
        timeout_s=settings.remote_timeout_s,
    )
    config = PowerBIConfig(
        workspace_id=settings.powerbi_workspace_id or "",
        dataset_id=settings.powerbi_dataset_id or "",
        report_id=settings.powerbi_report_id,
        api_base=settings.powerbi_api_base,
        theme_update_url=settings.theme_update_url,
        timeout_s=settings.remote_timeout_s,
        export_poll_interval_s=settings.export_poll_interval_s,
        export_max_polls=settings.export_max_polls,
    )
    return PowerBIBackend(config, credentials)


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        The report document is not loaded here. Call `await app.store.load()` at startup so a
        corrupt document aborts the process before polling begins.
    """

    context = CommandContext(vendors=tuple(settings.vendors), categories=tuple(settings.categories))
    store = DocumentStore(DocumentStorage(settings.report_path))
    backend = create_backend(settings)

    publisher = None
    if settings.publish_configured:
        publisher = GitHubPublisher(
            GitHubConfig(
                token=settings.github_token or "",
                repo=settings.github_repo or "",
                branch=settings.github_branch,
                file_path=settings.github_file_path,
                timeout_s=settings.remote_timeout_s,
            ),
            settings.report_path,
        )

    logger.info(
        "app created remote=%s publish=%s llm=%s",
        backend is not None,
        publisher is not None,
        settings.llm_enabled,
    )
    return App(
        settings=settings,
        context=context,
        store=store,
        executor=ActionExecutor(store, backend, context=context),
        backend=backend,
        publisher=publisher,
    )
