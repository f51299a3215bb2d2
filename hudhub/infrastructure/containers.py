"""
Dependency Injection container for the hudhub component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from dependency_injector import containers, providers
import httpx

from ..application.deployment import DeploymentService
from ..application.domain import *
from ..application.resolver import PackageResolver
from ..application.service import HudHubService
from ..settings import settings

from .archives import ArchiveExtractor
from .downloader import HttpDownloader
from .paths import SettingsPathsProvider
from .scanner import HudScanner
from .state_store import JsonStateStore


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    config = providers.Object(settings)

    http_client = providers.Singleton(httpx.AsyncClient, follow_redirects=True)

    downloader: providers.Factory[Downloader] = providers.Factory(
        HttpDownloader,
        client=http_client,
        timeout=config().hudhub.timeout,
        retry_attempts=config().hudhub.retry_attempts,
    )

    extractor: providers.Factory[Extractor] = providers.Factory(
        ArchiveExtractor,
    )

    scanner: providers.Factory[Scanner] = providers.Factory(
        HudScanner,
        single_file_extensions=config().hudhub.single_file_extensions,
    )

    paths: providers.Factory[PathsProvider] = providers.Factory(
        SettingsPathsProvider,
        huds_directory=config().paths.huds_directory,
        state_file=config().paths.state_file,
    )

    state_store: providers.Factory[StateStore] = providers.Factory(
        JsonStateStore,
        path=paths.provided.state_file.call(),
    )

    resolver = providers.Factory(
        PackageResolver,
        downloader=downloader,
        extractor=extractor,
        scanner=scanner,
    )

    deployment = providers.Factory(
        DeploymentService,
        resolver=resolver,
        scanner=scanner,
    )

    hudhub_service = providers.Factory(
        HudHubService,
        resolver=resolver,
        deployment=deployment,
        scanner=scanner,
        state_store=state_store,
        paths=paths,
        overwrite_existing_sources=config().hudhub.overwrite_existing_sources,
    )
