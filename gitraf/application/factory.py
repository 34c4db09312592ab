"""Wiring of gateway, dispatcher and pipeline from settings."""

from typing import BinaryIO, Optional, TextIO

from gitraf.application.gateway import CommandGateway
from gitraf.core.config import Settings, get_settings
from gitraf.core.git import GitCommandExecutor
from gitraf.core.repository import RepositoryStore
from gitraf.infrastructure.concurrency import LockManager
from gitraf.infrastructure.hooks import HookDispatcher
from gitraf.infrastructure.transport import BackendTransport
from gitraf.pages import PagesHook, PagesPipeline, SiteBuilder, SitePublisher


def build_store(settings: Optional[Settings] = None) -> RepositoryStore:
    settings = settings or get_settings()
    return RepositoryStore(
        settings.repository_base_path,
        executor=GitCommandExecutor(settings.git_binary_path),
        pages_config_filename=settings.pages_config_filename,
    )


def build_pipeline(
    store: RepositoryStore,
    settings: Optional[Settings] = None,
) -> PagesPipeline:
    settings = settings or get_settings()
    return PagesPipeline(
        store,
        settings.pages_base_path,
        LockManager(settings.lock_dir),
        builder=SiteBuilder(
            executor=GitCommandExecutor(settings.git_binary_path),
            timeout=settings.pages_build_timeout_seconds,
        ),
        publisher=SitePublisher(keep_releases=settings.pages_keep_releases),
        lock_timeout=settings.pages_lock_timeout_seconds,
    )


def build_dispatcher(
    store: RepositoryStore,
    settings: Optional[Settings] = None,
    output: Optional[BinaryIO] = None,
) -> HookDispatcher:
    settings = settings or get_settings()
    dispatcher = HookDispatcher(
        store,
        timeout=settings.hook_timeout_seconds,
        output=output,
    )
    if settings.pages_enabled:
        dispatcher.register_hook(PagesHook(build_pipeline(store, settings)))
    return dispatcher


def build_gateway(
    settings: Optional[Settings] = None,
    output: Optional[BinaryIO] = None,
    error_output: Optional[TextIO] = None,
) -> CommandGateway:
    settings = settings or get_settings()
    store = build_store(settings)
    return CommandGateway(
        store,
        BackendTransport(
            command_prefix=settings.transport_command,
            repository_root=settings.transport_repository_root,
            terminate_grace_seconds=settings.transport_terminate_grace_seconds,
        ),
        build_dispatcher(store, settings, output=output),
        error_output=error_output,
    )
