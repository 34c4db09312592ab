"""Static site build and publication"""
from .builder import SiteBuilder, DEPENDENCY_INSTALLERS
from .hook import PagesHook
from .pipeline import DeploymentResult, PagesPipeline, PipelineState
from .publisher import DeploymentLayout, SitePublisher

__all__ = [
    'SiteBuilder',
    'DEPENDENCY_INSTALLERS',
    'PagesHook',
    'PagesPipeline',
    'PipelineState',
    'DeploymentResult',
    'DeploymentLayout',
    'SitePublisher',
]
