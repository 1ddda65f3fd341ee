"""Template catalog, executors and the artifact factory."""

from chainstage.artifacts.catalog import Template, TemplateCatalog
from chainstage.artifacts.executor import Executor, JsonRpcExecutor, PublishReceipt
from chainstage.artifacts.factory import ArtifactBuilder, ArtifactFactory, ArtifactHandle

__all__ = [
    "ArtifactBuilder",
    "ArtifactFactory",
    "ArtifactHandle",
    "Executor",
    "JsonRpcExecutor",
    "PublishReceipt",
    "Template",
    "TemplateCatalog",
]
