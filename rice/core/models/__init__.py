"""Domain models — state document, environment, catalogue types."""

from rice.core.models.catalog import DownloadSpec
from rice.core.models.environment import Environment
from rice.core.models.state import StateDocument, ToolRecord

__all__ = [
    "DownloadSpec",
    "Environment",
    "StateDocument",
    "ToolRecord",
]
