from gitraf.core.models.pages import PagesConfig
from gitraf.core.models.push import (NEW_ID_MARKER, PREVIOUS_ID_SENTINEL,
                                     PushEvent, read_events)
from gitraf.core.models.repository import Repository

__all__ = [
    "Repository",
    "PagesConfig",
    "PushEvent",
    "read_events",
    "PREVIOUS_ID_SENTINEL",
    "NEW_ID_MARKER",
]
