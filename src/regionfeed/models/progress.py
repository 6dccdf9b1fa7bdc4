"""Progress reporting model."""

from __future__ import annotations

from regionfeed.models._base import FeedBaseModel


class ProgressEvent(FeedBaseModel):
    """Snapshot of a load session's progress.

    ``loaded_count`` counts region keys that contributed their complete
    feature set; ``failed_count`` counts keys abandoned after a network
    or format error.  An empty ``message`` means "hide the indicator".
    """

    message: str
    loaded_count: int = 0
    total_count: int = 0
    failed_count: int = 0
    feature_count: int = 0
