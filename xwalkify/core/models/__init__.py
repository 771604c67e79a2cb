"""
Domain models — the values passed between pipeline stages.

All models are re-exported here for convenient access:

    from xwalkify.core.models import ReleaseConfiguration, PipelineResult
"""

from xwalkify.core.models.receipt import Receipt
from xwalkify.core.models.release import (
    DownloadTarget,
    ReleaseConfiguration,
    default_cache_root,
)
from xwalkify.core.models.result import PipelineResult, Stage

__all__ = [
    # receipt.py
    "Receipt",
    # release.py
    "DownloadTarget",
    "ReleaseConfiguration",
    "default_cache_root",
    # result.py
    "PipelineResult",
    "Stage",
]
