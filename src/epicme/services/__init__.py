"""Service layer — business logic returning ServiceResult.

Services wrap the journal and the render pipeline; they never raise for
expected failures (missing records, duplicates, cancelled renders) and
report them as ``ServiceResult`` errors instead.
"""

from epicme.services.entries import EntryService
from epicme.services.result import ServiceError, ServiceResult
from epicme.services.tags import TagService
from epicme.services.video import CancelToken, RenderPipeline, VideoService

__all__ = [
    "CancelToken",
    "EntryService",
    "RenderPipeline",
    "ServiceError",
    "ServiceResult",
    "TagService",
    "VideoService",
]
