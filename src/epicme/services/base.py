"""BaseService — foundation for the journal-backed services.

Every service receives a :class:`Journal` at construction time and maps
store exceptions onto :class:`ServiceResult` error codes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from epicme.infrastructure.journal import DuplicateRecordError, JournalError, RecordNotFoundError
from epicme.services.result import DUPLICATE, NOT_FOUND, VALIDATION_ERROR, ServiceResult

if TYPE_CHECKING:
    from epicme.infrastructure.journal import Journal

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class EntryService(BaseService):
            async def delete(self, entry_id: int) -> ServiceResult:
                try:
                    entry = await self._journal.delete_entry(entry_id)
                except JournalError as exc:
                    return self._failure("delete_entry", exc)
                ...
    """

    def __init__(self, journal: Journal) -> None:
        self._journal = journal

    @property
    def journal(self) -> Journal:
        return self._journal

    @staticmethod
    def _failure(op: str, exc: JournalError) -> ServiceResult:
        if isinstance(exc, RecordNotFoundError):
            return ServiceResult.failure(
                op,
                NOT_FOUND,
                f"No {exc.category} found with ID: {exc.identifier}",
                identity=f"{exc.category}/{exc.identifier}",
            )
        if isinstance(exc, DuplicateRecordError):
            return ServiceResult.failure(op, DUPLICATE, str(exc), key=exc.key)
        logger.debug("Unmapped journal error in %s", op, exc_info=True)
        return ServiceResult.failure(op, VALIDATION_ERROR, str(exc))

    @staticmethod
    def _not_found(op: str, category: str, identifier: int | str) -> ServiceResult:
        return BaseService._failure(op, RecordNotFoundError(category, identifier))
