"""Before/after create hooks for collection writes."""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List

from common.logging_config import get_logger
from appnode.repositories.record_repository import Record

logger = get_logger(__name__)


@dataclass
class RecordCreateEvent:
    collection: str
    record: Record


HookHandler = Callable[[RecordCreateEvent], Awaitable[None]]


class WriteHookRegistry:
    """
    Handlers run around record creation requests, keyed by collection name.

    Before-create handlers run before the record is stored; an exception
    aborts the write. After-create handlers run once the record is stored;
    their errors are logged and never fail the request.
    """

    def __init__(self):
        self._before: Dict[str, List[HookHandler]] = {}
        self._after: Dict[str, List[HookHandler]] = {}

    def before_create(self, collections: Iterable[str], handler: HookHandler) -> None:
        for name in collections:
            self._before.setdefault(name, []).append(handler)
        logger.debug(f"Registered before-create hook {handler!r}")

    def after_create(self, collections: Iterable[str], handler: HookHandler) -> None:
        for name in collections:
            self._after.setdefault(name, []).append(handler)
        logger.debug(f"Registered after-create hook {handler!r}")

    async def run_before_create(self, event: RecordCreateEvent) -> None:
        for handler in self._before.get(event.collection, []):
            await handler(event)

    async def run_after_create(self, event: RecordCreateEvent) -> None:
        for handler in self._after.get(event.collection, []):
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    f"After-create hook failed for {event.collection} record "
                    f"[id={event.record.id}]: {e}",
                    exc_info=True
                )
