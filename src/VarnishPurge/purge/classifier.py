"""Response classification and per-batch error aggregation."""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Union

from ..errors import TransportError, UnacceptableStatusError
from ..net.request import CompletionRecord

__all__ = ["ACCEPTED_STATUSES", "ErrorAggregator", "ResponseClassifier"]

logger = logging.getLogger(__name__)

# 404 means the object was not cached, which is fine for a purge.
ACCEPTED_STATUSES = frozenset({200, 404})


class ErrorAggregator:
    """Append-only list of failure messages for one purge batch."""

    def __init__(self) -> None:
        self._errors: List[str] = []

    def append(self, message: str) -> None:
        self._errors.append(message)

    def reset(self) -> None:
        self._errors = []

    def as_list(self) -> List[str]:
        return list(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[str]:
        return iter(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)


class ResponseClassifier:
    """Completion callback that records every non-accepted outcome.

    Instances are passed directly to
    :meth:`~VarnishPurge.net.dispatcher.ConcurrencyDispatcher.execute`; they run
    on the dispatch loop, which is the only writer of the aggregator.
    """

    def __init__(self, aggregator: ErrorAggregator) -> None:
        self.aggregator = aggregator

    def __call__(self, record: CompletionRecord) -> Optional[str]:
        return self.classify(record)

    def classify(self, record: CompletionRecord) -> Optional[str]:
        """Return the error message for ``record`` (also stored), or ``None``."""
        failure = self.failure_for(record)
        if failure is None:
            return None
        message = str(failure)
        self.aggregator.append(message)
        logger.warning(message)
        return message

    @staticmethod
    def failure_for(
        record: CompletionRecord,
    ) -> Optional[Union[TransportError, UnacceptableStatusError]]:
        """Describe why ``record`` is a failure; ``None`` when it is accepted."""
        if not record.transport_ok:
            return TransportError(
                f"Cannot purge url {record.url} due to error {record.error}",
                url=record.url,
                error_type=record.error_type,
            )
        if record.status_code not in ACCEPTED_STATUSES:
            diagnostic = record.error or ""
            return UnacceptableStatusError(
                f"Cannot purge url {record.url}, http code: {record.status_code}. "
                f"transport error: {diagnostic}",
                url=record.url,
                status_code=record.status_code or 0,
                diagnostic=diagnostic,
            )
        return None
