"""Transport errors raised by the extraction worker."""

from __future__ import annotations


class ExtractionWorkerError(RuntimeError):
    """Base class for failures between a caller and the extraction executor."""

    def __init__(self, message: str, message_id: int | None = None) -> None:
        super().__init__(message)
        self.message_id = message_id


class ExtractionTimeoutError(ExtractionWorkerError):
    pass


class QueueFullError(ExtractionWorkerError):
    pass


class WorkerCrashedError(ExtractionWorkerError):
    pass
