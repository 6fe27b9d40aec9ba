# cartflow/domain/results.py
from dataclasses import dataclass
from enum import Enum


class WriteStatus(str, Enum):
    OK = "ok"
    QUEUED = "queued"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of a best-effort write to the local cache or the remote mirror.
    Writers never raise; the caller decides what to do with a failure.
    """

    status: WriteStatus
    operation: str
    reason: str | None = None

    @classmethod
    def ok(cls, operation: str) -> "WriteResult":
        return cls(WriteStatus.OK, operation)

    @classmethod
    def queued(cls, operation: str) -> "WriteResult":
        return cls(WriteStatus.QUEUED, operation)

    @classmethod
    def skipped(cls, operation: str, reason: str) -> "WriteResult":
        return cls(WriteStatus.SKIPPED, operation, reason)

    @classmethod
    def failed(cls, operation: str, reason: str) -> "WriteResult":
        return cls(WriteStatus.FAILED, operation, reason)

    @property
    def failed_write(self) -> bool:
        return self.status is WriteStatus.FAILED
