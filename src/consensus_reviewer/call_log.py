"""Explicit API call log.

A ``CallLog`` is created by the caller and passed into the orchestrator and
synthesizer. Records are kept in memory and returned to the caller; an
optional JSONL file receives one line per record.
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from consensus_reviewer.models.job import ModelReviewResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCallRecord:
    """One backend call as seen by the orchestrator."""

    model: str
    operation: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    latency_ms: int
    success: bool
    cost: float = 0.0
    error: str | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @classmethod
    def from_result(cls, result: ModelReviewResult, operation: str = "review") -> "ApiCallRecord":
        return cls(
            model=str(result.model),
            operation=operation,
            input_tokens=result.usage.input_tokens,
            output_tokens=result.usage.output_tokens,
            total_tokens=result.usage.total_tokens,
            latency_ms=result.latency_ms,
            success=result.succeeded,
            cost=result.cost,
            error=result.error_message,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class CallLog:
    """Append-only, lock-serialized collection of API call records."""

    def __init__(self, path: Path | str | None = None) -> None:
        """Initialize the log.

        Args:
            path: Optional JSONL file; each record is appended as one line
        """
        self.path = Path(path) if path else None
        self._records: list[ApiCallRecord] = []
        self._lock = threading.Lock()

    def record(self, record: ApiCallRecord) -> None:
        with self._lock:
            self._records.append(record)
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(json.dumps(record.to_dict()) + "\n")

    def record_result(self, result: ModelReviewResult, operation: str = "review") -> ApiCallRecord:
        """Build a record from a result and append it."""
        record = ApiCallRecord.from_result(result, operation)
        self.record(record)
        logger.debug(
            f"Logged {operation} call for {record.model}: "
            f"{record.total_tokens} tokens, {record.latency_ms}ms, success={record.success}"
        )
        return record

    @property
    def records(self) -> list[ApiCallRecord]:
        """Snapshot of the records collected so far."""
        with self._lock:
            return list(self._records)

    @property
    def total_cost(self) -> float:
        return sum(r.cost for r in self.records)

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self.records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
