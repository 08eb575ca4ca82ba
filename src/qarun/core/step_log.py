"""StepLog — append-only, tag-scoped record of executed steps.

One StepLog belongs to one scheduler run. Records are never reordered,
deduplicated or modified after they are appended.
"""

from __future__ import annotations

from collections.abc import Iterator

from qarun.core.models import StepKeyword, StepRecord, StepStatus


class StepLog:
    """Ordered sequence of StepRecords plus the current scoping tag."""

    def __init__(self) -> None:
        self._records: list[StepRecord] = []
        self._tag = ""

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def records(self) -> list[StepRecord]:
        """Snapshot of all records in insertion order."""
        return list(self._records)

    @property
    def failed(self) -> bool:
        return any(r.status == StepStatus.FAILED for r in self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(list(self._records))

    def set_tag(self, tag: str) -> None:
        """Tag applied to records pushed from now on."""
        self._tag = tag

    def clear_tag(self) -> None:
        self._tag = ""

    def push(
        self,
        keyword: StepKeyword,
        tag: str,
        message: str,
        status: StepStatus,
        screenshot: bytes | None = None,
        diff_key: str | None = None,
    ) -> StepRecord:
        """Append a record and return it."""
        record = StepRecord(
            keyword=keyword,
            tag=tag,
            message=message,
            status=status,
            screenshot=screenshot,
            diff_key=diff_key,
        )
        self._records.append(record)
        return record

    def record(
        self,
        keyword: StepKeyword,
        message: str,
        status: StepStatus,
        screenshot: bytes | None = None,
        diff_key: str | None = None,
    ) -> StepRecord:
        """Append a record under the current tag."""
        return self.push(keyword, self._tag, message, status, screenshot, diff_key)

    def add_suggestion(self, name: str) -> StepRecord:
        """Informational record. Never fails a scenario."""
        return self.record(StepKeyword.AND, name, StepStatus.SUGGESTION)

    def add_performance_fail(self, name: str, screenshot: bytes | None = None) -> StepRecord:
        """Soft performance warning, optionally with visual evidence."""
        return self.record(StepKeyword.AND, name, StepStatus.PERFORMANCE_FAIL, screenshot)

    def mark(self) -> int:
        """Position to pass to since() later."""
        return len(self._records)

    def since(self, mark: int) -> list[StepRecord]:
        """Records appended after mark."""
        return self._records[mark:]
