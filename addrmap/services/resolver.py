from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.outcome import GeocodeOutcome, OutcomeKind
from ..models.processing_result import BatchResult
from ..models.resolved_address import RawRow, ResolvedAddress, make_record_id
from ..models.row_result import RowResult, RowStatus
from .dataset import AddressDataset
from .progress import ProgressCallback, ProgressTracker

"""Batch resolver: drives the geocoder over every row of one upload.

Rows are processed strictly one at a time, in input order. The pacing gate is
consulted before every request, so requests never overlap and the configured
spacing holds between consecutive requests. A row's failure is recorded and the
loop moves on; the batch only stops early when a newer batch supersedes it.
"""

__all__ = [
    "BatchResolver",
    "BatchSession",
    "Geocoder",
    "address_text",
]

logger = logging.getLogger(__name__)

# 進捗ログ間隔 (行)
LOG_EVERY_ROWS = 5


class Geocoder(Protocol):
    def geocode(self, address: str) -> GeocodeOutcome: ...


class Pacer(Protocol):
    def wait(self) -> None: ...

    def observe(self, outcome: GeocodeOutcome) -> None: ...


class BatchSession:
    """Generation counter used to cancel an in-flight batch.

    Each batch start takes a new token; a batch whose token is no longer
    current stops issuing requests and discards any completion it receives.
    """

    def __init__(self) -> None:
        self._generation = 0

    @property
    def current_token(self) -> int:
        return self._generation

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    def cancel(self) -> None:
        """Invalidate the running batch without starting a new one."""
        self._generation += 1

    def is_current(self, token: int) -> bool:
        return token == self._generation


def address_text(value: Any) -> str | None:
    """Cell value -> address string, or None when the cell is empty/missing."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


class BatchResolver:
    """Sequential resolver over a geocoder and a pacing gate."""

    def __init__(
        self,
        geocoder: Geocoder,
        rate_limiter: Pacer,
        *,
        session: BatchSession | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.rate_limiter = rate_limiter
        self.session = session or BatchSession()
        self.error_log = error_log

    def _geocode_row(self, address: str) -> GeocodeOutcome:
        self.rate_limiter.wait()
        try:
            outcome = self.geocoder.geocode(address)
        except Exception as e:
            # geocoder 実装の想定外例外も行単位の一時エラーとして扱う
            logger.warning("unexpected geocoder error for address %s: %s", address, e)
            outcome = GeocodeOutcome.transient_error(f"{type(e).__name__}: {e}")
        self.rate_limiter.observe(outcome)
        return outcome

    def resolve(
        self,
        rows: Sequence[RawRow],
        address_field: str,
        category_field: str | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        token: int | None = None,
        source_name: str = "<rows>",
    ) -> tuple[AddressDataset, BatchResult]:
        """Resolve every row and build the dataset.

        Args:
            rows: uploaded rows (RawRow mappings)
            address_field: column holding the address text
            category_field: optional column feeding ResolvedAddress.category
            on_progress: called with the percentage after every row
            token: batch token from ``session.begin()``; taken here when None
            source_name: file name used in error records

        Returns:
            (dataset of resolved rows in resolution order, batch summary)
        """
        if token is None:
            token = self.session.begin()

        start_time = datetime.now(UTC)
        ingested_ms = int(start_time.timestamp() * 1000)
        total = len(rows)

        records: list[ResolvedAddress] = []
        row_results: list[RowResult] = []
        failures: list[str] = []
        skipped = 0
        failed = 0
        cancelled = False

        logger.info("starting batch geocoding of %d rows using field: %s", total, address_field)

        with ProgressTracker(total, description="Geocoding", on_progress=on_progress) as progress:
            for index, row in enumerate(rows):
                if not self.session.is_current(token):
                    cancelled = True
                    break

                address = address_text(row.get(address_field))
                if address is None:
                    logger.debug("row %d has no address in field '%s'", index + 1, address_field)
                    row_results.append(
                        RowResult(index, RowStatus.SKIPPED, GeocodeOutcome.no_address_field())
                    )
                    skipped += 1
                else:
                    outcome = self._geocode_row(address)
                    if not self.session.is_current(token):
                        # superseded while waiting: drop this completion
                        cancelled = True
                        break
                    if outcome.kind is OutcomeKind.RESOLVED:
                        category = row.get(category_field) if category_field else None
                        if address_text(category) is None:
                            category = None  # 空欄セルはカテゴリなし
                        records.append(
                            ResolvedAddress(
                                id=make_record_id(index, ingested_ms),
                                address_text=outcome.formatted_address or address,
                                latitude=outcome.latitude,  # type: ignore[arg-type]
                                longitude=outcome.longitude,  # type: ignore[arg-type]
                                source_row=dict(row),
                                category=category,
                            )
                        )
                        row_results.append(RowResult(index, RowStatus.RESOLVED, outcome, address))
                    else:
                        result = RowResult(index, RowStatus.FAILED, outcome, address)
                        row_results.append(result)
                        failures.append(result.describe_failure())
                        failed += 1
                        if self.error_log is not None:
                            self.error_log.append(
                                ErrorRecord.create(
                                    file=source_name,
                                    row=index + 1,
                                    error_type=result.error_type or "ROW_TRANSIENT_ERROR",
                                    message=f"{outcome.message or outcome.kind.value}: {address}",
                                )
                            )

                progress.advance()
                progress.set_postfix(resolved=len(records), skipped=skipped, failed=failed)
                done = index + 1
                if done % LOG_EVERY_ROWS == 0 or done == total:
                    logger.info("geocoded %d/%d rows", done, total)

            if total == 0:
                progress.complete_empty()
            emitted = list(progress.emitted)

        end_time = datetime.now(UTC)

        if cancelled:
            logger.info("batch superseded after %d/%d rows; results discarded", len(row_results), total)
        elif failures:
            logger.warning("%d errors occurred during geocoding", len(failures))
        logger.info(
            "batch geocoding complete: resolved %d/%d rows (skipped=%d failed=%d)",
            len(records), total, skipped, failed,
        )

        result = BatchResult(
            total_rows=total,
            resolved_rows=len(records),
            skipped_rows=skipped,
            failed_rows=failed,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            cancelled=cancelled,
            failures=failures,
            progress=emitted,
            row_results=row_results,
        )
        return AddressDataset(records, category_field=category_field), result
