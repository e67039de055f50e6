from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ..excel.reader import EmptyFileError, NoAddressColumnError, ParseError, read_table
from ..geocoding.service import GeocoderService
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import AppConfig
from ..models.error_record import ErrorRecord
from ..models.processing_result import BatchResult, FilterCriteria
from ..models.resolved_address import RawRow, ResolvedAddress
from .dataset import AddressDataset, DatasetStore
from .field_detector import FieldDetection, detect_fields
from .progress import ProgressCallback
from .resolver import BatchResolver, BatchSession

"""Session orchestration: upload → detect → resolve → replace dataset.

MapSession owns everything that must be shared between uploads in one
process: the geocoder handle, the batch generation counter, the current
dataset and the error log. Starting a new upload invalidates any batch that
is still running before the new one begins.
"""

__all__ = [
    "LoadResult",
    "MapSession",
    "process_file",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one upload."""
    source_name: str
    detection: FieldDetection
    dataset: AddressDataset
    batch: BatchResult
    error_log_path: Path | None = None


class MapSession:
    """One interactive session: successive uploads replace the dataset."""

    def __init__(self, config: AppConfig, service: GeocoderService | None = None) -> None:
        self.config = config
        self.service = service or GeocoderService(config.geocoding)
        self.batches = BatchSession()
        self.store = DatasetStore()
        self.error_log = ErrorLogBuffer(Path(config.reporting.error_log_dir))

    @property
    def dataset(self) -> AddressDataset:
        return self.store.current

    def filtered(self, criteria: FilterCriteria) -> list[ResolvedAddress]:
        return self.store.current.filter(criteria)

    def _record_file_error(self, source_name: str, error: Exception) -> None:
        self.error_log.append(
            ErrorRecord.create(file=source_name, row=-1, error_type="PARSE_ERROR", message=str(error))
        )
        try:
            self.error_log.flush()
        except OSError as e:
            logger.warning("failed to write error log: %s", e)

    def detect(
        self,
        rows: Sequence[RawRow],
        *,
        address_field: str | None = None,
        category_field: str | None = None,
    ) -> FieldDetection:
        """Detect (or validate explicitly given) address/category columns.

        Raises:
            EmptyFileError: no rows
            NoAddressColumnError: no usable address column
        """
        if not rows:
            raise EmptyFileError("no rows to geocode")
        # Excel 行は空セルを持たないため、明示列は全行のキー和集合で確認する
        keys = {k for row in rows for k in row.keys()}
        if address_field is not None and address_field not in keys:
            raise NoAddressColumnError(f"address column not found: {address_field}")
        if category_field is not None and category_field not in keys:
            raise ParseError(f"category column not found: {category_field}")

        det = self.config.detection
        detected = detect_fields(rows, det.address_keywords, det.category_keywords)
        if address_field is None and detected.address_field is None:
            raise NoAddressColumnError("no address column found in the spreadsheet")
        if address_field is None and category_field is None:
            return detected
        chosen_address = address_field or detected.address_field
        chosen_category = category_field
        if chosen_category is None and detected.category_field != chosen_address:
            chosen_category = detected.category_field
        return FieldDetection(
            address_field=chosen_address,
            category_field=chosen_category,
            low_confidence=address_field is None and detected.low_confidence,
        )

    def load_rows(
        self,
        rows: Sequence[RawRow],
        *,
        source_name: str = "<rows>",
        address_field: str | None = None,
        category_field: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> LoadResult:
        """Resolve an uploaded row set and make it the current dataset.

        Raises:
            ParseError: empty input or no address column (nothing is geocoded)
            ConfigurationError: geocoder cannot be initialised
        """
        # 進行中のバッチを無効化してから開始
        token = self.batches.begin()
        try:
            detection = self.detect(rows, address_field=address_field, category_field=category_field)
        except ParseError as e:
            logger.error("%s: %s", source_name, e)
            self._record_file_error(source_name, e)
            raise

        client, limiter = self.service.ensure_ready()
        resolver = BatchResolver(client, limiter, session=self.batches, error_log=self.error_log)
        dataset, batch = resolver.resolve(
            rows,
            detection.address_field,  # type: ignore[arg-type]
            detection.category_field,
            on_progress=on_progress,
            token=token,
            source_name=source_name,
        )

        if not batch.cancelled and self.batches.is_current(token):
            self.store.replace(dataset)

        log_path: Path | None = None
        try:
            log_path = self.error_log.flush()
        except OSError as e:
            # エラーログ書き出し失敗で処理全体を失敗させない
            logger.warning("failed to write error log: %s", e)
        if log_path is not None:
            logger.info("row errors written to %s", log_path)

        return LoadResult(
            source_name=source_name,
            detection=detection,
            dataset=dataset,
            batch=batch,
            error_log_path=log_path,
        )

    def load_file(
        self,
        path: Path,
        *,
        address_field: str | None = None,
        category_field: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> LoadResult:
        """Read a .xlsx/.xls/.csv file and resolve it (see load_rows)."""
        try:
            rows = read_table(path)
        except ParseError as e:
            # 読み込み失敗時もバッチ世代は進めて旧バッチを止める
            self.batches.cancel()
            logger.error("%s: %s", path.name, e)
            self._record_file_error(path.name, e)
            raise
        logger.info("read %d rows from %s", len(rows), path.name)
        return self.load_rows(
            rows,
            source_name=path.name,
            address_field=address_field,
            category_field=category_field,
            on_progress=on_progress,
        )

    def cancel(self) -> None:
        self.batches.cancel()

    def close(self) -> None:
        self.batches.cancel()
        self.service.close()


def process_file(
    path: Path,
    config: AppConfig,
    service: GeocoderService | None = None,
    *,
    address_field: str | None = None,
    category_field: str | None = None,
) -> LoadResult:
    """One-shot helper: new session, one file."""
    session = MapSession(config, service)
    return session.load_file(path, address_field=address_field, category_field=category_field)
