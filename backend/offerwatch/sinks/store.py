"""JSON file storage for baselines and new-record logs."""

import json
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import structlog

from offerwatch.config import settings
from offerwatch.scrapers.base import RecordDetail, RecordSummary

logger = structlog.get_logger(__name__)

NEW_RECORDS_LOG = "new-offers"
SUMMARY_LOG = "summary"
DETAILS_LOG = "details"


class OfferStore:
    """Reads and writes per-source record files.

    Layout:
        {data_path}/{source}-{data_filename}.json   baseline (all known records)
        {logs_path}/{timestamp}-{source}-{kind}.json   one file per logged batch
    """

    def __init__(
        self,
        data_path: Union[str, Path, None] = None,
        data_filename: Optional[str] = None,
        logs_path: Union[str, Path, None] = None,
        save_logs: Optional[bool] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.data_path = Path(data_path if data_path is not None else settings.DATA_PATH)
        self.data_filename = data_filename or settings.DATA_FILENAME
        self.logs_path = Path(logs_path if logs_path is not None else settings.LOGS_PATH)
        self.save_logs = settings.SAVE_LOGS if save_logs is None else save_logs
        self.clock = clock

    def baseline_path(self, source: str) -> Path:
        return self.data_path / f"{source}-{self.data_filename}.json"

    def load_baseline(self, source: str) -> List[RecordDetail]:
        """Load the persisted baseline, creating an empty one when absent."""
        path = self.baseline_path(source)
        if not path.exists():
            self._write_json(path, [])
            logger.info("baseline_created", source=source, path=str(path))
            return []

        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        records = [RecordDetail.from_dict(item) for item in data]
        logger.info("baseline_loaded", source=source, records=len(records))
        return records

    def save_baseline(self, source: str, records: List[RecordDetail]) -> Path:
        path = self.baseline_path(source)
        self._write_json(path, [record.to_dict() for record in records])
        logger.info("baseline_saved", source=source, records=len(records), path=str(path))
        return path

    def save_log(
        self,
        source: str,
        records: Sequence[Union[RecordSummary, RecordDetail]],
        kind: str = NEW_RECORDS_LOG,
    ) -> Optional[Path]:
        """Write a timestamped log file of records; skipped when logs are disabled."""
        if not self.save_logs:
            return None
        timestamp = self.clock().strftime("%Y-%m-%d_%H-%M-%S")
        path = self.logs_path / f"{timestamp}-{source}-{kind}.json"
        self._write_json(path, [record.to_dict() for record in records])
        logger.debug("records_logged", source=source, kind=kind, path=str(path))
        return path

    @staticmethod
    def _write_json(path: Path, data) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic replace
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, default=str)
        tmp_path.replace(path)
