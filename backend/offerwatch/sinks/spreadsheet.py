"""Spreadsheet export of new records (CSV via pandas)."""

from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
import structlog

from offerwatch.config import settings
from offerwatch.scrapers.base import RecordDetail
from offerwatch.sinks.filters import strip_raw_fields

logger = structlog.get_logger(__name__)

# Record field -> column header, in sheet order
DEFAULT_COLUMNS: Dict[str, str] = {
    "title": "Nazwa",
    "address": "Adres",
    "location_link": "Adres[link]",
    "district": "Dzielnica",
    "rooms": "Pokoje",
    "area": "Metraż",
    "price": "Cena",
    "pricem2": "Cena[zł/m2]",
    "build_year": "Rok budowy",
    "url": "Ogłoszenie[link]",
    "floor": "Piętro",
    "rent_price": "Czynsz",
    "market": "Rynek",
    "seller": "Sprzedawca",
    "legal_status": "Własność",
    "interior_status": "Wnętrze",
    "description": "Opis",
    "building_type": "Budynek",
    "building_material": "Budynek z:",
    "heating": "Ogrzewanie",
    "window_type": "Okna",
    "availability_date": "Dostępne od",
    "date": "Data ogł.",
    "time": "Godz. ogł.",
    "seller_name": "Nazwisko ogł.",
    "seller_contact": "Kontakt",
    "thumbnail": "Obrazek[link]",
    "is_price_negotiable": "Cena negocjowalna?",
    "is_offer_promoted": "Oferta promowana?",
    "city": "Miasto",
    "id": "id",
}


class SpreadsheetExporter:
    """Prepends new records to a per-source CSV sheet, newest first.

    Known fields get the configured headers and order; any other
    non-raw field is appended as an extra column under its own name.
    """

    def __init__(
        self,
        data_path: Union[str, Path, None] = None,
        data_filename: Optional[str] = None,
        columns: Optional[Dict[str, str]] = None,
    ):
        self.data_path = Path(data_path if data_path is not None else settings.DATA_PATH)
        self.data_filename = data_filename or settings.DATA_FILENAME
        self.columns = columns or DEFAULT_COLUMNS

    def sheet_path(self, source: str) -> Path:
        return self.data_path / f"{source}-{self.data_filename}.csv"

    def to_frame(self, records: List[RecordDetail]) -> pd.DataFrame:
        rows = []
        for record in records:
            row = strip_raw_fields(record.to_dict())
            for key, value in row.items():
                if isinstance(value, (list, dict)):
                    row[key] = ", ".join(map(str, value)) if isinstance(value, list) else str(value)
            rows.append(row)

        df = pd.DataFrame(rows)
        known = [key for key in self.columns if key in df.columns]
        extra = [key for key in df.columns if key not in self.columns]
        return df[known + extra].rename(columns=self.columns)

    def append(self, source: str, records: List[RecordDetail]) -> Optional[Path]:
        """Write records above the existing rows of the source sheet.

        Returns:
            Sheet path, or None when there was nothing to write
        """
        if not records:
            return None

        path = self.sheet_path(source)
        new_rows = self.to_frame(records)
        if path.exists():
            existing = pd.read_csv(path, dtype=str, keep_default_na=False)
            sheet = pd.concat([new_rows, existing], ignore_index=True, sort=False)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            sheet = new_rows

        sheet.to_csv(path, index=False, encoding="utf-8")
        logger.info("spreadsheet_updated", source=source, added=len(new_rows), total=len(sheet), path=str(path))
        return path
