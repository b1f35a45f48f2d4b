"""Where scraped records go: the JSON baseline store, filters, spreadsheet and mail."""

from .filters import RecordFilter, strip_raw_fields
from .notifier import MailNotifier
from .spreadsheet import SpreadsheetExporter
from .store import OfferStore

__all__ = [
    "MailNotifier",
    "OfferStore",
    "RecordFilter",
    "SpreadsheetExporter",
    "strip_raw_fields",
]
