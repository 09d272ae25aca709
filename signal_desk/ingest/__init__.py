"""Feed ingestion: fetch, dedupe, persist, tag and track source health."""

from .coordinator import IngestionCoordinator, entry_to_row, parse_iso_date

__all__ = ["IngestionCoordinator", "entry_to_row", "parse_iso_date"]
