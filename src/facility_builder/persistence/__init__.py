"""Saving and loading facility documents."""

from facility_builder.persistence.document import (
    ImportReport,
    SkippedRecord,
    export_document,
    import_document,
)

__all__ = ["ImportReport", "SkippedRecord", "export_document", "import_document"]
