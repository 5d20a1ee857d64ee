from recordlens.export.projector import (
    RecordExporter,
    export_csv,
    export_grid,
    export_records,
    header_groups,
)

__all__ = ["RecordExporter", "export_csv", "export_grid", "export_records", "header_groups"]
