"""CSV payment import and spreadsheet export.

Usage:
    from runion_admin.csv_io import import_registration_payments, export_registrations

    result = await import_registration_payments(adapter, csv_text)
    export = await export_registrations(adapter, "balaton-futas-2026")
"""

from runion_admin.csv_io.export import CsvExport, export_orders, export_registrations
from runion_admin.csv_io.parser import ColumnSpec, CsvLayout, detect_delimiter, parse_csv_line, split_lines
from runion_admin.csv_io.payments import (
    ImportResult,
    PaymentStatus,
    import_order_payments,
    import_registration_payments,
    normalize_payment_status,
)

__all__ = [
    "CsvExport",
    "export_orders",
    "export_registrations",
    "ColumnSpec",
    "CsvLayout",
    "detect_delimiter",
    "parse_csv_line",
    "split_lines",
    "ImportResult",
    "PaymentStatus",
    "import_order_payments",
    "import_registration_payments",
    "normalize_payment_status",
]
