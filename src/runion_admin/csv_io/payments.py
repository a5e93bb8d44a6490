"""Payment status import from spreadsheet CSV files.

Both importers are best-effort per row: a row that cannot be parsed, has
an unknown status, or fails to update is counted and skipped, and the
remaining rows are still applied.  Only a file that is empty or lacks the
required header columns fails as a whole (``CsvValidationError``), before
anything is written.
"""

import logging
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from runion_admin.adapters.base import UnitOfWork
from runion_admin.csv_io.parser import ColumnSpec, detect_delimiter, parse_csv_line, split_lines
from runion_admin.errors import CsvValidationError
from runion_admin.store import ORDERS, REGISTRATIONS

logger = logging.getLogger(__name__)


class PaymentStatus(str, Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    REFUNDED = "REFUNDED"


# Upper-cased spreadsheet text -> canonical status.
PAYMENT_STATUS_SYNONYMS: dict[str, PaymentStatus] = {
    "PAID": PaymentStatus.PAID,
    "FIZETVE": PaymentStatus.PAID,
    "UNPAID": PaymentStatus.UNPAID,
    "NINCS_FIZETVE": PaymentStatus.UNPAID,
    "FIZETENDŐ": PaymentStatus.UNPAID,
    "FIZETENDO": PaymentStatus.UNPAID,
    "PARTIALLY_PAID": PaymentStatus.PARTIALLY_PAID,
    "RÉSZBEN_FIZETVE": PaymentStatus.PARTIALLY_PAID,
    "RESZBEN_FIZETVE": PaymentStatus.PARTIALLY_PAID,
    "REFUNDED": PaymentStatus.REFUNDED,
    "VISSZATÉRÍTVE": PaymentStatus.REFUNDED,
    "VISSZATERITVE": PaymentStatus.REFUNDED,
}

ORDER_PAID_SYNONYMS = frozenset({"paid", "fizetve", "teljesítve", "sikeres"})
ORDER_FINAL_STATUSES = frozenset({"PAID", "CANCELLED"})

REGISTRATION_COLUMNS = [
    ColumnSpec(name="id", synonyms=("id", "azonosító")),
    ColumnSpec(
        name="paymentStatus",
        synonyms=("paymentstatus", "fizetési státusz", "fizetesi statusz"),
    ),
]

ORDER_COLUMNS = [
    ColumnSpec(name="orderNumber", synonyms=("order number", "rendelésszám"), match="contains"),
    ColumnSpec(
        name="status",
        synonyms=("status", "státusz", "állapot"),
        required=False,
        match="contains",
    ),
]


def normalize_payment_status(raw: str) -> PaymentStatus | None:
    """Map spreadsheet status text (any case, Hungarian or English) to a ``PaymentStatus``."""
    key = raw.strip().upper()
    if key in PAYMENT_STATUS_SYNONYMS:
        return PAYMENT_STATUS_SYNONYMS[key]
    try:
        return PaymentStatus(key)
    except ValueError:
        return None


class ImportResult(BaseModel):
    """Row-level accounting for one CSV import.

    Line numbers count non-blank lines after any ``sep=`` directive; the
    header is line 1.
    """

    updated_count: int = 0
    failed_ids: list[str] = Field(default_factory=list)          # update raised
    unparsed_lines: list[int] = Field(default_factory=list)      # too few columns
    invalid_status_lines: list[int] = Field(default_factory=list)
    not_found: list[str] = Field(default_factory=list)           # orders only
    unchanged: int = 0                                           # orders already PAID/CANCELLED

    @property
    def skipped_count(self) -> int:
        return len(self.unparsed_lines) + len(self.invalid_status_lines)

    @property
    def message(self) -> str:
        parts = [f"Import finished: {self.updated_count} record(s) updated."]
        if self.failed_ids:
            parts.append(f"{len(self.failed_ids)} database error(s).")
        if self.unparsed_lines:
            parts.append(f"{len(self.unparsed_lines)} row(s) could not be parsed.")
        if self.invalid_status_lines:
            parts.append(f"{len(self.invalid_status_lines)} row(s) with unrecognized status skipped.")
        if self.not_found:
            parts.append(f"{len(self.not_found)} order number(s) not found.")
        return " ".join(parts)


def _data_lines(text: str | bytes) -> list[str]:
    lines = split_lines(text)
    if len(lines) < 2:
        raise CsvValidationError("Empty or invalid CSV file: a header and at least one data row are required")
    return lines


async def import_registration_payments(client: UnitOfWork, text: str | bytes) -> ImportResult:
    """Set ``Registration.paymentStatus`` from an ``id`` / payment status CSV.

    Raises:
        CsvValidationError: If the file is empty or the header lacks the
            id or payment status column. Nothing is updated.
    """
    lines = _data_lines(text)
    layout = detect_delimiter(lines[0], REGISTRATION_COLUMNS)
    id_index = layout.indices["id"]
    status_index = layout.indices["paymentStatus"]
    logger.info("Registration payment import: %d rows, delimiter %r", len(lines) - 1, layout.delimiter)

    result = ImportResult()
    for line_no, line in enumerate(lines[1:], start=2):
        cols = parse_csv_line(line.strip(), layout.delimiter)
        if len(cols) < layout.required_width:
            logger.warning(
                "Skipping line %d: expected at least %d columns, found %d",
                line_no, layout.required_width, len(cols),
            )
            result.unparsed_lines.append(line_no)
            continue

        registration_id = cols[id_index].strip()
        status = normalize_payment_status(cols[status_index])
        if not registration_id or status is None:
            logger.warning("Skipping line %d: invalid status %r", line_no, cols[status_index])
            result.invalid_status_lines.append(line_no)
            continue

        try:
            await client.update(
                REGISTRATIONS.table,
                {"paymentStatus": status.value, "updatedAt": datetime.now(timezone.utc)},
                {"id": registration_id},
            )
        except Exception as e:
            logger.warning("Failed to update registration %s: %s", registration_id, e)
            result.failed_ids.append(registration_id)
            continue
        result.updated_count += 1

    logger.info(result.message)
    return result


async def import_order_payments(client: UnitOfWork, text: str | bytes) -> ImportResult:
    """Mark orders ``PAID`` from a CSV keyed by order number.

    Orders already ``PAID`` or ``CANCELLED`` are left alone.  When the
    file has a status column, only rows whose status reads as paid
    (``paid``, ``fizetve``, ``teljesítve``, ``sikeres``) are applied, so
    a full order export with pending rows can be uploaded safely.

    Raises:
        CsvValidationError: If the file is empty or has no order number column.
    """
    lines = _data_lines(text)
    layout = detect_delimiter(lines[0], ORDER_COLUMNS)
    number_index = layout.indices["orderNumber"]
    status_index = layout.indices["status"]
    logger.info("Order payment import: %d rows, delimiter %r", len(lines) - 1, layout.delimiter)

    result = ImportResult()
    for line_no, line in enumerate(lines[1:], start=2):
        cols = [c.strip() for c in parse_csv_line(line.strip(), layout.delimiter)]
        if len(cols) <= number_index or not cols[number_index]:
            result.unparsed_lines.append(line_no)
            continue
        order_number = cols[number_index]

        if status_index >= 0 and status_index < len(cols) and cols[status_index]:
            if cols[status_index].lower() not in ORDER_PAID_SYNONYMS:
                result.invalid_status_lines.append(line_no)
                continue

        try:
            orders = await client.select(
                ORDERS.table,
                columns=["id", "status"],
                filters={"orderNumber": order_number},
                limit=1,
            )
            if not orders:
                logger.warning("Order %s not found (line %d)", order_number, line_no)
                result.not_found.append(order_number)
                continue
            order = orders[0]
            if order["status"] in ORDER_FINAL_STATUSES:
                result.unchanged += 1
                continue
            await client.update(
                ORDERS.table,
                {"status": "PAID", "updatedAt": datetime.now(timezone.utc)},
                {"id": order["id"]},
            )
        except Exception as e:
            logger.warning("Failed to update order %s: %s", order_number, e)
            result.failed_ids.append(order_number)
            continue
        result.updated_count += 1

    logger.info(result.message)
    return result
