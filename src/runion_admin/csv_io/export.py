"""CSV exports for spreadsheet users.

Output is tuned for Excel with a Hungarian locale: UTF-8 BOM, a
``sep=;`` hint line, ``;`` delimiter, every field quoted, CRLF line
endings.  The registration export's ``ID`` and ``Fizetési Státusz``
columns are the ones the payment importer reads back.
"""

import csv
import io
import json
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel

from runion_admin.adapters.base import UnitOfWork
from runion_admin.errors import NotFoundError
from runion_admin.store import DISTANCES, EVENTS, ORDER_ITEMS, ORDERS, PRODUCTS, REGISTRATIONS, USERS

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"

# formData keys that have their own fixed columns.
IGNORED_FORM_KEYS = frozenset({
    "billingDetails", "termsAccepted", "privacyAccepted", "comment",
    "website", "website_field", "tshirtSize",
})

REGISTRATION_HEADERS = [
    "ID",
    "Vezetéknév",
    "Keresztnév",
    "Email",
    "Telefon",
    "Cím",
    "Város",
    "Irányítószám",
    "Szül. dátum",
    "Nem",
    "Egyesület",
    "Póló méret",
    "Táv",
    "Végösszeg",
    "Fizetési Státusz",
    "Fizetés módja",
    "Értesítendő neve",
    "Értesítendő telefonszáma",
    "Reg. dátuma",
    "Számlázási Név",
    "Számlázási Irányítószám",
    "Számlázási Város",
    "Számlázási Utca, hsz.",
    "Adószám",
    "ÁSZF",
    "Adatvédelmi",
    "Megjegyzés",
]

ORDER_HEADERS = [
    "Order Number", "Date", "Customer Name", "Customer Email",
    "Items", "Total", "Status", "Payment Method",
]

GENDER_LABELS = {"MALE": "Férfi", "FEMALE": "Nő"}


class CsvExport(BaseModel):
    """A rendered CSV download."""

    filename: str
    content: str
    content_type: str = CSV_CONTENT_TYPE


def render_csv(header: list[str], rows: list[list[Any]]) -> str:
    """BOM + ``sep=;`` line + fully quoted ``;``-separated rows with CRLF endings."""
    buffer = io.StringIO()
    buffer.write("\ufeff")
    buffer.write("sep=;\r\n")
    writer = csv.writer(buffer, delimiter=";", quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def format_date(value: Any) -> str:
    """``YYYY-MM-DD`` (UTC) for a datetime, date, or ISO string; ``""`` otherwise."""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return ""


def _yes_no(accepted: bool) -> str:
    return "Igen" if accepted else "Nem"


def _form_labels(form_config: Any) -> dict[str, str]:
    if not isinstance(form_config, list):
        return {}
    return {
        field["id"]: field.get("label") or field["id"]
        for field in form_config
        if isinstance(field, dict) and field.get("id")
    }


def _dynamic_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


async def export_registrations(
    client: UnitOfWork,
    event_slug: str,
    *,
    today: date | None = None,
) -> CsvExport:
    """All live registrations of one event, newest first.

    Fixed columns are followed by one column per ``formData`` key seen in
    any registration (labels taken from the event's ``formConfig``).

    Raises:
        NotFoundError: If no event has ``event_slug``.
    """
    events = await client.select(
        EVENTS.table, columns=["id", "slug", "title", "formConfig"],
        filters={"slug": event_slug}, limit=1,
    )
    if not events:
        raise NotFoundError(EVENTS.table, event_slug)
    event = events[0]

    distances = await client.select(DISTANCES.table, filters={"eventId": event["id"]})
    distance_by_id = {d["id"]: d for d in distances}
    registrations = await client.select(
        REGISTRATIONS.table,
        filters={"distanceId": list(distance_by_id), "deletedAt": None},
        order_by="-createdAt",
    )
    user_ids = sorted({r["userId"] for r in registrations if r.get("userId")})
    users = await client.select(USERS.table, filters={"id": user_ids}) if user_ids else []
    user_by_id = {u["id"]: u for u in users}

    dynamic_keys: dict[str, None] = {}
    for registration in registrations:
        form_data = registration.get("formData")
        if isinstance(form_data, dict):
            for key in form_data:
                if key not in IGNORED_FORM_KEYS:
                    dynamic_keys.setdefault(key)
    labels = _form_labels(event.get("formConfig"))
    header = REGISTRATION_HEADERS + [labels.get(key, key) for key in dynamic_keys]

    rows = []
    for registration in registrations:
        user = user_by_id.get(registration.get("userId"), {})
        distance = distance_by_id.get(registration.get("distanceId"), {})
        form_data = registration.get("formData") if isinstance(registration.get("formData"), dict) else {}
        billing = form_data.get("billingDetails") if isinstance(form_data.get("billingDetails"), dict) else {}
        price = registration.get("finalPrice")
        rows.append([
            registration["id"],
            user.get("lastName"),
            user.get("firstName"),
            user.get("email"),
            user.get("phoneNumber"),
            user.get("address"),
            user.get("city"),
            user.get("zipCode"),
            format_date(user.get("birthDate")),
            GENDER_LABELS.get(user.get("gender"), user.get("gender")),
            user.get("clubName"),
            user.get("tshirtSize") or form_data.get("tshirtSize"),
            distance.get("name"),
            price if price else distance.get("price"),
            registration.get("paymentStatus"),
            registration.get("paymentMethod"),
            user.get("emergencyContactName"),
            user.get("emergencyContactPhone"),
            format_date(registration.get("createdAt")),
            billing.get("name"),
            billing.get("zip"),
            billing.get("city"),
            billing.get("address"),
            billing.get("taxNumber"),
            # Acceptance is mandatory at registration, so absent means accepted.
            _yes_no(form_data.get("termsAccepted") is not False),
            _yes_no(form_data.get("privacyAccepted") is not False),
            form_data.get("comment"),
            *(_dynamic_value(form_data.get(key)) for key in dynamic_keys),
        ])

    day = today or datetime.now(timezone.utc).date()
    return CsvExport(
        filename=f"registrations-{event_slug}-{day.isoformat()}.csv",
        content=render_csv(header, rows),
    )


async def export_orders(client: UnitOfWork, *, today: date | None = None) -> CsvExport:
    """Every order, newest first, with a one-cell item summary."""
    orders = await client.select(ORDERS.table, order_by="-createdAt")
    order_ids = [o["id"] for o in orders]
    items = await client.select(ORDER_ITEMS.table, filters={"orderId": order_ids}) if order_ids else []
    product_ids = sorted({i["productId"] for i in items if i.get("productId")})
    products = (
        await client.select(PRODUCTS.table, columns=["id", "name"], filters={"id": product_ids})
        if product_ids else []
    )
    product_names = {p["id"]: p["name"] for p in products}

    items_by_order: dict[str, list[dict]] = {}
    for item in items:
        items_by_order.setdefault(item["orderId"], []).append(item)

    rows = []
    for order in orders:
        summary = ", ".join(
            f"{i.get('quantity')}x {product_names.get(i.get('productId'), '?')} ({i.get('size') or '-'})"
            for i in items_by_order.get(order["id"], [])
        )
        rows.append([
            order.get("orderNumber"),
            format_date(order.get("createdAt")),
            order.get("shippingName"),
            order.get("shippingEmail"),
            summary,
            order.get("totalAmount"),
            order.get("status"),
            order.get("paymentMethod"),
        ])

    day = today or datetime.now(timezone.utc).date()
    return CsvExport(filename=f"orders-{day.isoformat()}.csv", content=render_csv(ORDER_HEADERS, rows))
