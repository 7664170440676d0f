from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from io import BytesIO

import pandas as pd
from openpyxl.utils import get_column_letter

from app.models.orders import Order

EXPORT_SHEET_NAME = "Orders"

# (attribute, header label) in export order
EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("order_id", "Order ID"),
    ("operation", "Operation"),
    ("content_id", "Content ID"),
    ("content_title", "Content Title"),
    ("package_uuid", "Package UUID"),
    ("film_id", "Film ID"),
    ("theatre_id", "Theatre ID"),
    ("theatre_name", "Theatre Name"),
    ("theatre_city", "City"),
    ("theatre_state", "State"),
    ("theatre_country", "Country"),
    ("qw_theatre_id", "QW Theatre ID"),
    ("playdate_begin", "Playdate Begin"),
    ("playdate_end", "Playdate End"),
    ("booker_name", "Booker Name"),
    ("booker_phone", "Booker Phone"),
    ("booker_email", "Booker Email"),
    ("studio_id", "Studio ID"),
    ("studio_name", "Studio Name"),
    ("qw_company_id", "QW Company ID"),
    ("qw_company_name", "QW Company Name"),
    ("delivery_method", "Delivery Method"),
    ("booking_ref", "Booking Reference"),
    ("booking_created_at", "Booked At"),
    ("created_at", "Created At"),
]


def orders_dataframe(orders: Sequence[Order]) -> pd.DataFrame:
    records = [{attr: getattr(order, attr, None) for attr, _ in EXPORT_COLUMNS} for order in orders]
    df = pd.DataFrame(records, columns=[attr for attr, _ in EXPORT_COLUMNS])
    df.rename(columns=dict(EXPORT_COLUMNS), inplace=True)
    return df


def build_orders_workbook(orders: Sequence[Order]) -> BytesIO:
    df = orders_dataframe(orders)
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=EXPORT_SHEET_NAME)

        worksheet = writer.sheets[EXPORT_SHEET_NAME]
        for idx, col in enumerate(df.columns, start=1):
            col_lengths = df[col].fillna("").astype(str).str.len()
            max_len = max(col_lengths.max() if not col_lengths.empty else 0, len(col)) + 2
            worksheet.column_dimensions[get_column_letter(idx)].width = min(max_len, 60)

    output.seek(0)
    return output


def export_filename(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M")
    return f"Orders_{stamp}.xlsx"
