from __future__ import annotations

import csv
import io
import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.flow_logging import flow_info
from app.crud.orders import bulk_create_orders
from app.schemas.orders import ORDER_OPERATIONS, OrderRow, OrderUploadResult

logger = logging.getLogger(__name__)

_MAX_RETURN_ERRORS = 20


@dataclass
class OrderUploadError(Exception):
    code: str
    message: str
    status_code: int = 400
    row_number: int | None = None
    errors: list[dict] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        detail: dict = {"code": self.code, "message": self.message}
        if self.row_number is not None:
            detail["row_number"] = self.row_number
        if self.errors:
            detail["errors"] = self.errors[:_MAX_RETURN_ERRORS]
        return detail


def _normalize_header(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", (value or "").strip().lower()).strip("_")


def decode_upload(payload: bytes) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise OrderUploadError(
            code="ENCODING_INVALID",
            message="Upload must be UTF-8 encoded text.",
        ) from exc


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """
    Splits CSV text into dicts keyed by the header row. Quoted fields may
    contain commas, newlines and doubled quotes. Blank lines are skipped.
    """
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    headers: list[str] | None = None
    rows: list[dict[str, str]] = []
    try:
        for cells in reader:
            if not any((cell or "").strip() for cell in cells):
                continue
            if headers is None:
                headers = [_normalize_header(cell) for cell in cells]
                continue
            row: dict[str, str] = {}
            for idx, header in enumerate(headers):
                if not header:
                    continue
                row[header] = cells[idx] if idx < len(cells) else ""
            rows.append(row)
    except csv.Error as exc:
        raise OrderUploadError(
            code="CSV_MALFORMED",
            message=f"CSV could not be parsed near line {reader.line_num}: {exc}",
        ) from exc
    return rows


def _format_validation_errors(exc: ValidationError) -> list[dict]:
    formatted = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
        formatted.append({"field": loc or None, "message": err.get("msg", "invalid value")})
    return formatted


def validate_order_rows(rows: list[dict[str, str]]) -> list[OrderRow]:
    """
    Validates every row before anything is written. The first invalid row
    aborts the batch; row numbers are 1-based and exclude the header.
    """
    validated: list[OrderRow] = []
    for row_number, raw in enumerate(rows, start=1):
        try:
            validated.append(OrderRow.model_validate(raw))
        except ValidationError as exc:
            errors = _format_validation_errors(exc)
            first = errors[0] if errors else {"field": None, "message": "invalid row"}
            label = f" ({first['field']})" if first.get("field") else ""
            raise OrderUploadError(
                code="ROW_INVALID",
                message=f"Row {row_number}{label}: {first['message']}",
                status_code=422,
                row_number=row_number,
                errors=errors,
            ) from exc
    return validated


def _operation_breakdown(rows: list[OrderRow]) -> dict[str, int]:
    counts = Counter(row.operation or "other" for row in rows)
    breakdown = {op: counts.get(op, 0) for op in ORDER_OPERATIONS}
    breakdown["other"] = counts.get("other", 0)
    return breakdown


def check_upload_size(size: int) -> None:
    max_bytes = int(settings.ORDER_UPLOAD_MAX_BYTES)
    if size > max_bytes:
        raise OrderUploadError(
            code="FILE_TOO_LARGE",
            message=f"File exceeds the {max_bytes // (1024 * 1024)} MB upload limit.",
            status_code=413,
        )


def parse_order_upload(payload: bytes, filename: str) -> list[OrderRow]:
    filename = (filename or "").strip()
    if not filename.lower().endswith(".csv"):
        raise OrderUploadError(code="FILE_TYPE_INVALID", message="Only .csv files are supported.")

    check_upload_size(len(payload))

    rows = parse_csv_text(decode_upload(payload))

    max_rows = int(settings.ORDER_UPLOAD_MAX_ROWS)
    if len(rows) > max_rows:
        raise OrderUploadError(
            code="TOO_MANY_ROWS",
            message=f"File has {len(rows)} rows; at most {max_rows} are allowed.",
            status_code=413,
        )
    if not rows:
        raise OrderUploadError(code="NO_ROWS", message="File contains no order rows.")

    return validate_order_rows(rows)


def ingest_orders(
    db: Session,
    *,
    payload: bytes,
    filename: str,
    user_id: int,
) -> OrderUploadResult:
    rows = parse_order_upload(payload, filename)
    try:
        inserted = bulk_create_orders(db, rows, user_id)
    except SQLAlchemyError as exc:
        logger.error("order_upload_store_error filename=%s error=%s", filename, exc)
        raise OrderUploadError(
            code="STORE_ERROR",
            message="Orders could not be saved; no rows were committed.",
            status_code=500,
        ) from exc

    breakdown = _operation_breakdown(rows)
    flow_info(
        logger,
        "order_upload_committed filename=%s user_id=%s inserted=%s operations=%s",
        filename,
        user_id,
        inserted,
        breakdown,
        category="ingest",
    )
    return OrderUploadResult(filename=filename, inserted=inserted, operations=breakdown)
