"""Paid JSON tools, available with a valid payment credential."""

import json
import re
from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from pydantic import BaseModel

from ..auth import CurrentClaims
from ..errors import ApiError
from ..logging_config import get_logger

logger = get_logger("paygate.tools")
router = APIRouter(prefix="/api", tags=["tools"])


class CsvRequest(BaseModel):
    rows: Any = None


class PrettyRequest(BaseModel):
    value: Any = None


_NEEDS_QUOTING = re.compile(r'[",\n]')


def _plain_numbers(value: Any) -> Any:
    """Write integral floats as integers, the way JSON clients send them."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {k: _plain_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain_numbers(v) for v in value]
    return value


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = json.dumps(_plain_numbers(value), ensure_ascii=False, separators=(",", ":"))
    if _NEEDS_QUOTING.search(value):
        return '"' + value.replace('"', '""') + '"'
    return value


def rows_to_csv(rows: list) -> str:
    """Render a list of objects as CSV.

    The header is the union of all keys in first-seen order. Missing keys
    and nulls become empty cells; nested values are JSON-encoded. Only
    cells containing a quote, comma or newline are quoted, and the output
    always ends with a newline after the (possibly empty) body.
    """
    records = [row if isinstance(row, dict) else {} for row in rows]
    keys: dict[str, None] = {}
    for record in records:
        keys.update(dict.fromkeys(record))

    header = ",".join(_cell(key) for key in keys)
    body = "\n".join(",".join(_cell(record.get(key)) for key in keys) for record in records)
    return f"{header}\n{body}\n"


@router.post("/json-to-csv")
async def json_to_csv(body: CsvRequest, claims: CurrentClaims):
    """Convert ``{"rows": [...]}`` to CSV."""
    if not isinstance(body.rows, list):
        raise ApiError("rows_must_be_array")
    try:
        csv_text = rows_to_csv(body.rows)
    except (TypeError, ValueError) as e:
        logger.info(f"json-to-csv rejected input: {e}")
        raise ApiError("bad_input")
    return Response(content=csv_text, media_type="text/csv; charset=utf-8")


@router.post("/json-pretty")
async def json_pretty(body: PrettyRequest, claims: CurrentClaims):
    """Pretty-print ``{"value": ...}`` with two-space indentation."""
    try:
        pretty = json.dumps(_plain_numbers(body.value), indent=2, ensure_ascii=False) + "\n"
    except (TypeError, ValueError) as e:
        logger.info(f"json-pretty rejected input: {e}")
        raise ApiError("bad_input")
    return Response(content=pretty, media_type="application/json; charset=utf-8")
