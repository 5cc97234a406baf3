"""Read models for receipt feeds, back-rate tables and cast rosters.

Receipt feeds and back-rate tables are flat CSV exports (one row per line
item / rule) loaded with pandas. Cast rosters with their compensation
settings are JSON files.

Receipt feed columns:
    receipt_id, item_id, product_name, base_price (required);
    business_date, staff_names, category, cast_names, quantity (optional).
    ``staff_names`` and ``cast_names`` are comma-separated lists.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from castpay_core.batch import CastPeriodJob
from castpay_core.exceptions import ConfigError, DataQualityError
from castpay_core.types import BackRateRule, CastCompensationSettings, LineItem, Receipt

logger = logging.getLogger(__name__)

RECEIPT_REQUIRED_COLUMNS = ["receipt_id", "item_id", "product_name", "base_price"]
RECEIPT_OPTIONAL_COLUMNS = ["business_date", "staff_names", "category", "cast_names", "quantity"]
BACK_RATE_REQUIRED_COLUMNS = ["cast_id"]


def _cell(value: Any) -> Any:
    """Return None for pandas missing values, the value otherwise."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # list-like cells
        return value
    return value


def _require_columns(df: pd.DataFrame, required: list[str], what: str) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise DataQualityError(f"{what} is missing required column(s): {', '.join(missing)}")


def _integer_column(df: pd.DataFrame, column: str, what: str) -> pd.Series:
    values = pd.to_numeric(df[column], errors="coerce")
    bad = values.isna() & df[column].notna()
    if bad.any():
        rows = ", ".join(str(i) for i in df.index[bad][:5])
        raise DataQualityError(f"{what}: column '{column}' is not numeric (rows {rows})")
    return values


def receipts_from_frame(df: pd.DataFrame) -> list[Receipt]:
    """Group a flat line-item frame into receipts.

    Receipts and their items keep the order in which they first appear.
    ``staff_names`` and ``business_date`` are taken from the first row of
    each receipt.

    Args:
        df: One row per line item.

    Returns:
        List of Receipt objects.

    Raises:
        DataQualityError: If required columns are missing or ``base_price`` /
            ``quantity`` hold non-numeric values.
    """
    _require_columns(df, RECEIPT_REQUIRED_COLUMNS, "Receipt feed")
    if df.empty:
        return []

    df = df.copy()
    for col in RECEIPT_OPTIONAL_COLUMNS:
        if col not in df.columns:
            df[col] = None

    prices = _integer_column(df, "base_price", "Receipt feed").fillna(0)
    quantities = _integer_column(df, "quantity", "Receipt feed").fillna(1)
    dates = pd.to_datetime(df["business_date"], errors="coerce")

    headers: dict[Any, dict[str, Any]] = {}
    items: dict[Any, list[LineItem]] = {}
    for pos, row in enumerate(df.itertuples(index=False)):
        receipt_id = row.receipt_id
        if receipt_id not in headers:
            day = dates.iloc[pos]
            headers[receipt_id] = {
                "staff_names": _cell(row.staff_names) or (),
                "business_date": None if pd.isna(day) else day.date(),
            }
            items[receipt_id] = []
        category = _cell(row.category)
        items[receipt_id].append(
            LineItem(
                id=row.item_id,
                product_name=str(row.product_name),
                base_price=int(prices.iloc[pos]),
                cast_names=_cell(row.cast_names) or (),
                category=None if category is None else str(category),
                quantity=int(quantities.iloc[pos]),
            )
        )

    receipts = [
        Receipt(id=receipt_id, items=tuple(items[receipt_id]), **header)
        for receipt_id, header in headers.items()
    ]
    logger.debug("Grouped %d line item(s) into %d receipt(s)", len(df), len(receipts))
    return receipts


def load_receipts_csv(path: Path) -> list[Receipt]:
    """Load a receipt feed CSV.

    Raises:
        FileNotFoundError: If the file does not exist.
        DataQualityError: If required columns are missing.
    """
    if not path.exists():
        raise FileNotFoundError(f"Receipt feed not found: {path}")
    df = pd.read_csv(path, dtype={"staff_names": str, "cast_names": str, "category": str})
    logger.info("Loaded %d line item row(s) from %s", len(df), path)
    return receipts_from_frame(df)


def back_rates_from_frame(df: pd.DataFrame) -> list[BackRateRule]:
    """Build back-rate rules from a table with one row per rule.

    Raises:
        DataQualityError: If ``cast_id`` is missing or a row cannot be read.
    """
    _require_columns(df, BACK_RATE_REQUIRED_COLUMNS, "Back-rate table")
    rules: list[BackRateRule] = []
    for record in df.to_dict(orient="records"):
        cleaned = {key: _cell(value) for key, value in record.items()}
        try:
            rules.append(BackRateRule.from_dict(cleaned))
        except (TypeError, ValueError) as e:
            raise DataQualityError(f"Back-rate table: unreadable row {record}: {e}") from e
    return rules


def load_back_rates_csv(path: Path) -> list[BackRateRule]:
    """Load a back-rate table CSV."""
    if not path.exists():
        raise FileNotFoundError(f"Back-rate table not found: {path}")
    df = pd.read_csv(path, dtype={"category": str, "product_name": str})
    logger.info("Loaded %d back-rate rule row(s) from %s", len(df), path)
    return back_rates_from_frame(df)


def _job_from_dict(data: dict[str, Any]) -> CastPeriodJob:
    try:
        name = str(data["name"])
        cast_id = int(data["id"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Cast entry needs 'name' and integer 'id': {data}") from e
    settings_data = data.get("compensation") or {}
    return CastPeriodJob(
        cast_name=name,
        cast_id=cast_id,
        settings=CastCompensationSettings.from_dict(settings_data),
        work_hours=float(data.get("work_hours") or 0),
    )


def load_casts_json(path: Path) -> list[CastPeriodJob]:
    """Load the cast roster of a pay period.

    The file holds either a list of casts or an object with a ``casts`` list.
    Each cast has ``name``, ``id``, optional ``work_hours`` and an optional
    ``compensation`` object shaped like CastCompensationSettings.

    Examples:
        >>> # casts.json: [{"name": "Aoi", "id": 1, "work_hours": 24}]
        >>> jobs = load_casts_json(Path("casts.json"))
        >>> jobs[0].cast_name
        'Aoi'

    Raises:
        ConfigError: If the file is missing, not valid JSON, or malformed.
    """
    if not path.exists():
        raise ConfigError(f"Cast file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Cast file {path} is not valid JSON: {e}") from e

    entries: Optional[list] = data.get("casts") if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigError(f"Cast file {path} must hold a list of casts")

    jobs = [_job_from_dict(entry) for entry in entries]
    logger.debug("Loaded %d cast(s) from %s", len(jobs), path)
    return jobs
