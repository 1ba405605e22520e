# -*- coding: utf-8 -*-
"""
Offer catalog loading from JSON, CSV and Excel files.

This module handles ingestion of the static offer catalog from:
- JSON files (a list of offer objects, or {"offers": [...]})
- CSV files
- Excel files (.xlsx, .xls)

Keyword columns in tabular files hold several values separated by ";" or "|".
"""

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .models import Offer, OfferCategory

logger = logging.getLogger(__name__)


class OfferCatalogError(Exception):
    """Raised when offer catalog loading fails."""
    pass


# Common column name variations for offer data
ID_COLUMN_VARIANTS = ["id", "offer_id", "solution_id"]
TITLE_COLUMN_VARIANTS = ["title", "name", "offer", "solution"]
DESCRIPTION_COLUMN_VARIANTS = ["description", "desc", "summary"]
URL_COLUMN_VARIANTS = ["url", "link", "landing_page", "target_url"]
CATEGORY_COLUMN_VARIANTS = ["category", "solution_category", "type"]
PAIN_POINT_COLUMN_VARIANTS = ["pain_point_keywords", "pain_points", "painpointkeywords"]
SOLUTION_COLUMN_VARIANTS = ["solution_keywords", "solutions", "solutionkeywords"]
CONTEXT_COLUMN_VARIANTS = ["context_clues", "contextclues", "clues"]
PRIORITY_COLUMN_VARIANTS = ["priority", "weight", "rank"]
SOURCE_COLUMN_VARIANTS = ["source", "origin"]

REQUIRED_FIELDS = ("title", "url", "category")


def _normalize_column_name(name: str) -> str:
    """Normalize column name for matching."""
    return re.sub(r"(?<=[a-z])(?=[A-Z])", "_", str(name).strip()).lower().replace(" ", "_").replace("-", "_")


def _find_column(columns: list[str], variants: list[str]) -> Optional[str]:
    """
    Find a column matching one of the variant names.

    Args:
        columns: Available column names.
        variants: List of possible column name variants.

    Returns:
        The actual column name if found, None otherwise.
    """
    normalized_columns = {_normalize_column_name(col): col for col in columns}
    for variant in variants:
        normalized = _normalize_column_name(variant)
        if normalized in normalized_columns:
            return normalized_columns[normalized]
    return None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _split_list(value: Any) -> list[str]:
    """Turn a list or a ';'/'|'-separated string into a clean list."""
    if _is_missing(value):
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = re.split(r"[;|]", str(value))
    return [str(item).strip() for item in items if str(item).strip()]


def _record_to_offer(record: dict, index: int) -> Offer:
    columns = list(record.keys())

    def get(variants: list[str]) -> Any:
        column = _find_column(columns, variants)
        return None if column is None else record[column]

    values = {
        "id": get(ID_COLUMN_VARIANTS),
        "title": get(TITLE_COLUMN_VARIANTS),
        "description": get(DESCRIPTION_COLUMN_VARIANTS),
        "url": get(URL_COLUMN_VARIANTS),
        "category": get(CATEGORY_COLUMN_VARIANTS),
        "priority": get(PRIORITY_COLUMN_VARIANTS),
        "source": get(SOURCE_COLUMN_VARIANTS),
    }
    missing = [name for name in REQUIRED_FIELDS if _is_missing(values[name])]
    if missing:
        raise OfferCatalogError(f"Offer {index + 1} is missing required fields: {', '.join(missing)}")

    try:
        category = OfferCategory(str(values["category"]).strip().lower())
    except ValueError:
        valid = ", ".join(c.value for c in OfferCategory)
        raise OfferCatalogError(
            f"Offer {index + 1} has unknown category {values['category']!r}. Expected one of: {valid}"
        )

    try:
        priority = 5 if _is_missing(values["priority"]) else int(float(values["priority"]))
    except (TypeError, ValueError):
        raise OfferCatalogError(f"Offer {index + 1} has invalid priority {values['priority']!r}")

    return Offer(
        id=str(values["id"]).strip() if not _is_missing(values["id"]) else f"offer-{index + 1}",
        title=str(values["title"]).strip(),
        description="" if _is_missing(values["description"]) else str(values["description"]).strip(),
        url=str(values["url"]).strip(),
        category=category,
        pain_point_keywords=_split_list(get(PAIN_POINT_COLUMN_VARIANTS)),
        solution_keywords=_split_list(get(SOLUTION_COLUMN_VARIANTS)),
        context_clues=_split_list(get(CONTEXT_COLUMN_VARIANTS)),
        priority=priority,
        source=None if _is_missing(values["source"]) else str(values["source"]).strip(),
    )


def parse_offer_records(records: list[dict]) -> list[Offer]:
    """
    Parse plain records into offers.

    Raises:
        OfferCatalogError: If the catalog is empty or a record is invalid.
    """
    if not records:
        raise OfferCatalogError("Offer catalog is empty")
    offers = [_record_to_offer(dict(record), index) for index, record in enumerate(records)]
    ids = [offer.id for offer in offers]
    duplicates = sorted({offer_id for offer_id in ids if ids.count(offer_id) > 1})
    if duplicates:
        raise OfferCatalogError(f"Duplicate offer ids: {', '.join(duplicates)}")
    return offers


def load_offers_from_json(file_path: Union[str, Path]) -> list[Offer]:
    path = Path(file_path)
    if not path.exists():
        raise OfferCatalogError(f"File not found: {file_path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise OfferCatalogError(f"Failed to read JSON file: {e}")
    if isinstance(data, dict):
        data = data.get("offers", data.get("solutions"))
    if not isinstance(data, list):
        raise OfferCatalogError("JSON catalog must be a list of offers or an object with an 'offers' list")
    return parse_offer_records(data)


def load_offers_from_csv(file_path: Union[str, Path]) -> list[Offer]:
    """
    Load offers from a CSV file.

    Raises:
        OfferCatalogError: If the file cannot be read or parsed.
    """
    path = Path(file_path)
    if not path.exists():
        raise OfferCatalogError(f"File not found: {file_path}")

    try:
        df = pd.read_csv(path, encoding="utf-8")
    except UnicodeDecodeError:
        try:
            df = pd.read_csv(path, encoding="latin-1")
        except Exception as e:
            raise OfferCatalogError(f"Failed to read CSV file: {e}")
    except Exception as e:
        raise OfferCatalogError(f"Failed to read CSV file: {e}")

    return _parse_offer_dataframe(df)


def load_offers_from_excel(file_path: Union[str, Path], sheet_name: Optional[str] = None) -> list[Offer]:
    """
    Load offers from an Excel file.

    Args:
        file_path: Path to the Excel file (.xlsx or .xls).
        sheet_name: Optional sheet name to read from. Defaults to first sheet.

    Raises:
        OfferCatalogError: If the file cannot be read or parsed.
    """
    path = Path(file_path)
    if not path.exists():
        raise OfferCatalogError(f"File not found: {file_path}")

    try:
        if sheet_name:
            df = pd.read_excel(path, sheet_name=sheet_name)
        else:
            df = pd.read_excel(path)
    except Exception as e:
        raise OfferCatalogError(f"Failed to read Excel file: {e}")

    return _parse_offer_dataframe(df)


def _parse_offer_dataframe(df: pd.DataFrame) -> list[Offer]:
    if df.empty:
        raise OfferCatalogError("Offer file is empty")
    for field_name, variants in (
        ("title", TITLE_COLUMN_VARIANTS),
        ("url", URL_COLUMN_VARIANTS),
        ("category", CATEGORY_COLUMN_VARIANTS),
    ):
        if _find_column(list(df.columns), variants) is None:
            raise OfferCatalogError(
                f"No {field_name} column found. Expected one of: {', '.join(variants)}. "
                f"Found columns: {', '.join(map(str, df.columns))}"
            )
    return parse_offer_records(df.to_dict(orient="records"))


def load_offers(file_path: Union[str, Path]) -> list[Offer]:
    """
    Load an offer catalog, dispatching on file extension.

    Args:
        file_path: Path to a .json, .csv, .xlsx or .xls file.

    Returns:
        List of Offer objects.

    Raises:
        OfferCatalogError: If the file type is unsupported or loading fails.
    """
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        offers = load_offers_from_json(path)
    elif suffix == ".csv":
        offers = load_offers_from_csv(path)
    elif suffix in (".xlsx", ".xls"):
        offers = load_offers_from_excel(path)
    else:
        raise OfferCatalogError(
            f"Unsupported file type: {suffix}. Supported types: .json, .csv, .xlsx, .xls"
        )

    logger.info(f"Loaded {len(offers)} offers from {path.name}")
    return offers
