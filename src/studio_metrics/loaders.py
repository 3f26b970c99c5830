"""CSV loaders for the three studio exports."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from studio_metrics.exceptions import IngestionError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _read_export(csv_path: PathLike, dataset: str) -> pd.DataFrame:
    """Read one export with every column as a string.

    Empty cells stay empty strings; the normalize stage decides what they mean.

    Raises:
        IngestionError: If the file does not exist or cannot be parsed.
    """
    path = Path(csv_path)
    if not path.exists():
        raise IngestionError(f"{dataset} export not found at {path}")

    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except pd.errors.EmptyDataError as e:
        raise IngestionError(f"{dataset} export is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise IngestionError(f"Could not read {dataset} export {path}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    logger.info("Loaded %d %s row(s) from %s", len(df), dataset, path)
    return df


def load_intake(csv_path: PathLike) -> pd.DataFrame:
    """Load the intake ("first visit") export."""
    return _read_export(csv_path, "intake")


def load_attendance(csv_path: PathLike) -> pd.DataFrame:
    """Load the attendance / bookings export."""
    return _read_export(csv_path, "attendance")


def load_sales(csv_path: PathLike) -> pd.DataFrame:
    """Load the sales export."""
    return _read_export(csv_path, "sales")
