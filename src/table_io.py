"""
Tabular import/export for bale inventories.

Import turns the first sheet of an Excel workbook (or a CSV file) into a list
of row dicts plus the ordered column names. Export flattens a session's bales
into one row per bale and writes an .xlsx workbook.

Cells are read as text (``dtype=str``) so identifiers such as "000123" keep
their leading zeros and integers do not turn into "123.0".
"""
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd

from bale_models import Session
from exceptions import ValidationError
from logger import get_logger

logger = get_logger(__name__)

EXPORT_SHEET_NAME = "CottonLog Data"

# Fixed export columns, followed by the bale's mapped values
EXPORT_COLUMNS = [
    'Bale ID',
    'Mill Lot',
    'Mill Bale #',
    'Weight',
    'Status',
    'Scanned At',
    'Quality Assessment',
]

EXCEL_SUFFIXES = ('.xlsx', '.xls', '.xlsm')


def _dataframe_to_rows(df: pd.DataFrame) -> Tuple[List[Dict[str, Any]], List[str]]:
    df = df.dropna(how='all')
    df = df.astype(object).where(df.notna(), None)
    columns = [str(c) for c in df.columns]
    df.columns = columns
    return df.to_dict('records'), columns


def read_rows(file_path) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Read a bale inventory table.

    Args:
        file_path: Path to .xlsx/.xls/.xlsm (first sheet) or .csv

    Returns:
        (rows, columns): rows as dicts keyed by column name, empty cells as
        None and fully empty rows dropped; columns in file order

    Raises:
        ValidationError: If the file cannot be read or holds no data rows
    """
    path = Path(file_path)
    logger.info(f"Loading bale table from: {path}")

    try:
        if path.suffix.lower() == '.csv':
            df = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[''])
        elif path.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(path, sheet_name=0, dtype=str)
        else:
            raise ValidationError(f"Unsupported file type '{path.suffix}'. Use Excel or CSV.")
    except ValidationError:
        raise
    except Exception as e:
        logger.error(f"Failed to read table {path}: {e}")
        raise ValidationError(f"Could not read the file: {e}")

    rows, columns = _dataframe_to_rows(df)
    if not rows:
        logger.error(f"Table {path} has no data rows")
        raise ValidationError("The file is empty or contains no data.")

    logger.info(f"Loaded {len(rows)} rows, {len(columns)} columns")
    return rows, columns


def session_to_dataframe(session: Session) -> pd.DataFrame:
    """One row per bale: fixed columns, then mapped values as extra columns."""
    records = []
    for bale in session.bales:
        record = {
            'Bale ID': bale.id,
            'Mill Lot': bale.mill_lot,
            'Mill Bale #': bale.mill_bale_number,
            'Weight': bale.weight,
            'Status': bale.status,
            'Scanned At': bale.scanned_at,
            'Quality Assessment': bale.quality_assessment,
        }
        for key, value in bale.mapped_values.items():
            # A mapped column never overrides the fixed ones
            if key not in record:
                record[key] = value
        records.append(record)

    df = pd.DataFrame.from_records(records)
    extra_columns = [c for c in df.columns if c not in EXPORT_COLUMNS]
    return df.reindex(columns=EXPORT_COLUMNS + extra_columns)


def export_file_name(session: Session) -> str:
    """ "Lot L9 (2026-10-19)" -> "Lot_L9__2026_10_19__Export.xlsx" """
    safe_name = re.sub(r'[^a-z0-9]', '_', session.name, flags=re.IGNORECASE)
    return f"{safe_name}_Export.xlsx"


def export_session(session: Session, output_dir) -> Path:
    """
    Write the session's bales to an Excel workbook.

    Args:
        session: Session to export
        output_dir: Directory for the workbook

    Returns:
        Path of the written file

    Raises:
        ValidationError: If the session has no bales
    """
    if not session.bales:
        raise ValidationError("No data to export.")

    output_path = Path(output_dir) / export_file_name(session)
    df = session_to_dataframe(session)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=EXPORT_SHEET_NAME, index=False)

    logger.info(f"Exported {len(df)} bales to {output_path}")
    return output_path
