"""
Upload Loader - File boundary checks and CSV parsing for broker exports.

Cells are read as text so the row validator sees exactly what the export
contains; blank cells become None.
"""

from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import pandas as pd

from ledger_src.config import ALLOWED_EXTENSIONS, MAX_UPLOAD_BYTES
from ledger_src.core.contracts.converters import dataframe_to_rows
from ledger_src.core.errors import UploadRejectedError
from ledger_src.ledger_utils.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def check_upload(path: PathLike) -> Path:
    """
    Enforce the upload boundary: existing non-empty .csv file within the size limit.

    Raises:
        UploadRejectedError: When any check fails
    """
    path = Path(path)

    if path.suffix.lower() not in ALLOWED_EXTENSIONS:
        raise UploadRejectedError(
            f"Please upload a CSV file ({path.name} has an unsupported extension)."
        )
    if not path.is_file():
        raise UploadRejectedError(f"File not found: {path}")

    size = path.stat().st_size
    if size == 0:
        raise UploadRejectedError("The uploaded file is empty.")
    if size > MAX_UPLOAD_BYTES:
        limit_mb = MAX_UPLOAD_BYTES / (1024 * 1024)
        raise UploadRejectedError(f"File is too large. Maximum size is {limit_mb:g} MB.")

    return path


def read_transactions_csv(path: PathLike) -> Tuple[List[str], List[Dict[str, Any]]]:
    """
    Parse a transactions CSV into headers and row dicts.

    Blank lines are skipped. A file with no parseable header returns
    empty headers so the column check can report it.
    """
    path = check_upload(path)

    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            na_values=[""],
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"No header row found in {path.name}")
        return [], []
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise UploadRejectedError(f"Could not parse {path.name} as CSV: {e}") from e

    headers = [str(column).strip() for column in df.columns]
    df.columns = headers
    rows = dataframe_to_rows(df)

    logger.info(f"Loaded {len(rows)} rows with {len(headers)} columns from {path.name}")
    return headers, rows
