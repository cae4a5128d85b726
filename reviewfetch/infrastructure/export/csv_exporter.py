"""
CSV Exporter - Review Export
============================

Flattens reviews (and their developer responses) into a table and writes
it as CSV, one row per review.
"""

import logging
from pathlib import Path
from typing import Iterable, Union

import pandas as pd

from ...domain import Review, StorageError

logger = logging.getLogger(__name__)

COLUMNS = [
    "ID", "Rating", "Title", "Body", "Reviewer", "Date",
    "Territory", "HasResponse", "ResponseBody", "ResponseDate",
]


def reviews_to_frame(reviews: Iterable[Review]) -> pd.DataFrame:
    """Build a DataFrame with the export columns, in export order."""
    rows = []
    for review in reviews:
        response = review.developer_response
        rows.append({
            "ID": review.id,
            "Rating": review.rating,
            "Title": review.title or "",
            "Body": review.body or "",
            "Reviewer": review.reviewer_nickname or "",
            "Date": review.created_date.strftime("%Y-%m-%d %H:%M:%S"),
            "Territory": review.territory or "",
            "HasResponse": "Yes" if response else "No",
            "ResponseBody": response.body if response else "",
            "ResponseDate": response.created_date.strftime("%Y-%m-%d %H:%M:%S") if response else "",
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def export_reviews_csv(reviews: Iterable[Review], path: Union[str, Path]) -> int:
    """
    Write reviews to a CSV file.

    Returns:
        Number of rows written.
    """
    df = reviews_to_frame(reviews)
    target = Path(path)

    try:
        if target.parent and not target.parent.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(target, index=False, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write CSV export to {target}: {e}") from e

    logger.info(f"Exported {len(df)} reviews to {target}")
    return len(df)
