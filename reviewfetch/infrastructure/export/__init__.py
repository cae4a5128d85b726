# Export Module
from .csv_exporter import COLUMNS, export_reviews_csv, reviews_to_frame

__all__ = ["COLUMNS", "export_reviews_csv", "reviews_to_frame"]
