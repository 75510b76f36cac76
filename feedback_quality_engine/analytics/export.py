"""Export of analytics summaries."""

import csv
import io
import logging
from typing import Iterable, List

from ..models.common import AnalyticsResult


logger = logging.getLogger(__name__)

CSV_DATA_URI_PREFIX = "data:text/csv;charset=utf-8,"
PDF_UNAVAILABLE_MESSAGE = "PDF export is not available yet. Please export as CSV instead."


class ExportUnavailableError(Exception):
    """Raised when an export format is not implemented."""
    pass


def _csv_line(values: Iterable) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(values)
    return buffer.getvalue()[:-1]


def csv_rows(result: AnalyticsResult) -> List[List]:
    """Category/Metric/Value rows in export order (header excluded)."""
    rows = [
        ["Overview", "Total Feedback", result.total_feedback],
        ["Overview", "Average Quality", f"{result.average_quality * 100:.1f}%"],
        ["Overview", "Response Rate", f"{result.response_rate * 100:.1f}%"],
        ["Overview", "Average Response Time", f"{result.average_response_time:.1f} hours"],
        ["Quality", "Excellent", result.quality_distribution.excellent],
        ["Quality", "Good", result.quality_distribution.good],
        ["Quality", "Average", result.quality_distribution.average],
        ["Quality", "Basic", result.quality_distribution.basic],
        ["Sentiment", "Positive", result.sentiment_analysis.positive],
        ["Sentiment", "Neutral", result.sentiment_analysis.neutral],
        ["Sentiment", "Negative", result.sentiment_analysis.negative],
    ]
    rows.extend(["Category", c.category_name, c.count] for c in result.category_distribution)
    rows.extend(["Volume", p.date, p.count] for p in result.feedback_volume)
    return rows


def export_to_csv(result: AnalyticsResult) -> str:
    """Render ``result`` as a ``data:text/csv`` URI, one metric per line."""
    lines = [CSV_DATA_URI_PREFIX + _csv_line(["Category", "Metric", "Value"])]
    lines.extend(_csv_line(row) for row in csv_rows(result))
    return "\n".join(lines)


def export_to_pdf(result: AnalyticsResult) -> bytes:
    """PDF rendering is not implemented; always raises ExportUnavailableError."""
    logger.warning("PDF export requested but not available")
    raise ExportUnavailableError(PDF_UNAVAILABLE_MESSAGE)
