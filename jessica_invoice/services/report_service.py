"""Dashboard report export."""

import csv
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models.dashboard import DashboardData
from ..utils.config import get_config
from ..utils.exceptions import ReportExportError
from ..utils.logger import get_dashboard_logger, get_error_logger

SUPPORTED_FORMATS = ("json", "csv")


class ReportService:
    """Writes dashboard snapshots to the reports directory."""

    def __init__(self, reports_dir: Optional[Path] = None):
        self.config = get_config()
        self.logger = get_dashboard_logger()
        self.error_logger = get_error_logger()
        self.reports_dir = (
            Path(reports_dir) if reports_dir is not None
            else self.config.data_dir / self.config.storage.reports_dir
        )

    def write_report(self, data: DashboardData, fmt: str = "json") -> Path:
        """
        Write ``data`` as JSON or CSV.

        Raises:
            ReportExportError: If the format is unknown or the file cannot be written
        """
        fmt = fmt.lower()
        if fmt not in SUPPORTED_FORMATS:
            raise ReportExportError(f"Unsupported report format: {fmt}", details={"format": fmt})

        stamp = (data.generated_at or datetime.now()).strftime("%Y%m%d_%H%M%S")
        path = self.reports_dir / f"dashboard_{data.timeframe.value}_{stamp}.{fmt}"

        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                if fmt == "json":
                    json.dump(data.to_dict(), f, indent=2, ensure_ascii=False)
                else:
                    self._write_csv(data, f)
        except OSError as e:
            raise ReportExportError(f"Could not write report {path.name}", details={"error": str(e)})

        self.logger.info(f"Exported dashboard report: {path}")
        return path

    def export(self, data: DashboardData, fmt: str = "json") -> Optional[Path]:
        """Like ``write_report`` but failures are logged and None is returned."""
        try:
            return self.write_report(data, fmt)
        except ReportExportError as e:
            self.error_logger.error(f"Report export failed: {e.message}", extra={"details": e.details})
            return None

    def _write_csv(self, data: DashboardData, f) -> None:
        summary = data.to_dict()
        writer = csv.writer(f)
        writer.writerow(["metric", "value", "change_percent"])
        writer.writerow(["total_revenue", summary["total_revenue"], summary["revenue_change"]])
        writer.writerow(["active_invoices", summary["active_invoices"], summary["invoice_change"]])
        writer.writerow(["outstanding_amount", summary["outstanding_amount"], summary["outstanding_change"]])
        writer.writerow(["overdue_amount", summary["overdue_amount"], summary["overdue_change"]])
        writer.writerow([])
        writer.writerow(["bucket_start", "revenue"])
        for point in summary["chart_data"]:
            writer.writerow([point["date"], point["value"]])
