"""Product import result data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional


@dataclass
class ImportRowError:
    """A CSV row that could not be imported."""

    line: int
    message: str
    raw: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"line": self.line, "message": self.message, "raw": self.raw}


@dataclass
class ImportResult:
    """Represents the result of a product CSV import."""

    imported_count: int = 0
    skipped_count: int = 0
    errors: List[ImportRowError] = field(default_factory=list)
    total_rows: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration: float = 0.0  # seconds

    @property
    def success(self) -> bool:
        return not self.errors

    def add_error(self, line: int, message: str, raw: Optional[str] = None):
        """Record a rejected row."""
        self.errors.append(ImportRowError(line=line, message=message, raw=raw))
        self.skipped_count += 1

    def finalize(self):
        """Stamp end time and duration."""
        self.end_time = datetime.now()
        self.duration = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "imported_count": self.imported_count,
            "skipped_count": self.skipped_count,
            "total_rows": self.total_rows,
            "duration": round(self.duration, 2),
            "errors": [error.to_dict() for error in self.errors],
        }

    def get_summary(self) -> str:
        """Get a human-readable summary."""
        summary_lines = [
            f"Import completed in {self.duration:.2f}s",
            f"Rows: {self.total_rows}",
            f"Imported: {self.imported_count}",
            f"Skipped: {self.skipped_count}",
        ]

        if self.errors:
            summary_lines.append(f"\nErrors ({len(self.errors)}):")
            for error in self.errors[:5]:
                summary_lines.append(f"  - line {error.line}: {error.message}")
            if len(self.errors) > 5:
                summary_lines.append(f"  ... and {len(self.errors) - 5} more errors")

        return "\n".join(summary_lines)
