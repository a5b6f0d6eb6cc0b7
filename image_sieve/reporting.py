import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .models import ScanReport


class ReportPrinter:
    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout

    def render(self, report: ScanReport, error_log: Optional[Path] = None) -> List[str]:
        """
        Builds the lines shown to the user: the result for the mode first,
        then the summary.
        """
        lines: List[str] = []

        if report.mode == 'list':
            # Set has no order; sort so output is reproducible
            lines.extend(str(p) for p in sorted(report.paths or ()))
        elif report.mode == 'any':
            if report.first_match is not None:
                lines.append("found")
                lines.append(f"=> {report.first_match}")
            else:
                lines.append("none found.")

        lines.append(f"{report.matched} files matched.")

        if report.failures > 0:
            lines.append(f"{report.failures} files failed to read")
            if error_log is not None:
                lines.append(f"see the error log in {error_log}")

        if report.partial:
            lines.append(
                f"Deadline reached: results are partial "
                f"({report.launched} of {report.total} files were started)."
            )

        return lines

    def print_report(self, report: ScanReport, error_log: Optional[Path] = None):
        for line in self.render(report, error_log):
            print(line, file=self.out)
