from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date

import pandas as pd
from openpyxl.styles import Font, PatternFill

from ..core.exceptions import ValidationError
from .aggregation import AttendanceMatrix

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIMETYPE = "text/csv"
SHEET_NAME = "Attendance Report"

HEADER_FILL = "FF3B82F6"
WHITE = "FFFFFFFF"
STATUS_FILLS = {
    "PRESENT": "FF10B981",
    "ABSENT": "FFEF4444",
    "LATE": "FFF59E0B",
    "EXCUSED": "FF3B82F6",
}
EMPTY_CELL = "-"
COLUMN_WIDTH = 15


@dataclass(frozen=True)
class ExportFile:
    filename: str
    mimetype: str
    content: bytes


def _session_labels(matrix: AttendanceMatrix) -> list[str]:
    labels: list[str] = []
    for s in matrix.sessions:
        label = s.session_date.isoformat()
        if label in labels:
            label = f"{label} {s.start_time.strftime('%H:%M')}"
        labels.append(label)
    return labels


def matrix_to_frame(matrix: AttendanceMatrix) -> pd.DataFrame:
    columns = [
        "Student ID",
        "Last Name",
        "First Name",
        *_session_labels(matrix),
        "Present",
        "Absent",
        "Late",
        "Excused",
        "Rate %",
    ]
    data = [
        [
            row.student.student_number,
            row.student.last_name,
            row.student.first_name,
            *[status.value if status else EMPTY_CELL for status in row.statuses],
            row.stats.present,
            row.stats.absent,
            row.stats.late,
            row.stats.excused,
            f"{row.stats.rate}%",
        ]
        for row in matrix.rows
    ]
    return pd.DataFrame(data, columns=columns)


def to_csv_bytes(matrix: AttendanceMatrix) -> bytes:
    df = matrix_to_frame(matrix)
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(df.columns)
    writer.writerows(df.itertuples(index=False, name=None))
    return buf.getvalue().encode("utf-8")


def to_xlsx_bytes(matrix: AttendanceMatrix) -> bytes:
    df = matrix_to_frame(matrix)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)
        ws = writer.sheets[SHEET_NAME]

        for cell in ws[1]:
            cell.font = Font(bold=True, color=WHITE)
            cell.fill = PatternFill(fill_type="solid", fgColor=HEADER_FILL)

        for row in ws.iter_rows(min_row=2):
            for cell in row:
                color = STATUS_FILLS.get(str(cell.value))
                if color:
                    cell.fill = PatternFill(fill_type="solid", fgColor=color)
                    cell.font = Font(color=WHITE)

        for column_cells in ws.columns:
            ws.column_dimensions[column_cells[0].column_letter].width = COLUMN_WIDTH

    return output.getvalue()


def export_matrix(matrix: AttendanceMatrix, *, class_code: str, fmt: str, today: date) -> ExportFile:
    fmt = (fmt or "xlsx").lower()
    stem = f"attendance-{class_code}-{today.isoformat()}"
    if fmt == "csv":
        return ExportFile(filename=f"{stem}.csv", mimetype=CSV_MIMETYPE, content=to_csv_bytes(matrix))
    if fmt == "xlsx":
        return ExportFile(filename=f"{stem}.xlsx", mimetype=XLSX_MIMETYPE, content=to_xlsx_bytes(matrix))
    raise ValidationError("Export format must be xlsx or csv")
