"""Excel rendering for export tables."""

import io

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from activity_admin.domain.bulk import ExportTable

_MIN_COLUMN_WIDTH = 8
_MAX_COLUMN_WIDTH = 50
_SHEET_TITLE_LIMIT = 31


def render_xlsx(table: ExportTable, sheet_title: str = "Participants") -> bytes:
    """Render an export table as a single-sheet xlsx workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = _safe_sheet_title(sheet_title)
    ws.append(list(table.headers))
    for row in table.rows:
        ws.append(list(row))

    for index, header in enumerate(table.headers, start=1):
        values = [header, *(row[index - 1] for row in table.rows)]
        longest = max(len(str(value)) for value in values if value is not None)
        width = min(max(longest + 2, _MIN_COLUMN_WIDTH), _MAX_COLUMN_WIDTH)
        ws.column_dimensions[get_column_letter(index)].width = width

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _safe_sheet_title(title: str) -> str:
    cleaned = "".join(ch for ch in title if ch not in "[]:*?/\\").strip()
    return (cleaned or "Participants")[:_SHEET_TITLE_LIMIT]
