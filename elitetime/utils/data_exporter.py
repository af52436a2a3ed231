import logging
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from fastapi.responses import StreamingResponse
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from elitetime.core.exceptions import UnexpectedError

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class DataExportService:
    """Tabular exports (rows of dicts) to styled Excel workbooks."""

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill("solid", fgColor="366092")
    sum_font = Font(bold=True, size=12)
    sum_fill = PatternFill("solid", fgColor="D9D9D9")
    thin_border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )

    def build_workbook(
        self,
        data: List[Dict[str, Any]],
        sheet_name: str = "Data",
        sum_columns: Optional[Sequence[str]] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> BytesIO:
        """Render rows into an xlsx file; ``sum_columns`` get a TOTAL row."""
        output = BytesIO()
        df = pd.DataFrame(data, columns=list(columns) if columns else None)

        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]

            max_row = len(df) + 1  # header
            max_col = len(df.columns)

            for col in range(1, max_col + 1):
                cell = worksheet.cell(row=1, column=col)
                cell.font = self.header_font
                cell.fill = self.header_fill

            for row in worksheet.iter_rows(min_row=1, max_row=max_row, max_col=max_col):
                for cell in row:
                    cell.border = self.thin_border

            summed = [name for name in (sum_columns or []) if name in df.columns]
            if summed and len(df):
                sum_row = max_row + 2  # leave one empty row
                label = worksheet.cell(row=sum_row, column=1, value="TOTAL")
                label.font = self.sum_font
                label.fill = self.sum_fill
                for name in summed:
                    col_idx = list(df.columns).index(name) + 1
                    total = pd.to_numeric(df[name], errors="coerce").fillna(0).sum()
                    cell = worksheet.cell(row=sum_row, column=col_idx, value=float(total))
                    cell.font = self.sum_font
                    cell.fill = self.sum_fill
                    cell.border = self.thin_border

            for col_idx, column in enumerate(worksheet.columns, 1):
                longest = max((len(str(c.value)) for c in column if c.value is not None), default=0)
                worksheet.column_dimensions[get_column_letter(col_idx)].width = min(max(longest + 2, 10), 50)

        output.seek(0)
        return output

    def export_to_excel(
        self,
        data: List[Dict[str, Any]],
        filename: str,
        sheet_name: str = "Data",
        sum_columns: Optional[Sequence[str]] = None,
        columns: Optional[Sequence[str]] = None,
    ) -> StreamingResponse:
        try:
            output = self.build_workbook(data, sheet_name, sum_columns, columns)
        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}")
            raise UnexpectedError("Échec de l'export Excel", details=str(e))

        logger.info(f"Excel export '{filename}' built with {len(data)} rows")
        return StreamingResponse(
            output,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
        )
