"""
Excel Reporter

Generates a single Excel workbook with the per-stage details of a run and
the cross-validated model performance.
"""

from typing import Any, Dict, List, Optional
from pathlib import Path
import logging

import numpy as np
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from loan_default.pipeline.base import StepResult


logger = logging.getLogger(__name__)


# Styles
HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
KEPT_FILL = PatternFill(start_color="E2EFDA", end_color="E2EFDA", fill_type="solid")
ELIM_FILL = PatternFill(start_color="FCE4EC", end_color="FCE4EC", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style='thin'), right=Side(style='thin'),
    top=Side(style='thin'), bottom=Side(style='thin'),
)

# Sheet names per step (Excel limits sheet names to 31 characters)
STEP_SHEETS = {
    "02_normalize": "02_Normalize",
    "03_completeness": "03_Fill_Rates",
    "04_impute": "04_Imputation",
    "05_outliers": "05_Outliers",
    "06_features": "06_Features",
    "07_selection": "07_Importance",
}


def generate_report(
    output_path: str,
    summary: Dict[str, Any],
    step_results: List[StepResult],
    cv_df: Optional[pd.DataFrame] = None,
    roc_df: Optional[pd.DataFrame] = None,
) -> str:
    """
    Generate the run workbook.

    Args:
        output_path: Path for the output Excel file.
        summary: Dict of summary key-value pairs.
        step_results: StepResults of the executed stages.
        cv_df: One row per model with fold and mean AUC (optional).
        roc_df: Out-of-fold ROC points of the submission model (optional).

    Returns:
        Path to the generated Excel file.
    """
    wb = Workbook()

    _write_summary_sheet(wb, summary)

    for result in step_results:
        sheet = STEP_SHEETS.get(result.step_name)
        if sheet is not None:
            _write_df_sheet(wb, sheet, result.results_df)

    if cv_df is not None:
        _write_df_sheet(wb, "08_CV_AUC", cv_df)
    if roc_df is not None and len(roc_df) > 0:
        _write_df_sheet(wb, "08_ROC", roc_df)

    if "Sheet" in wb.sheetnames:
        del wb["Sheet"]

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    logger.info(f"COMPLETE | Excel saved: {output_path}")
    return str(output_path)


def _write_summary_sheet(wb: Workbook, summary: Dict[str, Any]) -> None:
    """Write the 00_Summary sheet."""
    ws = wb.create_sheet("00_Summary")

    ws.column_dimensions['A'].width = 35
    ws.column_dimensions['B'].width = 60

    ws['A1'] = "Loan Default Pipeline Report"
    ws['A1'].font = Font(bold=True, size=14, color="2F5496")
    ws.merge_cells('A1:B1')

    row = 3
    for key, value in summary.items():
        cell_a = ws.cell(row=row, column=1, value=key)
        cell_b = ws.cell(row=row, column=2, value=str(value))
        cell_a.font = Font(bold=True)
        cell_a.border = THIN_BORDER
        cell_b.border = THIN_BORDER
        row += 1


def _row_fill(record: Dict[str, Any]) -> Optional[PatternFill]:
    """Green for kept/flagged rows, pink for dropped ones."""
    if record.get("Bucket") == "dropped" or record.get("Selected") is False:
        return ELIM_FILL
    if record.get("Status") == "Flagged" or record.get("Selected") is True:
        return KEPT_FILL
    return None


def _cell_value(value: Any) -> Any:
    if isinstance(value, (list, tuple, dict)):
        return str(value)
    if pd.isna(value):
        return None
    if isinstance(value, (np.bool_, bool)):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (float, np.floating)):
        # ROC thresholds start at +inf, which openpyxl cannot store
        return float(value) if np.isfinite(value) else None
    return value


def _write_df_sheet(wb: Workbook, sheet_name: str, df: pd.DataFrame) -> None:
    """Write a DataFrame to a styled sheet."""
    ws = wb.create_sheet(sheet_name)
    if df is None or len(df) == 0:
        ws['A1'] = "No data"
        return

    for col_idx, col_name in enumerate(df.columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal='center')
        cell.border = THIN_BORDER

    for row_idx, record in enumerate(df.to_dict(orient="records"), 2):
        fill = _row_fill(record)
        for col_idx, value in enumerate(record.values(), 1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(value))
            cell.border = THIN_BORDER
            if fill:
                cell.fill = fill

    # Auto-fit column widths (approximate)
    for col_idx, col_name in enumerate(df.columns, 1):
        max_len = len(str(col_name))
        for row_idx in range(2, min(len(df) + 2, 102)):  # sample first 100 rows
            val = ws.cell(row=row_idx, column=col_idx).value
            if val is not None:
                max_len = max(max_len, len(str(val)))
        ws.column_dimensions[
            ws.cell(row=1, column=col_idx).column_letter
        ].width = min(max_len + 3, 40)

    ws.freeze_panes = 'A2'
    ws.auto_filter.ref = ws.dimensions
