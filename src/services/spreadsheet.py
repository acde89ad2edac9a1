"""
Spreadsheet layout for hours exports.

Builds the "Resumen" summary sheet (per worker company rows with live
formulas, worker totals, and the per-company amount block) and one detail
sheet per worker.
"""

import re
from dataclasses import dataclass

from openpyxl.styles import Alignment, Color, Font, PatternFill
from openpyxl.utils import get_column_letter

from core.config import (
    COMPANY_HEADER_FILL_COLOR,
    COMPANY_ROW_FILL_COLOR,
    COMPANY_SUMMARY_HEADERS,
    COMPANY_SUMMARY_TITLE,
    COMPANY_TITLE_FILL_COLOR,
    CURRENCY_FORMAT,
    DETAIL_COLUMN_WIDTHS,
    DETAIL_HEADERS,
    FALLBACK_SHEET_NAME,
    HEADER_FILL_COLOR,
    HOURS_FORMAT,
    MAX_SHEET_NAME_LENGTH,
    SEPARATOR_FILL_COLOR,
    SUMMARY_COLUMN_WIDTHS,
    SUMMARY_HEADER_ROW,
    SUMMARY_HEADERS,
    SUMMARY_TITLE,
    TOTAL_FILL_COLOR,
    TOTAL_FONT_COLOR,
)
from core.values import round_to_decimals
from services.aggregation import ExportAggregate

# =============================================================================
# STYLES
# =============================================================================

WHITE = Color(rgb="FFFFFFFF")


def _fill(rgb: str) -> PatternFill:
    return PatternFill(patternType="solid", fgColor=Color(rgb=rgb), bgColor=Color(rgb=rgb))


HEADER_FONT = Font(bold=True, color=WHITE)
HEADER_FILL = _fill(HEADER_FILL_COLOR)
TOTAL_FILL = _fill(TOTAL_FILL_COLOR)
SEPARATOR_FILL = _fill(SEPARATOR_FILL_COLOR)
COMPANY_TITLE_FILL = _fill(COMPANY_TITLE_FILL_COLOR)
COMPANY_HEADER_FILL = _fill(COMPANY_HEADER_FILL_COLOR)
COMPANY_ROW_FILL = _fill(COMPANY_ROW_FILL_COLOR)

CENTER = Alignment(horizontal="center", vertical="center")
LEFT = Alignment(horizontal="left", vertical="center", wrap_text=True)

SUMMARY_COLUMNS = "ABCDE"
DETAIL_COLUMNS = "ABCDEFGH"
COMPANY_NAME_COLUMN = "H"
COMPANY_AMOUNT_COLUMN = "I"

_RESTRICTED_SHEET_CHARS = re.compile(r"[\\/?*\[\]:]")


@dataclass
class WorkerBlock:
    """Row addresses of one worker on the summary sheet."""
    worker_id: str
    data_start_row: int
    data_end_row: int
    total_row: int
    separator_row: int | None = None


@dataclass
class WorkerDetailRow:
    """One line of a worker detail sheet."""
    day_label: str
    date_label: str
    company_name: str = ""
    entry_time: str | None = None
    exit_time: str | None = None
    hours: float | None = None
    amount: float | None = None
    notes: str | None = None


# =============================================================================
# SHEET NAMES
# =============================================================================


def sanitize_sheet_name(value: str | None) -> str:
    """Replace characters Excel rejects and cut to the 31 character limit."""
    cleaned = _RESTRICTED_SHEET_CHARS.sub(" ", value or "").strip()
    return cleaned[:MAX_SHEET_NAME_LENGTH]


def unique_sheet_name(base_name: str | None, used_names: set[str]) -> str:
    """
    Sanitized sheet name not yet in used_names, registering it.

    Collisions get " (1)", " (2)", ... with the base shortened so the whole
    name still fits in 31 characters. Comparison is case-insensitive, as in
    Excel. used_names holds lowercased names.
    """
    base = sanitize_sheet_name(base_name) or FALLBACK_SHEET_NAME
    candidate = base[:MAX_SHEET_NAME_LENGTH]
    suffix = 1
    while candidate.lower() in used_names:
        suffix_label = f" ({suffix})"
        max_base_length = MAX_SHEET_NAME_LENGTH - len(suffix_label)
        candidate = f"{base[:max(max_base_length, 0)].rstrip()}{suffix_label}"
        suffix += 1
    used_names.add(candidate.lower())
    return candidate


# =============================================================================
# SUMMARY SHEET
# =============================================================================


def _absolute_range(column: str, start_row: int, end_row: int) -> str:
    return f"${column}${start_row}:${column}${end_row}"


def _exact_match_criterion(value: str) -> str:
    """SUMIFS criterion that matches value literally, as a formula string body."""
    escaped = value.replace("~", "~~").replace("*", "~*").replace("?", "~?")
    return f"={escaped}".replace('"', '""')


def _write_title_block(ws, title: str, subtitle: str, last_column: str, title_size: int, subtitle_size: int) -> None:
    ws.cell(row=1, column=1, value=title)
    ws.cell(row=2, column=1, value=subtitle)
    ws.merge_cells(f"A1:{last_column}1")
    ws.merge_cells(f"A2:{last_column}2")
    ws["A1"].font = Font(size=title_size, bold=True)
    ws["A1"].alignment = CENTER
    ws["A2"].font = Font(size=subtitle_size)
    ws["A2"].alignment = CENTER


def _write_header_row(ws, row: int, headers: list[str]) -> None:
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=row, column=col_idx, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = CENTER


def _set_column_widths(ws, widths: list[float]) -> None:
    for col_idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width


def write_worker_rows(ws, aggregate: ExportAggregate, first_row: int) -> list[WorkerBlock]:
    """Write every worker's company rows, TOTAL row and separator."""
    blocks = []
    current_row = first_row

    for index, worker in enumerate(aggregate.workers):
        start_row = current_row
        for row_index, row in enumerate(worker.rows):
            r = current_row
            name_cell = ws.cell(row=r, column=1, value=worker.worker_name if row_index == 0 else None)
            name_cell.alignment = LEFT
            ws.cell(row=r, column=2, value=row.company_name).alignment = LEFT

            hours_cell = ws.cell(row=r, column=3, value=round_to_decimals(row.hours))
            hours_cell.alignment = CENTER
            rate = round_to_decimals(row.hourly_rate) if row.hourly_rate is not None else None
            rate_cell = ws.cell(row=r, column=4, value=rate)
            rate_cell.alignment = CENTER
            rate_cell.number_format = CURRENCY_FORMAT

            amount_cell = ws.cell(row=r, column=5, value=f'=IF(OR(C{r}="",D{r}=""),"",C{r}*D{r})')
            amount_cell.number_format = CURRENCY_FORMAT
            current_row += 1

        end_row = current_row - 1
        total_row = current_row
        hours_range = f"C{start_row}:C{end_row}"
        rate_range = f"D{start_row}:D{end_row}"
        amount_range = f"E{start_row}:E{end_row}"
        rated_hours = f'SUMIFS({hours_range},{rate_range},"<>")'
        rated_amount = f'SUMIFS({amount_range},{rate_range},"<>")'

        ws.cell(row=total_row, column=2, value="TOTAL").font = Font(bold=True)
        hours_total = ws.cell(row=total_row, column=3, value=f"=SUM({hours_range})")
        hours_total.alignment = CENTER
        rate_total = ws.cell(
            row=total_row,
            column=4,
            value=f'=IF({rated_hours}=0,"",ROUND({rated_amount}/{rated_hours},2))',
        )
        rate_total.alignment = CENTER
        rate_total.number_format = CURRENCY_FORMAT
        amount_total = ws.cell(row=total_row, column=5, value=f'=IF({rated_amount}=0,"",{rated_amount})')
        amount_total.number_format = CURRENCY_FORMAT
        for column in SUMMARY_COLUMNS:
            ws[f"{column}{total_row}"].fill = TOTAL_FILL

        ws.merge_cells(f"A{start_row}:A{total_row}")
        name_cell = ws.cell(row=start_row, column=1)
        name_cell.font = Font(bold=True)
        name_cell.fill = TOTAL_FILL
        name_cell.alignment = Alignment(horizontal="left", vertical="top", wrap_text=True)

        current_row = total_row + 1
        block = WorkerBlock(
            worker_id=worker.worker_id,
            data_start_row=start_row,
            data_end_row=end_row,
            total_row=total_row,
        )

        if index < len(aggregate.workers) - 1:
            for column in SUMMARY_COLUMNS:
                ws[f"{column}{current_row}"].fill = SEPARATOR_FILL
            block.separator_row = current_row
            current_row += 1

        blocks.append(block)

    return blocks


def write_company_summary(ws, company_names: list[str], data_start_row: int, data_end_row: int) -> int:
    """
    Write the TOTAL POR EMPRESAS block in H:I. Returns its last row.

    Each company amount is a SUMIFS over the summary table restricted to
    rows that have a rate.
    """
    title_row = SUMMARY_HEADER_ROW
    header_row = title_row + 1
    first_company_row = header_row + 1

    title_cell = ws[f"{COMPANY_NAME_COLUMN}{title_row}"]
    title_cell.value = COMPANY_SUMMARY_TITLE
    ws.merge_cells(f"{COMPANY_NAME_COLUMN}{title_row}:{COMPANY_AMOUNT_COLUMN}{title_row}")
    title_cell.font = Font(bold=True, size=16, color=WHITE)
    title_cell.alignment = CENTER
    for column in (COMPANY_NAME_COLUMN, COMPANY_AMOUNT_COLUMN):
        ws[f"{column}{title_row}"].fill = COMPANY_TITLE_FILL

    for column, header in zip((COMPANY_NAME_COLUMN, COMPANY_AMOUNT_COLUMN), COMPANY_SUMMARY_HEADERS):
        cell = ws[f"{column}{header_row}"]
        cell.value = header
        cell.font = HEADER_FONT
        cell.fill = COMPANY_HEADER_FILL
        cell.alignment = CENTER

    company_range = _absolute_range("B", data_start_row, data_end_row)
    rate_range = _absolute_range("D", data_start_row, data_end_row)
    amount_range = _absolute_range("E", data_start_row, data_end_row)

    for offset, company_name in enumerate(company_names):
        r = first_company_row + offset
        name_cell = ws[f"{COMPANY_NAME_COLUMN}{r}"]
        name_cell.value = company_name
        name_cell.alignment = LEFT
        amount_expr = (
            f'SUMIFS({amount_range},{company_range},"{_exact_match_criterion(company_name)}",'
            f'{rate_range},"<>")'
        )
        amount_cell = ws[f"{COMPANY_AMOUNT_COLUMN}{r}"]
        amount_cell.value = f'=IF({amount_expr}=0,"",{amount_expr})'
        amount_cell.number_format = CURRENCY_FORMAT
        name_cell.fill = COMPANY_ROW_FILL
        amount_cell.fill = COMPANY_ROW_FILL

    total_row = first_company_row + len(company_names)
    label_cell = ws[f"{COMPANY_NAME_COLUMN}{total_row}"]
    label_cell.value = "TOTAL"
    label_cell.font = Font(bold=True)
    total_cell = ws[f"{COMPANY_AMOUNT_COLUMN}{total_row}"]
    if company_names:
        amounts = f"{COMPANY_AMOUNT_COLUMN}{first_company_row}:{COMPANY_AMOUNT_COLUMN}{total_row - 1}"
        total_cell.value = f'=IF(SUM({amounts})=0,"",SUM({amounts}))'
    else:
        total_cell.value = '=""'
    total_cell.font = Font(bold=True)
    total_cell.number_format = CURRENCY_FORMAT
    label_cell.fill = COMPANY_ROW_FILL
    total_cell.fill = COMPANY_ROW_FILL

    return total_row


def build_summary_sheet(ws, aggregate: ExportAggregate, range_label: str) -> list[WorkerBlock]:
    """Lay out the summary sheet on ws. Returns the worker block addresses."""
    ws.sheet_view.showGridLines = False
    _write_title_block(ws, SUMMARY_TITLE, f"Del {range_label}", "E", title_size=24, subtitle_size=18)
    ws.row_dimensions[1].height = 36
    ws.row_dimensions[2].height = 28

    _write_header_row(ws, SUMMARY_HEADER_ROW, SUMMARY_HEADERS)
    ws[f"C{SUMMARY_HEADER_ROW}"].alignment = LEFT
    ws[f"D{SUMMARY_HEADER_ROW}"].alignment = LEFT

    first_data_row = SUMMARY_HEADER_ROW + 1
    blocks = write_worker_rows(ws, aggregate, first_data_row)
    last_table_row = blocks[-1].total_row if blocks else SUMMARY_HEADER_ROW

    # Same display name under different ids would be summed twice by SUMIFS
    company_names: list[str] = []
    for company in aggregate.companies:
        if company.company_name not in company_names:
            company_names.append(company.company_name)

    if last_table_row > SUMMARY_HEADER_ROW:
        write_company_summary(ws, company_names, first_data_row, last_table_row)

    ws.auto_filter.ref = f"A{SUMMARY_HEADER_ROW}:E{last_table_row}"
    _set_column_widths(ws, SUMMARY_COLUMN_WIDTHS)
    return blocks


# =============================================================================
# WORKER DETAIL SHEET
# =============================================================================


def build_worker_detail_sheet(ws, worker_name: str, range_label: str, rows: list[WorkerDetailRow]) -> None:
    """Lay out a worker's detail sheet. The totals row holds literal values."""
    ws.sheet_view.showGridLines = False
    _write_title_block(
        ws,
        f"REGISTRO DIARIO - {worker_name.upper()}",
        f"DEL {range_label.upper()}",
        DETAIL_COLUMNS[-1],
        title_size=20,
        subtitle_size=14,
    )
    ws.row_dimensions[1].height = 30
    ws.row_dimensions[2].height = 22

    header_row = 4
    _write_header_row(ws, header_row, DETAIL_HEADERS)

    current_row = header_row + 1
    for row in rows:
        values = [
            row.day_label,
            row.date_label,
            row.company_name or "",
            row.entry_time or "",
            row.exit_time or "",
            round_to_decimals(row.hours) if row.hours is not None else None,
            round_to_decimals(row.amount) if row.amount is not None else None,
            row.notes or "",
        ]
        for col_idx, value in enumerate(values, start=1):
            cell = ws.cell(row=current_row, column=col_idx, value=value)
            cell.alignment = LEFT if col_idx in (3, 8) else CENTER
        ws.cell(row=current_row, column=6).number_format = HOURS_FORMAT
        ws.cell(row=current_row, column=7).number_format = CURRENCY_FORMAT
        current_row += 1

    if rows:
        total_hours = sum(row.hours or 0 for row in rows)
        total_amount = sum(row.amount or 0 for row in rows)
        values = ["TOTAL", "", "", "", "", round_to_decimals(total_hours), round_to_decimals(total_amount), ""]
        for col_idx, value in enumerate(values, start=1):
            cell = ws.cell(row=current_row, column=col_idx, value=value)
            cell.font = Font(bold=True, color=Color(rgb=TOTAL_FONT_COLOR))
            cell.fill = TOTAL_FILL
            cell.alignment = CENTER
        ws.cell(row=current_row, column=6).number_format = HOURS_FORMAT
        ws.cell(row=current_row, column=7).number_format = CURRENCY_FORMAT

    _set_column_widths(ws, DETAIL_COLUMN_WIDTHS)
