"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = PROJECT_ROOT / "data" / "db" / "hours-registry.db"
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# COMPANY IDENTITY
# =============================================================================

UNASSIGNED_COMPANY_ID = "sin-empresa"
UNASSIGNED_COMPANY_LABEL = "Sin empresa asignada"

# Compared after lowercasing and stripping diacritics
UNASSIGNED_COMPANY_NAME_VARIANTS = {
    "sin empresa",
    "sin empresa asignada",
    "sin empresa asignado",
    "sin empresa (sin asignar)",
    "sin asignar empresa",
    "sin asignacion de empresa",
}

# Placeholder ids some clients send instead of leaving the field empty
UNASSIGNED_COMPANY_ID_PLACEHOLDERS = {"0", "null", "undefined"}

DEFAULT_GROUP_SLUG = "sin-categoria"

# =============================================================================
# SCHEDULE RECORDS
# =============================================================================

SCHEDULE_TYPE_HOURS = 1
SCHEDULE_TYPE_NOTE = 7

# Fixed shift applied to every record timestamp before taking its day key
ENTRY_DATE_OFFSET_HOURS = float(os.environ.get("ENTRY_DATE_OFFSET_HOURS", "2"))

# Rows whose absolute hours fall below this are treated as empty
HOURS_COMPARISON_EPSILON = 0.01

NOTE_MAX_DEPTH = 8

ENTRY_DESCRIPTION_SEPARATOR = " • "
NOTE_LINE_SEPARATOR = " | "

UNNAMED_WORKER_LABEL = "Trabajador sin nombre"

# =============================================================================
# SCHEDULE API (from environment)
# =============================================================================

SCHEDULE_API_URL = os.environ.get("SCHEDULE_API_URL", "")
SCHEDULE_API_TOKEN = os.environ.get("SCHEDULE_API_TOKEN", "")
SCHEDULE_API_TIMEOUT = float(os.environ.get("SCHEDULE_API_TIMEOUT", "30"))

# =============================================================================
# SPREADSHEET LAYOUT
# =============================================================================

SUMMARY_SHEET_NAME = "Resumen"
SUMMARY_TITLE = "CONTROL HORARIO POR EMPRESA"
SUMMARY_HEADERS = ["EMPLEADO", "UBICACIÓN", "HORAS", "€/HORA", "IMPORTE €"]
SUMMARY_HEADER_ROW = 4
SUMMARY_COLUMN_WIDTHS = [28, 22, 12, 12, 16, 2, 2, 28, 16, 12, 16]

COMPANY_SUMMARY_TITLE = "TOTAL POR EMPRESAS"
COMPANY_SUMMARY_HEADERS = ["EMPRESAS", "IMPORTES"]

DETAIL_HEADERS = [
    "DÍA", "FECHA", "EMPRESA", "HORA ENTRADA",
    "HORA SALIDA", "HORAS", "IMPORTE €", "NOTAS",
]
DETAIL_COLUMN_WIDTHS = [16, 14, 28, 14, 14, 12, 16, 48]

MAX_SHEET_NAME_LENGTH = 31
FALLBACK_SHEET_NAME = "Trabajador"

CURRENCY_FORMAT = '#,##0.00 "€"'
HOURS_FORMAT = "0.00"

HEADER_FILL_COLOR = "FF4F81BD"
TOTAL_FILL_COLOR = "FFE3ECF8"
TOTAL_FONT_COLOR = "FF1F497D"
SEPARATOR_FILL_COLOR = "FFD9D9D9"
COMPANY_TITLE_FILL_COLOR = "FFB85450"
COMPANY_HEADER_FILL_COLOR = "FFC0504D"
COMPANY_ROW_FILL_COLOR = "FFF2DCDB"

NO_EXPORT_DATA_MESSAGE = "No hay datos para exportar en el rango seleccionado."

# =============================================================================
# API CONFIGURATION
# =============================================================================

HOURS_API_KEY = os.environ.get("HOURS_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
MAX_EXPORT_RANGE_DAYS = int(os.environ.get("MAX_EXPORT_RANGE_DAYS", "62"))
API_VERSION = "1.0.0"
