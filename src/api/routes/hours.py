"""Hours registry endpoints: totals, workbook export and save-back."""

import asyncio
import logging
import time
from dataclasses import dataclass
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from api.dependencies import ScheduleApi, get_schedule_api, verify_api_key
from api.logging import RequestLog, log_request
from api.models.requests import (
    AssignmentInput,
    ExportRequest,
    HoursRangeRequest,
    SaveRequest,
    TotalsRequest,
)
from api.models.responses import (
    AssignmentTotal,
    ErrorCodes,
    GroupTotal,
    SaveResponse,
    TotalsResponse,
)
from core.config import MAX_EXPORT_RANGE_DAYS
from core.dates import build_day_descriptors, format_date_key
from core.values import round_to_decimals
from models.hours import (
    Assignment,
    AssignmentTotalsContext,
    DayDescriptor,
    DayNoteEntry,
    Worker,
)
from services.aggregation import NoExportDataError
from services.assignments import generate_assignments, with_normalized_company
from services.control_schedule import (
    ScheduleApiError,
    WeekDataLoadResult,
    fetch_company_lookup,
    fetch_workers,
    load_workers_week_data,
    save_payload,
)
from services.exports import DetailLevel, generate_hours_export_to_bytes
from services.save_payload import NoteDrafts, SegmentsByAssignment, build_save_payload
from services.segments import create_empty_segment
from services.totals import calculate_group_totals, calculate_row_total, calculate_totals, resolve_hour

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
WARNINGS_HEADER = "X-Hours-Warnings"
NO_CHANGES_MESSAGE = "No hay cambios de horas o notas para guardar"


@dataclass
class RangeData:
    """Directory, assignments and tracked data for one requested range."""

    company_lookup: dict[str, str]
    workers: list[Worker]
    assignments: list[Assignment]
    days: list[DayDescriptor]
    load: WeekDataLoadResult

    @property
    def context(self) -> AssignmentTotalsContext:
        return AssignmentTotalsContext(worker_week_data=self.load.data)


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _error(status_code: int, code: str, message: str, details: list[str] | None = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": message, "code": code, "details": details or []},
    )


def validate_range(body: HoursRangeRequest) -> None:
    day_count = (body.end - body.start).days + 1
    if day_count > MAX_EXPORT_RANGE_DAYS:
        raise _error(
            status.HTTP_400_BAD_REQUEST,
            ErrorCodes.INVALID_REQUEST,
            f"Range exceeds maximum of {MAX_EXPORT_RANGE_DAYS} days",
            [f"Requested: {day_count} days"],
        )


def assignment_from_input(item: AssignmentInput) -> Assignment:
    company_id = item.company_id or ""
    return with_normalized_company(
        Assignment(
            id=item.id or f"{company_id or 'sin-empresa'}-{item.worker_id}",
            worker_id=item.worker_id,
            worker_name=item.worker_name,
            company_id=company_id,
            company_name=item.company_name or "",
            hours=dict(item.hours),
        )
    )


async def load_range_data(api: ScheduleApi, body: HoursRangeRequest) -> RangeData:
    """
    Fetch the directory and every involved worker's tracked data.

    Client-supplied assignments replace the generated ones; workers they
    reference but the directory lacks are still loaded.
    """
    company_lookup = await fetch_company_lookup(api.client, api.base_url)
    workers = await fetch_workers(api.client, company_lookup, api.base_url)
    if body.worker_ids:
        wanted = set(body.worker_ids)
        workers = [worker for worker in workers if worker.id in wanted]

    if body.assignments is not None:
        assignments = [assignment_from_input(item) for item in body.assignments]
        if body.worker_ids:
            assignments = [a for a in assignments if a.worker_id in wanted]
    else:
        assignments = generate_assignments(workers, company_lookup)

    known = {worker.id for worker in workers}
    for assignment in assignments:
        if assignment.worker_id not in known:
            workers.append(Worker(id=assignment.worker_id, name=assignment.worker_name))
            known.add(assignment.worker_id)

    assigned_ids = {assignment.worker_id for assignment in assignments}
    load = await load_workers_week_data(
        api.client,
        [worker for worker in workers if worker.id in assigned_ids],
        body.start,
        body.end,
        company_lookup,
        api.base_url,
    )

    return RangeData(
        company_lookup=company_lookup,
        workers=workers,
        assignments=assignments,
        days=build_day_descriptors(body.start, body.end),
        load=load,
    )


def _start_log(request: Request, endpoint: str, body: HoursRangeRequest) -> RequestLog:
    return RequestLog(
        endpoint=endpoint,
        method="POST",
        client_ip=get_client_ip(request),
        range_start=format_date_key(body.start),
        range_end=format_date_key(body.end),
    )


def _record_load_failures(request_log: RequestLog, data: RangeData) -> None:
    for worker_id in data.load.failed_worker_ids:
        request_log.details.append(("worker_load_failed", worker_id))
    if data.load.error_message:
        request_log.details.append(("warning", data.load.error_message))


def _record_http_error(request_log: RequestLog, e: HTTPException) -> None:
    request_log.status_code = e.status_code
    if isinstance(e.detail, dict):
        request_log.error_code = e.detail.get("code")
        request_log.error_message = e.detail.get("error")
        for detail in e.detail.get("details", []):
            request_log.details.append(("validation_error", detail))
    else:
        request_log.error_message = str(e.detail)


def _upstream_error(request_log: RequestLog, e: Exception) -> HTTPException:
    request_log.status_code = 502
    request_log.error_code = ErrorCodes.UPSTREAM_ERROR
    request_log.error_message = str(e)
    return _error(
        status.HTTP_502_BAD_GATEWAY,
        ErrorCodes.UPSTREAM_ERROR,
        "Schedule API request failed",
        [str(e)],
    )


def _internal_error(request_log: RequestLog, e: Exception) -> HTTPException:
    logger.exception("Unexpected error handling %s", request_log.endpoint)
    request_log.status_code = 500
    request_log.error_code = ErrorCodes.INTERNAL_ERROR
    request_log.error_message = str(e)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCodes.INTERNAL_ERROR, "Internal server error")


def _finish_log(request_log: RequestLog, start_time: float) -> None:
    request_log.processing_time_ms = int((time.time() - start_time) * 1000)
    try:
        log_request(request_log)
    except Exception as e:
        logger.warning("Could not write request log %s: %s", request_log.request_id, e)


def _warning_headers(data: RangeData) -> dict[str, str]:
    # Header values must be latin-1
    if not data.load.error_message:
        return {}
    return {WARNINGS_HEADER: quote(data.load.error_message)}


# =============================================================================
# TOTALS
# =============================================================================


@router.post("/hours/totals", response_model=TotalsResponse)
async def hours_totals_endpoint(
    request: Request,
    body: TotalsRequest,
    _api_key: str = Depends(verify_api_key),
    api: ScheduleApi = Depends(get_schedule_api),
):
    """Per-row, per-day and per-group totals for the requested range."""
    start_time = time.time()
    request_log = _start_log(request, "/v1/hours/totals", body)

    try:
        validate_range(body)
        data = await load_range_data(api, body)
        _record_load_failures(request_log, data)
        context = data.context

        rows = []
        for assignment in data.assignments:
            rows.append(
                AssignmentTotal(
                    assignment_id=assignment.id,
                    worker_id=assignment.worker_id,
                    worker_name=assignment.worker_name,
                    company_id=assignment.company_id,
                    company_name=assignment.company_name,
                    total=round_to_decimals(calculate_row_total(assignment, context, data.days)),
                    hours_by_day={
                        day.date_key: round_to_decimals(resolve_hour(assignment, day.date_key, context))
                        for day in data.days
                    },
                )
            )

        day_totals = calculate_totals(data.assignments, context, data.days)
        groups = [
            GroupTotal(
                key=group.key,
                label=group.label,
                total=round_to_decimals(group.total),
                totals_by_day={k: round_to_decimals(v) for k, v in group.totals_by_day.items()},
            )
            for group in calculate_group_totals(data.assignments, context, data.days, body.group_by)
        ]

        request_log.status_code = 200
        request_log.worker_count = len({a.worker_id for a in data.assignments})
        request_log.total_hours = round_to_decimals(sum(day_totals.values()))

        return TotalsResponse(
            start=format_date_key(body.start),
            end=format_date_key(body.end),
            rows=rows,
            day_totals={k: round_to_decimals(v) for k, v in day_totals.items()},
            groups=groups,
            grand_total=request_log.total_hours,
            failed_worker_ids=data.load.failed_worker_ids,
            warning=data.load.error_message,
        )

    except HTTPException as e:
        _record_http_error(request_log, e)
        raise

    except (ScheduleApiError, httpx.HTTPError) as e:
        raise _upstream_error(request_log, e)

    except Exception as e:
        raise _internal_error(request_log, e)

    finally:
        _finish_log(request_log, start_time)


# =============================================================================
# EXPORT
# =============================================================================


@router.post("/hours/export")
async def hours_export_endpoint(
    request: Request,
    body: ExportRequest,
    _api_key: str = Depends(verify_api_key),
    api: ScheduleApi = Depends(get_schedule_api),
):
    """
    Generate the payroll workbook for the requested range.

    Returns an Excel workbook. Workers whose data could not be loaded are
    left out and named in the X-Hours-Warnings header.
    """
    start_time = time.time()
    request_log = _start_log(request, "/v1/hours/export", body)
    request_log.detail_level = body.detail_level

    try:
        validate_range(body)
        data = await load_range_data(api, body)
        _record_load_failures(request_log, data)

        # Workbook building is CPU bound
        excel_bytes, output_filename, worker_count, total_hours = await asyncio.to_thread(
            generate_hours_export_to_bytes,
            data.assignments,
            data.context,
            data.days,
            data.workers,
            data.company_lookup,
            body.start,
            body.end,
            detail_level=DetailLevel(body.detail_level),
        )

        request_log.status_code = 200
        request_log.worker_count = worker_count
        request_log.total_hours = total_hours

        headers = {"Content-Disposition": f'attachment; filename="{output_filename}"'}
        headers.update(_warning_headers(data))
        return Response(content=excel_bytes, media_type=XLSX_MEDIA_TYPE, headers=headers)

    except HTTPException as e:
        _record_http_error(request_log, e)
        raise

    except NoExportDataError as e:
        request_log.status_code = 422
        request_log.error_code = ErrorCodes.NO_EXPORT_DATA
        request_log.error_message = str(e)
        raise _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.NO_EXPORT_DATA, str(e))

    except (ScheduleApiError, httpx.HTTPError) as e:
        raise _upstream_error(request_log, e)

    except Exception as e:
        raise _internal_error(request_log, e)

    finally:
        _finish_log(request_log, start_time)


# =============================================================================
# SAVE
# =============================================================================


def build_segment_drafts(body: SaveRequest) -> SegmentsByAssignment:
    drafts: SegmentsByAssignment = {}
    for edit in body.segments:
        segments = []
        for item in edit.segments:
            segment = create_empty_segment()
            if item.id:
                segment.id = item.id
            segment.start = item.start
            segment.end = item.end
            segment.description = item.description
            segments.append(segment)
        drafts.setdefault(edit.assignment_id, {})[edit.date_key] = segments
    return drafts


def build_note_drafts(body: SaveRequest) -> NoteDrafts:
    drafts: NoteDrafts = {}
    for edit in body.notes:
        text = edit.text.strip()
        drafts[(edit.worker_id, edit.date_key)] = (
            [DayNoteEntry(id="", text=text, lines=[text])] if text else []
        )
    return drafts


@router.post("/hours/save", response_model=SaveResponse)
async def hours_save_endpoint(
    request: Request,
    body: SaveRequest,
    _api_key: str = Depends(verify_api_key),
    api: ScheduleApi = Depends(get_schedule_api),
):
    """
    Send changed hours and notes back to the schedule API.

    With dry_run the payload is only built and returned.
    """
    start_time = time.time()
    request_log = _start_log(request, "/v1/hours/save", body)

    try:
        validate_range(body)
        data = await load_range_data(api, body)
        _record_load_failures(request_log, data)

        payload = build_save_payload(
            data.assignments,
            data.context,
            data.days,
            build_segment_drafts(body),
            build_note_drafts(body),
        )
        if payload.item_count == 0:
            raise _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.NO_CHANGES, NO_CHANGES_MESSAGE)

        sent = 0
        if not body.dry_run:
            sent = await save_payload(api.client, payload, api.base_url)

        request_log.status_code = 200
        request_log.worker_count = len(payload.by_worker)

        return SaveResponse(
            items=payload.item_count,
            workers=len(payload.by_worker),
            sent=sent > 0,
            payload={worker_id: payload.ordered(worker_id) for worker_id in payload.by_worker},
        )

    except HTTPException as e:
        _record_http_error(request_log, e)
        raise

    except (ScheduleApiError, httpx.HTTPError) as e:
        raise _upstream_error(request_log, e)

    except Exception as e:
        raise _internal_error(request_log, e)

    finally:
        _finish_log(request_log, start_time)
