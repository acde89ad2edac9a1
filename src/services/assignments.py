"""
Assignments and hourly rates from the worker directory.

Parses the directory feed (workers and companies), builds the
(worker, company) assignments shown in the hours grid and resolves the hourly
rate that applies to each of them.
"""

from core.companies import (
    is_unassigned_company_id,
    is_unassigned_company_name,
    lookup_company_name,
    normalize_company_label,
    normalize_key_part,
    resolve_company,
    slugify,
)
from core.config import UNASSIGNED_COMPANY_ID, UNASSIGNED_COMPANY_LABEL, UNNAMED_WORKER_LABEL
from core.values import parse_numeric, pick_first_defined, pick_first_string
from models.hours import (
    Assignment,
    CompanyRelation,
    DayNoteEntry,
    DayScheduleEntry,
    Worker,
    WorkerContract,
    WorkerWeeklyDayData,
)
from services.schedule import sort_key

WORKER_ID_KEYS = ["id", "parameterId", "workerId"]
WORKER_NAME_KEYS = ["name", "fullName", "label", "description", "workerName", "firstName"]
COMPANY_RECORD_ID_KEYS = ["id", "parameterId"]
COMPANY_RECORD_NAME_KEYS = ["name", "description", "label"]

RELATION_ID_KEYS = ["parameterRelationId", "relationId", "id"]
RELATION_TYPE_KEYS = ["type", "relationType", "contractType", "typeId", "type_id"]
RELATION_COMPANY_ID_KEYS = ["companyId", "company_id", "companyIdContract"]
RELATION_COMPANY_NAME_KEYS = ["companyName", "company", "companyLabel"]
RELATION_RATE_KEYS = ["hourlyRate", "amount", "rate"]
RELATION_LABEL_KEYS = ["label", "name", "relationName", "contractName"]

CONTRACT_RELATION_TYPE = 1


# =============================================================================
# DIRECTORY PARSING
# =============================================================================


def parse_company_lookup(records: list[dict]) -> dict[str, str]:
    """Build a company id -> name map from /parameter/list?types=1 records."""
    lookup: dict[str, str] = {}
    for record in records or []:
        company_id = pick_first_string(record, COMPANY_RECORD_ID_KEYS)
        if company_id is None:
            continue
        lookup[company_id] = pick_first_string(record, COMPANY_RECORD_NAME_KEYS) or company_id
    return lookup


def _parse_relation_type(relation: dict) -> int | None:
    value = parse_numeric(pick_first_defined(relation, RELATION_TYPE_KEYS))
    return int(value) if value is not None else None


def parse_worker(record: dict, company_lookup: dict[str, str] | None = None) -> Worker | None:
    """
    Parse one worker record of the directory feed.

    Contracts come from parameterRelations and are grouped by company name.
    Returns None for records without an id.
    """
    worker_id = pick_first_string(record, WORKER_ID_KEYS)
    if worker_id is None:
        return None

    worker = Worker(
        id=worker_id,
        name=pick_first_string(record, WORKER_NAME_KEYS) or UNNAMED_WORKER_LABEL,
        hourly_rate=parse_numeric(pick_first_defined(record, ["hourlyRate", "rate"])),
        companies=pick_first_string(record, ["companies", "companyList"]),
    )

    company_names: set[str] = set()
    relations = record.get("parameterRelations")
    for relation in relations if isinstance(relations, list) else []:
        if not isinstance(relation, dict):
            continue
        relation_type = _parse_relation_type(relation)
        company_id = pick_first_string(relation, RELATION_COMPANY_ID_KEYS)
        company_name = (
            lookup_company_name(company_lookup, company_id)
            or pick_first_string(relation, RELATION_COMPANY_NAME_KEYS)
            or company_id
        )
        if not company_name:
            continue

        company_names.add(company_name)
        contract = WorkerContract(
            id=pick_first_string(relation, RELATION_ID_KEYS) or f"{worker_id}-{company_id}-{relation_type}",
            company_id=company_id,
            company_name=company_name,
            hourly_rate=parse_numeric(pick_first_defined(relation, RELATION_RATE_KEYS)),
            has_contract=relation_type == CONTRACT_RELATION_TYPE,
            relation_type=relation_type,
            label=pick_first_string(relation, RELATION_LABEL_KEYS),
        )
        worker.company_contracts.setdefault(company_name, []).append(contract)

    company_relations = record.get("companyRelations")
    for relation in company_relations if isinstance(company_relations, list) else []:
        if not isinstance(relation, dict):
            continue
        worker.company_relations.append(
            CompanyRelation(
                company_id=pick_first_string(relation, RELATION_COMPANY_ID_KEYS),
                company_name=pick_first_string(relation, RELATION_COMPANY_NAME_KEYS),
                relation_id=pick_first_string(relation, RELATION_ID_KEYS),
            )
        )

    worker.company_names = sorted(company_names, key=sort_key)
    return worker


def parse_workers(records: list[dict], company_lookup: dict[str, str] | None = None) -> list[Worker]:
    workers = []
    for record in records or []:
        if not isinstance(record, dict):
            continue
        worker = parse_worker(record, company_lookup)
        if worker is not None:
            workers.append(worker)
    return workers


# =============================================================================
# ASSIGNMENT GENERATION
# =============================================================================


def with_normalized_company(assignment: Assignment) -> Assignment:
    identity = resolve_company(assignment.company_id, assignment.company_name)
    assignment.company_id = identity.id
    assignment.company_name = identity.name
    return assignment


def _lookup_first(company_lookup: dict[str, str], *keys: str | None) -> str | None:
    for key in keys:
        name = lookup_company_name(company_lookup, key)
        if name:
            return name
    return None


def generate_assignments(workers: list[Worker], company_lookup: dict[str, str] | None = None) -> list[Assignment]:
    """
    Build the (worker, company) rows of the hours grid.

    Per worker the first non-empty source wins: explicit company relations,
    then contracts, then company names, then a single fallback row.
    """
    company_lookup = company_lookup or {}
    assignments: list[Assignment] = []

    for worker in workers:
        def add(company_id: str, company_name: str, suffix: str = "") -> None:
            assignments.append(
                Assignment(
                    id=f"{company_id}-{worker.id}{suffix}",
                    worker_id=worker.id,
                    worker_name=worker.name,
                    company_id=company_id,
                    company_name=company_name,
                )
            )

        if worker.company_relations:
            for index, relation in enumerate(worker.company_relations):
                name = (relation.company_name or "").strip()
                display_name = (
                    name
                    or _lookup_first(company_lookup, relation.relation_id, relation.company_id)
                    or relation.company_id
                    or relation.relation_id
                    or UNASSIGNED_COMPANY_LABEL
                )
                company_id = relation.company_id or relation.relation_id or slugify(display_name)
                add(company_id, display_name, f"-{index}")
            continue

        if worker.company_contracts:
            for contract_key, contracts in worker.company_contracts.items():
                name = contract_key.strip()
                contract_company_id = contracts[0].company_id if contracts else None
                display_name = (
                    _lookup_first(company_lookup, contract_company_id)
                    or name
                    or contract_company_id
                    or UNASSIGNED_COMPANY_LABEL
                )
                add(contract_company_id or slugify(display_name), display_name)
            continue

        fallback_id = (worker.companies or "").strip() or None
        if worker.company_names:
            for company_name in worker.company_names:
                name = company_name.strip()
                display_name = (
                    _lookup_first(company_lookup, fallback_id)
                    or name
                    or fallback_id
                    or UNASSIGNED_COMPANY_LABEL
                )
                add(fallback_id or slugify(display_name), display_name)
            continue

        display_name = _lookup_first(company_lookup, fallback_id) or fallback_id or UNASSIGNED_COMPANY_LABEL
        add(fallback_id or f"{UNASSIGNED_COMPANY_ID}-{worker.id}", display_name)

    return [with_normalized_company(assignment) for assignment in assignments]


# =============================================================================
# HOURLY RATES
# =============================================================================


def collect_contracts_matching_assignment(
    worker: Worker,
    assignment: Assignment,
    company_lookup: dict[str, str] | None = None,
) -> list[WorkerContract]:
    """
    Contracts of the worker that belong to the assignment's company.

    A contract matches on normalized company id, on normalized contract
    company name, on the name its id maps to in the lookup, or when it is
    filed under a key equal to the assignment's company name.
    """
    assignment_name = normalize_company_label(assignment.company_name)
    assignment_id = normalize_key_part(assignment.company_id)

    matches = []
    for contract_key, contracts in worker.company_contracts.items():
        matches_key_name = bool(assignment_name) and normalize_company_label(contract_key) == assignment_name
        for contract in contracts:
            contract_id = normalize_key_part(contract.company_id)
            lookup_name = normalize_company_label(lookup_company_name(company_lookup, contract.company_id))
            contract_name = normalize_company_label(contract.company_name)

            matches_id = bool(assignment_id) and contract_id == assignment_id
            matches_name = bool(assignment_name) and (
                contract_name == assignment_name
                or lookup_name == assignment_name
                or matches_key_name
            )
            if matches_id or matches_name:
                matches.append(contract)
    return matches


def resolve_hourly_rate(
    worker: Worker | None,
    assignment: Assignment,
    company_lookup: dict[str, str] | None = None,
) -> float | None:
    """
    Rate for an assignment: first matching contract with a rate, else the
    worker's own rate, else None.
    """
    if worker is None:
        return None
    for contract in collect_contracts_matching_assignment(worker, assignment, company_lookup):
        if contract.hourly_rate is not None:
            return contract.hourly_rate
    return worker.hourly_rate


# =============================================================================
# TRACKED DATA PER ASSIGNMENT
# =============================================================================


def resolve_entries_for_assignment(
    day_data: WorkerWeeklyDayData | None,
    assignment: Assignment,
) -> list[DayScheduleEntry]:
    """Tracked entries of a day that belong to the assignment's company."""
    if day_data is None or not day_data.entries:
        return []

    assignment_id = normalize_key_part(assignment.company_id)
    assignment_name = normalize_company_label(assignment.company_name)
    if not assignment_id and not assignment_name:
        return list(day_data.entries)

    matches = []
    for entry in day_data.entries:
        entry_id = normalize_key_part(entry.company_id)
        entry_name = normalize_company_label(entry.company_name)
        if (assignment_id and entry_id == assignment_id) or (assignment_name and entry_name == assignment_name):
            matches.append(entry)
    return matches


def note_applies_to_assignment(note: DayNoteEntry, assignment: Assignment) -> bool:
    """
    Whether a day note should be shown on the assignment's row.

    Notes without a company, or with an unassigned one, apply to every row.
    """
    if is_unassigned_company_id(note.company_id):
        return True
    if normalize_key_part(note.company_id) == normalize_key_part(assignment.company_id):
        return True
    note_name = normalize_company_label(note.company_name)
    if note_name is None:
        return False
    if is_unassigned_company_name(note_name):
        return True
    return note_name == normalize_company_label(assignment.company_name)
