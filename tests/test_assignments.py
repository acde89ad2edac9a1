"""Tests for directory parsing, assignment generation and rates."""

from models.hours import Assignment, DayNoteEntry, Worker
from services.assignments import (
    generate_assignments,
    note_applies_to_assignment,
    parse_company_lookup,
    parse_worker,
    resolve_entries_for_assignment,
    resolve_hourly_rate,
)
from services.schedule import build_worker_weekly_data


def test_parse_company_lookup(company_records):
    assert parse_company_lookup(company_records + [{"name": "sin id"}, {"id": "c3"}]) == {
        "c1": "Obras Norte",
        "c2": "Reformas Sur",
        "c3": "c3",
    }


class TestParseWorker:
    def test_contracts_grouped_by_company(self, workers):
        ana = workers[0]
        assert ana.name == "Ana López"
        assert ana.hourly_rate == 15.0
        assert ana.company_names == ["Obras Norte", "Reformas Sur"]
        norte = ana.company_contracts["Obras Norte"][0]
        assert norte.hourly_rate == 18.5
        assert norte.has_contract
        assert not ana.company_contracts["Reformas Sur"][0].has_contract

    def test_missing_id(self):
        assert parse_worker({"name": "Sin id"}) is None

    def test_unnamed(self):
        assert parse_worker({"id": 7}).name == "Trabajador sin nombre"

    def test_company_relations(self):
        worker = parse_worker(
            {"id": "w9", "name": "Eva", "companyRelations": [{"companyId": "c1", "companyName": "Obras Norte", "id": "cr1"}]}
        )
        assert worker.company_relations[0].relation_id == "cr1"


class TestGenerateAssignments:
    def test_relations_win(self, company_lookup):
        worker = parse_worker(
            {
                "id": "w9",
                "name": "Eva",
                "companyRelations": [{"companyId": "c2"}, {"companyName": "Taller Este"}],
                "parameterRelations": [{"companyId": "c1", "type": 1}],
            },
            company_lookup,
        )
        result = generate_assignments([worker], company_lookup)
        assert [(a.id, a.company_id, a.company_name) for a in result] == [
            ("c2-w9-0", "c2", "Reformas Sur"),
            ("taller-este-w9-1", "taller-este", "Taller Este"),
        ]

    def test_company_names_use_fallback_id(self):
        worker = Worker(id="w5", name="Leo", companies="c1", company_names=["Obras"])
        result = generate_assignments([worker], {"c1": "Obras Norte"})
        assert [(a.id, a.company_name) for a in result] == [("c1-w5", "Obras Norte")]

    def test_fallback_to_unassigned(self):
        result = generate_assignments([Worker(id="w6", name="Mar")])
        assert result[0].company_id == "sin-empresa"
        assert result[0].company_name == "Sin empresa asignada"


class TestRates:
    def test_contract_rate_then_worker_rate(self, workers, assignments, company_lookup):
        ana = workers[0]
        assert resolve_hourly_rate(ana, assignments[0], company_lookup) == 18.5
        assert resolve_hourly_rate(ana, assignments[1], company_lookup) == 15.0

    def test_match_by_name(self, workers):
        assignment = Assignment(id="a", worker_id="w1", worker_name="Ana", company_id="other", company_name="OBRAS NORTE")
        assert resolve_hourly_rate(workers[0], assignment) == 18.5

    def test_unknown_worker(self, assignments):
        assert resolve_hourly_rate(None, assignments[0]) is None


def test_resolve_entries_for_assignment(hour_records, company_lookup, assignments):
    data = build_worker_weekly_data(hour_records["w1"], company_lookup=company_lookup, offset_hours=2)
    monday = data.days["2024-01-01"]
    assert [e.id for e in resolve_entries_for_assignment(monday, assignments[0])] == ["r1"]
    assert [e.id for e in resolve_entries_for_assignment(monday, assignments[1])] == ["r2"]
    assert resolve_entries_for_assignment(None, assignments[0]) == []


class TestNoteApplies:
    def test_note_without_company_applies(self, assignments):
        assert note_applies_to_assignment(DayNoteEntry(id="n", text="x"), assignments[0])

    def test_matching_company(self, assignments):
        note = DayNoteEntry(id="n", text="x", company_id="c2", company_name="Reformas Sur")
        assert note_applies_to_assignment(note, assignments[1])
        assert not note_applies_to_assignment(note, assignments[0])

    def test_matching_name(self, assignments):
        note = DayNoteEntry(id="n", text="x", company_id="zz", company_name="obras norte")
        assert note_applies_to_assignment(note, assignments[0])
