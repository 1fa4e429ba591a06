import logging
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session

from esgmetrics.adapters import SQLAlchemyRowSource
from esgmetrics.errors import RowSourceError
from esgmetrics.service import AnalyticsService

SCHEMA = [
    """
    CREATE TABLE employees (
        id TEXT PRIMARY KEY, company_id TEXT, full_name TEXT, gender TEXT, department TEXT,
        position TEXT, location TEXT, hire_date TEXT, status TEXT
    )
    """,
    """
    CREATE TABLE training_programs (
        id TEXT PRIMARY KEY, name TEXT, category TEXT, duration_hours REAL, is_mandatory INTEGER
    )
    """,
    """
    CREATE TABLE employee_trainings (
        id TEXT PRIMARY KEY, company_id TEXT, employee_id TEXT, training_program_id TEXT,
        completion_date TEXT, status TEXT
    )
    """,
    """
    CREATE TABLE non_conformities (
        id TEXT PRIMARY KEY, company_id TEXT, title TEXT, severity TEXT, status TEXT, source TEXT,
        created_at TEXT, due_date TEXT, completion_date TEXT
    )
    """,
]

ROWS = [
    "INSERT INTO employees VALUES ('e1', 'acme', 'Ana', 'F', 'Ops', 'Analista', 'SP', '2024-03-01', 'Ativo')",
    "INSERT INTO employees VALUES ('e2', 'acme', 'Bruno', 'M', 'Ops', 'Técnico', 'SP', NULL, 'Desligado')",
    "INSERT INTO employees VALUES ('e3', 'globex', 'Carla', 'F', 'HR', NULL, NULL, NULL, 'Ativo')",
    "INSERT INTO training_programs VALUES ('tp1', 'NR-35', 'SST', 8, 1)",
    "INSERT INTO training_programs VALUES ('tp2', 'ESG 101', NULL, NULL, 0)",
    "INSERT INTO employee_trainings VALUES ('t1', 'acme', 'e1', 'tp1', '2026-01-10', 'Concluído')",
    "INSERT INTO employee_trainings VALUES ('t2', 'acme', 'e1', 'tp2', '2026-02-01', 'Concluído')",
    "INSERT INTO employee_trainings VALUES ('t3', 'acme', 'e1', 'tp1', '2026-02-15', 'Pendente')",
    "INSERT INTO employee_trainings VALUES ('t4', 'acme', 'e1', 'tp1', '2025-12-31', 'Concluído')",
    "INSERT INTO employee_trainings VALUES ('t5', 'globex', 'e3', 'tp1', '2026-01-10', 'Concluído')",
    """
    INSERT INTO non_conformities VALUES
    ('n1', 'acme', 'Vazamento', 'Alta', 'Fechada', 'Auditoria', '2026-01-05T10:00:00Z', '2026-01-20', '2026-01-08T10:00:00Z')
    """,
]


@pytest.fixture()
def session():
    engine = create_engine("sqlite://")
    with Session(engine) as db:
        for statement in SCHEMA + ROWS:
            db.execute(text(statement))
        yield db


def test_fetch_active_employees(session):
    repo = SQLAlchemyRowSource(session)

    employees = repo.fetch_employees("acme")

    assert [employee.id for employee in employees] == ["e1"]
    assert employees[0].hire_date == date(2024, 3, 1)
    assert employees[0].tenant_id == "acme"
    assert len(repo.fetch_employees("acme", active_only=False)) == 2


def test_fetch_completed_trainings_in_range(session):
    repo = SQLAlchemyRowSource(session)

    trainings = repo.fetch_training_records("acme", date(2026, 1, 1), date(2026, 2, 28))

    assert [training.id for training in trainings] == ["t1", "t2"]
    assert trainings[0].completion_date == date(2026, 1, 10)
    assert trainings[0].duration_hours == 8
    assert trainings[0].is_mandatory is True
    assert trainings[0].employee_name == "Ana"
    assert trainings[0].department == "Ops"
    assert trainings[1].category is None
    assert trainings[1].duration_hours is None


def test_fetch_non_conformities_parses_timestamps(session):
    repo = SQLAlchemyRowSource(session)

    (nc,) = repo.fetch_non_conformities("acme")

    assert nc.created_at.year == 2026
    assert nc.created_at.utcoffset().total_seconds() == 0
    assert nc.completion_date > nc.created_at
    assert nc.due_date == date(2026, 1, 20)
    assert repo.fetch_non_conformities("globex") == []


def test_query_failures_become_row_source_errors(session):
    repo = SQLAlchemyRowSource(session)

    with pytest.raises(RowSourceError, match="audits"):
        repo.fetch_audits("acme")


def test_repository_and_service_together(session):
    service = AnalyticsService(SQLAlchemyRowSource(session))

    result = service.get_training_hours_metrics(
        "acme", date(2026, 1, 1), date(2026, 2, 28), now=datetime(2026, 3, 1)
    )

    assert result["total_training_hours"] == 8
    assert result["trainings_without_duration"] == 1
    assert result["total_employees"] == 1
    assert result["by_category"][0]["category"] == "SST"


def test_fetch_trainings_without_bounds(session):
    trainings = SQLAlchemyRowSource(session).fetch_training_records("acme")

    assert [training.id for training in trainings] == ["t4", "t1", "t2"]


def test_integer_company_ids_map_to_string_tenants(session):
    session.execute(
        text(
            """
            CREATE TABLE social_projects (
                id INTEGER PRIMARY KEY, company_id INTEGER, name TEXT, description TEXT, status TEXT,
                budget REAL, invested_amount REAL, beneficiaries INTEGER, start_date TEXT
            )
            """
        )
    )
    session.execute(text("INSERT INTO social_projects VALUES (1, 42, 'Horta', NULL, 'Ativo', 100, 80, 12, '2026-01-10')"))
    repo = SQLAlchemyRowSource(session)

    (project,) = repo.fetch_social_projects("42")
    metrics = AnalyticsService(repo).get_social_project_metrics("42")

    assert project.id == "1"
    assert project.tenant_id == "42"
    assert metrics["total_investment"] == 80
    assert metrics["total_beneficiaries"] == 12


def test_non_conformities_without_creation_date_are_skipped(session, caplog):
    session.execute(text("INSERT INTO non_conformities VALUES ('n2', 'acme', 'Sem data', 'Baixa', 'Aberta', NULL, NULL, NULL, NULL)"))
    session.execute(text("INSERT INTO non_conformities VALUES ('n3', 'acme', 'Vazio', 'Baixa', 'Aberta', NULL, '', NULL, NULL)"))

    with caplog.at_level(logging.WARNING, logger="esgmetrics.adapters.sqlalchemy_repo"):
        ncs = SQLAlchemyRowSource(session).fetch_non_conformities("acme")

    assert [nc.id for nc in ncs] == ["n1"]
    assert "n2 has no creation date" in caplog.text
    assert "n3 has no creation date" in caplog.text


def test_naive_timestamps_sort_with_aware_ones(session):
    session.execute(
        text("INSERT INTO non_conformities VALUES ('n4', 'acme', 'Ruído', 'Média', 'Aberta', NULL, '2026-02-03 08:00:00', NULL, NULL)")
    )
    repo = SQLAlchemyRowSource(session)

    ncs = repo.fetch_non_conformities("acme")
    dashboard = AnalyticsService(repo).get_non_conformity_dashboard(
        "acme", now=datetime(2026, 2, 10, tzinfo=timezone.utc)
    )

    assert all(nc.created_at.tzinfo is not None for nc in ncs)
    assert [item["id"] for item in dashboard["recent"]] == ["n4", "n1"]
    assert dashboard["metrics"]["current_month"] == 1


def test_naive_timestamps_use_the_store_timezone(session):
    session.execute(
        text("INSERT INTO non_conformities VALUES ('n4', 'acme', 'Ruído', 'Média', 'Aberta', NULL, '2026-02-03 08:00:00', NULL, NULL)")
    )
    brasilia = timezone(timedelta(hours=-3))

    ncs = SQLAlchemyRowSource(session, store_tz=brasilia).fetch_non_conformities("acme")

    by_id = {nc.id: nc for nc in ncs}
    assert by_id["n4"].created_at.utcoffset() == timedelta(hours=-3)
    assert by_id["n1"].created_at.utcoffset() == timedelta(0)


def test_fetch_whistleblower_reports_in_range(session):
    session.execute(
        text(
            """
            CREATE TABLE whistleblower_reports (
                id TEXT PRIMARY KEY, company_id TEXT, status TEXT, category TEXT, priority TEXT,
                is_anonymous INTEGER, created_at TEXT, closed_at TEXT
            )
            """
        )
    )
    for statement in [
        "INSERT INTO whistleblower_reports VALUES ('w1', 'acme', 'Resolvida', 'Fraude', 'Alta', 1, '2026-01-05T10:00:00Z', '2026-01-15T10:00:00Z')",
        "INSERT INTO whistleblower_reports VALUES ('w2', 'acme', 'Aberta', 'Assédio', NULL, 0, '2026-01-31 23:00:00', NULL)",
        "INSERT INTO whistleblower_reports VALUES ('w3', 'acme', 'Aberta', 'Assédio', NULL, 0, '2026-02-10T10:00:00Z', NULL)",
        "INSERT INTO whistleblower_reports VALUES ('w4', 'globex', 'Aberta', NULL, NULL, 0, '2026-01-07T10:00:00Z', NULL)",
    ]:
        session.execute(text(statement))

    reports = SQLAlchemyRowSource(session).fetch_whistleblower_reports("acme", date(2026, 1, 1), date(2026, 1, 31))

    assert [report.id for report in reports] == ["w1", "w2"]
    assert reports[0].is_anonymous is True
    assert reports[0].closed_at.utcoffset() == timedelta(0)
    assert reports[1].created_at.tzinfo is not None
    assert reports[1].closed_at is None
