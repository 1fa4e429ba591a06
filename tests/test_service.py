import logging
from datetime import date, datetime, timezone

import pytest

from esgmetrics.adapters import InMemoryRowSource
from esgmetrics.config import Settings
from esgmetrics.errors import (
    ConfigurationError,
    InvalidPeriodError,
    RowSourceError,
    TenantMismatchError,
)
from esgmetrics.filters import ReportFilters
from esgmetrics.models import (
    Employee,
    NonConformity,
    SafetyIncident,
    SocialProject,
    TrainingRecord,
    WhistleblowerReport,
)
from esgmetrics.service import AnalyticsService


class FakeRepo:
    def __init__(self, tenant_id="acme"):
        self.tenant_id = tenant_id
        self.training_ranges = []
        self.incident_range = None
        self.active_only = None

    def fetch_employees(self, tenant_id, active_only=True):
        self.active_only = active_only
        return [Employee("e1", self.tenant_id, "Ana", department="Ops")]

    def fetch_training_records(self, tenant_id, start_date, end_date):
        self.training_ranges.append((start_date, end_date))
        return [
            TrainingRecord("t1", self.tenant_id, "e1", start_date, duration_hours=4),
            TrainingRecord("t2", self.tenant_id, "e1", end_date, duration_hours=None),
        ]

    def fetch_non_conformities(self, tenant_id):
        return []

    def fetch_action_plans(self, tenant_id):
        return []

    def fetch_quality_risks(self, tenant_id):
        return []

    def fetch_social_projects(self, tenant_id):
        return [SocialProject("s1", self.tenant_id, "Horta", budget=10, invested_amount=5)]

    def fetch_safety_incidents(self, tenant_id, start_date, end_date):
        self.incident_range = (start_date, end_date)
        return [SafetyIncident("i1", self.tenant_id, date(2025, 4, 2), days_lost=1)]

    def fetch_audits(self, tenant_id):
        return []


class CompleteRepo(FakeRepo):
    def fetch_training_records(self, tenant_id, start_date, end_date):
        self.training_ranges.append((start_date, end_date))
        return [
            TrainingRecord("t1", self.tenant_id, "e1", start_date, duration_hours=4),
            TrainingRecord("t2", self.tenant_id, "e1", end_date, duration_hours=4),
        ]


class BrokenRepo(FakeRepo):
    def fetch_non_conformities(self, tenant_id):
        raise RowSourceError("could not read non_conformities")


def test_service_uses_explicit_period():
    repo = FakeRepo()
    service = AnalyticsService(repo)
    start = date(2026, 1, 1)
    end = date(2026, 3, 1)

    result = service.get_training_hours_metrics("acme", start, end, now=datetime(2026, 3, 2, tzinfo=timezone.utc))

    assert repo.training_ranges == [(start, end), (date(2025, 11, 3), start)]
    assert result["period"] == {"start": "2026-01-01", "end": "2026-03-01"}
    assert result["total_training_hours"] == 4
    assert result["trainings_without_duration"] == 1


def test_previous_period_end_is_exclusive():
    service = AnalyticsService(CompleteRepo())

    result = service.get_training_hours_metrics(
        "acme", date(2026, 1, 1), date(2026, 3, 1), now=datetime(2026, 3, 2, tzinfo=timezone.utc)
    )

    # Sessions dated on the current start belong to the current period only.
    assert result["total_training_hours"] == 8
    assert result["comparison"]["previous_period_avg"] == 4.0
    assert result["comparison"]["change_percentage"] == 100


def test_default_period_ends_today_in_reporting_timezone():
    repo = FakeRepo()
    service = AnalyticsService(repo, Settings(default_period_days=30))

    service.get_training_hours_metrics("acme", now=datetime(2026, 5, 31, 23, 0, tzinfo=timezone.utc))

    assert repo.training_ranges[0] == (date(2026, 5, 1), date(2026, 5, 31))


def test_inverted_period_is_rejected_before_fetching():
    repo = FakeRepo()
    service = AnalyticsService(repo)

    with pytest.raises(InvalidPeriodError):
        service.get_training_hours_metrics("acme", date(2026, 3, 1), date(2026, 1, 1))

    assert repo.training_ranges == []


def test_missing_durations_are_logged(caplog):
    service = AnalyticsService(FakeRepo())

    with caplog.at_level(logging.WARNING, logger="esgmetrics.service"):
        service.get_training_hours_metrics("acme", date(2026, 1, 1), date(2026, 1, 31))

    assert "have no duration" in caplog.text


def test_rows_of_another_tenant_are_rejected():
    service = AnalyticsService(FakeRepo(tenant_id="globex"))

    with pytest.raises(TenantMismatchError) as excinfo:
        service.get_social_project_metrics("acme")

    assert excinfo.value.expected == "acme"
    assert excinfo.value.found == "globex"


def test_tenant_is_required():
    service = AnalyticsService(FakeRepo())

    with pytest.raises(ValueError):
        service.get_social_project_metrics("")


def test_row_source_errors_propagate():
    service = AnalyticsService(BrokenRepo())

    with pytest.raises(RowSourceError):
        service.get_quality_dashboard("acme")


def test_safety_metrics_read_the_calendar_year():
    repo = FakeRepo()
    service = AnalyticsService(repo)

    result = service.get_safety_metrics("acme", 2025)

    assert repo.incident_range == (date(2025, 1, 1), date(2025, 12, 31))
    assert result["monthly"][3]["incidents"] == 1


def test_workforce_stats_include_inactive_employees():
    repo = FakeRepo()

    AnalyticsService(repo).get_workforce_stats("acme")

    assert repo.active_only is False


def test_tenants_never_see_each_other():
    source = InMemoryRowSource(
        [
            Employee("e1", "acme", "Ana"),
            Employee("e2", "globex", "Bruno"),
            TrainingRecord("t1", "acme", "e1", date(2026, 1, 10), duration_hours=6),
            TrainingRecord("t2", "globex", "e2", date(2026, 1, 10), duration_hours=60),
            NonConformity("n1", "globex", "Vazamento", "Alta", "Aberta", datetime(2026, 1, 3, tzinfo=timezone.utc)),
        ]
    )
    service = AnalyticsService(source)

    training = service.get_training_hours_metrics("acme", date(2026, 1, 1), date(2026, 1, 31))
    quality = service.get_non_conformity_stats("acme")

    assert training["total_training_hours"] == 6
    assert training["total_employees"] == 1
    assert quality["total"] == 0


def test_empty_tenant_returns_zeros():
    service = AnalyticsService(InMemoryRowSource())
    now = datetime(2026, 1, 15, tzinfo=timezone.utc)

    training = service.get_training_hours_metrics("acme", now=now)
    report = service.get_training_hours_report("acme", ReportFilters(department="Ops"))
    quality = service.get_quality_dashboard("acme", now=now)

    assert training["total_training_hours"] == 0
    assert report["summary"]["employee_count"] == 0
    assert report["by_department"] == []
    assert quality["metrics"]["quality_score"] == 100


def test_report_without_dates_reads_every_session():
    today = date.today()
    source = InMemoryRowSource(
        [
            Employee("e1", "acme", "Ana", department="Ops"),
            TrainingRecord("t1", "acme", "e1", date(2020, 1, 1), duration_hours=10),
            TrainingRecord("t2", "acme", "e1", today, duration_hours=5),
        ]
    )

    report = AnalyticsService(source).get_training_hours_report("acme")

    assert report["summary"]["total_hours"] == 15
    assert report["summary"]["sessions"] == 2
    assert report["filters"]["start_date"] is None
    assert report["filters"]["end_date"] is None


def test_report_dates_bound_the_fetch():
    repo = FakeRepo()
    filters = ReportFilters(start_date=date(2026, 1, 1), end_date=date(2026, 1, 31))

    AnalyticsService(repo).get_training_hours_report("acme", filters)

    assert repo.training_ranges == [(date(2026, 1, 1), date(2026, 1, 31))]


def test_whistleblower_metrics_compare_with_previous_period():
    source = InMemoryRowSource(
        [
            Employee("e1", "acme", "Ana"),
            Employee("e2", "acme", "Bruno"),
            WhistleblowerReport(
                "w1", "acme", datetime(2026, 1, 1, 9, tzinfo=timezone.utc), "Resolvida", "Assédio",
                closed_at=datetime(2026, 1, 11, 9, tzinfo=timezone.utc),
            ),
            WhistleblowerReport("w2", "acme", datetime(2026, 2, 10, tzinfo=timezone.utc), "Em Investigação", "Fraude"),
            WhistleblowerReport("w3", "acme", datetime(2025, 12, 31, tzinfo=timezone.utc), "Aberta", "Fraude"),
            WhistleblowerReport("w4", "acme", datetime(2025, 10, 1, tzinfo=timezone.utc), "Aberta", "Fraude"),
            WhistleblowerReport("w5", "globex", datetime(2026, 1, 5, tzinfo=timezone.utc), "Aberta"),
        ]
    )

    result = AnalyticsService(source).get_whistleblower_metrics(
        "acme", date(2026, 1, 1), date(2026, 3, 1), now=datetime(2026, 3, 2, tzinfo=timezone.utc)
    )

    assert result["total_reports"] == 2
    assert result["resolution_rate"] == 50.0
    assert result["avg_resolution_days"] == 10.0
    assert result["comparison"]["previous_period_total"] == 1
    assert result["comparison"]["change_percentage"] == 100.0
    assert result["compliance"]["channel_utilization_rate"] == 100.0


def test_sustainable_investment_growth_over_previous_period():
    source = InMemoryRowSource(
        [
            SocialProject("p1", "acme", "Energia renovável", "Ativo", invested_amount=100, start_date=date(2026, 1, 10)),
            SocialProject("p2", "acme", "Horta", "Concluído", invested_amount=50, start_date=date(2025, 12, 1)),
            SocialProject("p3", "acme", "Biblioteca", "Ativo", invested_amount=70, start_date=date(2024, 1, 1)),
        ]
    )

    result = AnalyticsService(source).get_sustainable_investment(
        "acme",
        date(2026, 1, 1),
        date(2026, 3, 1),
        annual_revenue=1000,
        now=datetime(2026, 3, 2, tzinfo=timezone.utc),
    )

    assert result["total_investment"] == 100
    assert result["comparison"]["previous_period_investment"] == 50
    assert result["comparison"]["investment_growth_percentage"] == 100.0
    assert result["investment_percentage_revenue"] == 10.0
    assert result["compliance"]["gri_201_1"] is True


def test_settings_from_environment():
    settings = Settings.from_env(
        {
            "ESGMETRICS_DEFAULT_PERIOD_DAYS": "90",
            "ESGMETRICS_TRAINING_BENCHMARK": "32.5",
            "ESGMETRICS_DATABASE_URL": "sqlite://",
        }
    )

    assert settings.default_period_days == 90
    assert settings.training_benchmark_hours == 32.5
    assert settings.database_url == "sqlite://"
    assert settings.tzinfo is timezone.utc


def test_settings_defaults():
    settings = Settings.from_env({})

    assert settings.default_period_days == 365
    assert settings.training_benchmark_hours == 40.0
    assert settings.database_url is None


def test_invalid_settings_are_rejected():
    with pytest.raises(ConfigurationError):
        Settings.from_env({"ESGMETRICS_DEFAULT_PERIOD_DAYS": "a year"})

    with pytest.raises(ConfigurationError):
        Settings.from_env({"ESGMETRICS_DEFAULT_PERIOD_DAYS": "0"})

    with pytest.raises(ConfigurationError):
        Settings(timezone="Mars/Olympus_Mons")
