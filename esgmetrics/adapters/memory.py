"""In-memory row source for fixtures, demos and tests."""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models import (
    ActionPlan,
    Audit,
    Employee,
    NonConformity,
    QualityRisk,
    SafetyIncident,
    SocialProject,
    TrainingRecord,
    WhistleblowerReport,
)

ACTIVE_STATUS = "Ativo"


class InMemoryRowSource:
    """Holds records of any number of tenants and serves them per tenant."""

    def __init__(self, records: Iterable = ()):
        self._records: Dict[type, List] = defaultdict(list)
        self.add(*records)

    def add(self, *records) -> None:
        for record in records:
            self._records[type(record)].append(record)

    def fetch_employees(self, tenant_id: str, active_only: bool = True) -> Sequence[Employee]:
        return [
            employee
            for employee in self._for_tenant(Employee, tenant_id)
            if not active_only or employee.status == ACTIVE_STATUS
        ]

    def fetch_training_records(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[TrainingRecord]:
        return [
            training
            for training in self._for_tenant(TrainingRecord, tenant_id)
            if _within(training.completion_date, start_date, end_date)
        ]

    def fetch_non_conformities(self, tenant_id: str) -> Sequence[NonConformity]:
        return sorted(self._for_tenant(NonConformity, tenant_id), key=lambda nc: nc.created_at, reverse=True)

    def fetch_action_plans(self, tenant_id: str) -> Sequence[ActionPlan]:
        return self._for_tenant(ActionPlan, tenant_id)

    def fetch_quality_risks(self, tenant_id: str) -> Sequence[QualityRisk]:
        return self._for_tenant(QualityRisk, tenant_id)

    def fetch_social_projects(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[SocialProject]:
        return [
            project
            for project in self._for_tenant(SocialProject, tenant_id)
            if _within(project.start_date, start_date, end_date)
        ]

    def fetch_safety_incidents(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[SafetyIncident]:
        return [
            incident
            for incident in self._for_tenant(SafetyIncident, tenant_id)
            if _within(incident.incident_date, start_date, end_date)
        ]

    def fetch_audits(self, tenant_id: str) -> Sequence[Audit]:
        return self._for_tenant(Audit, tenant_id)

    def fetch_whistleblower_reports(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[WhistleblowerReport]:
        return [
            report
            for report in self._for_tenant(WhistleblowerReport, tenant_id)
            if _within(report.created_at.date(), start_date, end_date)
        ]

    def _for_tenant(self, record_type: type, tenant_id: str) -> List:
        return [record for record in self._records[record_type] if record.tenant_id == tenant_id]


def _within(value: Any, start_date: Optional[date], end_date: Optional[date]) -> bool:
    if value is None:
        return start_date is None and end_date is None
    if start_date is not None and value < start_date:
        return False
    if end_date is not None and value > end_date:
        return False
    return True
