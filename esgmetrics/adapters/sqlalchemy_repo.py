"""SQLAlchemy row source adapter for esgmetrics."""

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Date, DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import RowSourceError
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

logger = logging.getLogger(__name__)

TRAINING_COMPLETED_STATUS = "Concluído"
EMPLOYEE_ACTIVE_STATUS = "Ativo"


class SQLAlchemyRowSource:
    """Fetches tenant rows from relational tables and maps them to domain records.

    Timestamps are always returned timezone-aware; values stored without an
    offset are read as ``store_tz`` (UTC unless told otherwise).
    """

    def __init__(self, db: Session, store_tz: tzinfo = timezone.utc):
        self.db = db
        self.store_tz = store_tz

    def fetch_employees(self, tenant_id: str, active_only: bool = True) -> Sequence[Employee]:
        sql = """
            SELECT id, company_id, full_name, gender, department, position, location,
                   hire_date, status
            FROM employees
            WHERE company_id = :company_id
            """
        params: Dict[str, Any] = {"company_id": tenant_id}
        if active_only:
            sql += " AND status = :status"
            params["status"] = EMPLOYEE_ACTIVE_STATUS
        rows = self._execute("employees", sql + " ORDER BY full_name", params)

        return [
            Employee(
                id=str(row.id),
                tenant_id=str(row.company_id),
                full_name=row.full_name or "",
                gender=row.gender,
                department=row.department,
                position=row.position,
                location=row.location,
                hire_date=_parse_date(row.hire_date),
                status=row.status or "",
            )
            for row in rows
        ]

    def fetch_training_records(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[TrainingRecord]:
        sql = """
            SELECT et.id, et.company_id, et.employee_id, et.completion_date,
                   tp.name AS program_name, tp.category, tp.duration_hours, tp.is_mandatory,
                   e.full_name, e.department, e.position, e.location
            FROM employee_trainings et
            LEFT JOIN training_programs tp ON tp.id = et.training_program_id
            LEFT JOIN employees e ON e.id = et.employee_id
            WHERE et.company_id = :company_id
              AND et.status = :status
            """
        params: Dict[str, Any] = {"company_id": tenant_id, "status": TRAINING_COMPLETED_STATUS}
        sql += _period_clause("et.completion_date", start_date, end_date, params)
        rows = self._execute("employee_trainings", sql + " ORDER BY et.completion_date", params)

        result: List[TrainingRecord] = []
        for row in rows:
            completion_date = _parse_date(row.completion_date)
            if completion_date is None:
                logger.warning("training %s has no completion date, skipped", row.id)
                continue
            result.append(
                TrainingRecord(
                    id=str(row.id),
                    tenant_id=str(row.company_id),
                    employee_id=str(row.employee_id),
                    completion_date=completion_date,
                    program_name=row.program_name,
                    category=row.category,
                    duration_hours=row.duration_hours,
                    is_mandatory=bool(row.is_mandatory),
                    employee_name=row.full_name,
                    department=row.department,
                    position=row.position,
                    location=row.location,
                )
            )
        return result

    def fetch_non_conformities(self, tenant_id: str) -> Sequence[NonConformity]:
        rows = self._execute(
            "non_conformities",
            """
            SELECT id, company_id, title, severity, status, source, created_at,
                   due_date, completion_date
            FROM non_conformities
            WHERE company_id = :company_id
            ORDER BY created_at DESC
            """,
            {"company_id": tenant_id},
        )

        result: List[NonConformity] = []
        for row in rows:
            created_at = self._timestamp(row.created_at)
            if created_at is None:
                logger.warning("non-conformity %s has no creation date, skipped", row.id)
                continue
            result.append(
                NonConformity(
                    id=str(row.id),
                    tenant_id=str(row.company_id),
                    title=row.title or "",
                    severity=row.severity,
                    status=row.status,
                    source=row.source,
                    created_at=created_at,
                    due_date=_parse_date(row.due_date),
                    completion_date=self._timestamp(row.completion_date),
                )
            )
        return result

    def fetch_action_plans(self, tenant_id: str) -> Sequence[ActionPlan]:
        rows = self._execute(
            "action_plans",
            """
            SELECT id, company_id, title, status, total_items, completed_items,
                   overdue_items, due_date, updated_at
            FROM action_plans
            WHERE company_id = :company_id
            """,
            {"company_id": tenant_id},
        )

        return [
            ActionPlan(
                id=str(row.id),
                tenant_id=str(row.company_id),
                title=row.title or "",
                status=row.status or "",
                total_items=int(row.total_items or 0),
                completed_items=int(row.completed_items or 0),
                overdue_items=int(row.overdue_items or 0),
                due_date=_parse_date(row.due_date),
                updated_at=self._timestamp(row.updated_at),
            )
            for row in rows
        ]

    def fetch_quality_risks(self, tenant_id: str) -> Sequence[QualityRisk]:
        rows = self._execute(
            "quality_risks",
            "SELECT id, company_id, level, status FROM quality_risks WHERE company_id = :company_id",
            {"company_id": tenant_id},
        )
        return [
            QualityRisk(id=str(row.id), tenant_id=str(row.company_id), level=row.level, status=row.status)
            for row in rows
        ]

    def fetch_social_projects(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[SocialProject]:
        sql = """
            SELECT id, company_id, name, description, status, budget, invested_amount,
                   beneficiaries, start_date
            FROM social_projects
            WHERE company_id = :company_id
            """
        params: Dict[str, Any] = {"company_id": tenant_id}
        sql += _period_clause("start_date", start_date, end_date, params)
        rows = self._execute("social_projects", sql, params)

        return [
            SocialProject(
                id=str(row.id),
                tenant_id=str(row.company_id),
                name=row.name or "",
                status=row.status,
                budget=row.budget,
                invested_amount=row.invested_amount,
                beneficiaries=row.beneficiaries,
                start_date=_parse_date(row.start_date),
                description=row.description,
            )
            for row in rows
        ]

    def fetch_safety_incidents(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[SafetyIncident]:
        rows = self._execute(
            "safety_incidents",
            """
            SELECT id, company_id, incident_type, severity, incident_date, days_lost
            FROM safety_incidents
            WHERE company_id = :company_id
              AND incident_date >= :start_date
              AND incident_date <= :end_date
            """,
            {"company_id": tenant_id, "start_date": start_date, "end_date": end_date},
        )

        return [
            SafetyIncident(
                id=str(row.id),
                tenant_id=str(row.company_id),
                incident_date=_parse_date(row.incident_date),
                incident_type=row.incident_type,
                severity=row.severity,
                days_lost=row.days_lost,
            )
            for row in rows
        ]

    def fetch_audits(self, tenant_id: str) -> Sequence[Audit]:
        rows = self._execute(
            "audits",
            """
            SELECT id, company_id, title, status, audit_type, start_date
            FROM audits
            WHERE company_id = :company_id
            """,
            {"company_id": tenant_id},
        )

        return [
            Audit(
                id=str(row.id),
                tenant_id=str(row.company_id),
                title=row.title or "",
                status=row.status,
                audit_type=row.audit_type,
                start_date=_parse_date(row.start_date),
            )
            for row in rows
        ]

    def fetch_whistleblower_reports(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[WhistleblowerReport]:
        rows = self._execute(
            "whistleblower_reports",
            """
            SELECT id, company_id, status, category, priority, is_anonymous, created_at, closed_at
            FROM whistleblower_reports
            WHERE company_id = :company_id
              AND created_at >= :start_date
              AND created_at < :end_before
            ORDER BY created_at
            """,
            {
                "company_id": tenant_id,
                "start_date": start_date,
                "end_before": end_date + timedelta(days=1),
            },
        )

        result: List[WhistleblowerReport] = []
        for row in rows:
            created_at = self._timestamp(row.created_at)
            if created_at is None:
                logger.warning("whistleblower report %s has no creation date, skipped", row.id)
                continue
            result.append(
                WhistleblowerReport(
                    id=str(row.id),
                    tenant_id=str(row.company_id),
                    created_at=created_at,
                    status=row.status,
                    category=row.category,
                    priority=row.priority,
                    is_anonymous=bool(row.is_anonymous),
                    closed_at=self._timestamp(row.closed_at),
                )
            )
        return result

    def _timestamp(self, raw: Any) -> Optional[datetime]:
        value = _parse_datetime(raw)
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=self.store_tz)
        return value

    def _execute(self, table: str, sql: str, params: Dict[str, Any]):
        statement = text(sql)
        for name, value in params.items():
            if isinstance(value, datetime):
                statement = statement.bindparams(bindparam(name, type_=DateTime()))
            elif isinstance(value, date):
                statement = statement.bindparams(bindparam(name, type_=Date()))
        try:
            return self.db.execute(statement, params).fetchall()
        except SQLAlchemyError as exc:
            logger.exception("query on %s failed for tenant %s", table, params.get("company_id"))
            raise RowSourceError(f"could not read {table}") from exc


def _parse_date(raw: Any) -> Optional[date]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw)[:10])


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


def _period_clause(column: str, start_date: Optional[date], end_date: Optional[date], params: Dict[str, Any]) -> str:
    clause = ""
    if start_date is not None:
        clause += f" AND {column} >= :start_date"
        params["start_date"] = start_date
    if end_date is not None:
        clause += f" AND {column} <= :end_date"
        params["end_date"] = end_date
    return clause
