"""Core domain records read by the aggregation layer.

Every record belongs to exactly one tenant and is treated as a read-only value
for the duration of a computation.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

UNSPECIFIED = "Não especificado"
UNCATEGORIZED = "Não categorizado"


@dataclass(frozen=True)
class Employee:
    """An employee of a tenant organization."""

    id: str
    tenant_id: str
    full_name: str
    gender: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    location: Optional[str] = None
    hire_date: Optional[date] = None
    status: str = "Ativo"


@dataclass(frozen=True)
class TrainingRecord:
    """A completed training session of one employee.

    ``duration_hours`` is kept as read from the store; it may be missing or
    malformed and is coerced only when aggregated.
    """

    id: str
    tenant_id: str
    employee_id: str
    completion_date: date
    program_name: Optional[str] = None
    category: Optional[str] = None
    duration_hours: Any = None
    is_mandatory: bool = False
    employee_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class NonConformity:
    """A registered non-conformity."""

    id: str
    tenant_id: str
    title: str
    severity: Optional[str]
    status: Optional[str]
    created_at: datetime
    source: Optional[str] = None
    due_date: Optional[date] = None
    completion_date: Optional[datetime] = None


@dataclass(frozen=True)
class ActionPlan:
    """Corrective action plan with item counters."""

    id: str
    tenant_id: str
    title: str
    status: str
    total_items: int = 0
    completed_items: int = 0
    overdue_items: int = 0
    due_date: Optional[date] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class QualityRisk:
    """A registered quality risk and its current level."""

    id: str
    tenant_id: str
    level: Optional[str]
    status: Optional[str]


@dataclass(frozen=True)
class SocialProject:
    """Social investment project."""

    id: str
    tenant_id: str
    name: str
    status: Optional[str] = None
    budget: Any = None
    invested_amount: Any = None
    beneficiaries: Any = None
    start_date: Optional[date] = None
    description: Optional[str] = None
    investment_type: Optional[str] = None
    esg_category: Optional[str] = None
    project_type: Optional[str] = None


@dataclass(frozen=True)
class SafetyIncident:
    """An occupational safety incident and the days it cost."""

    id: str
    tenant_id: str
    incident_date: date
    incident_type: Optional[str] = None
    severity: Optional[str] = None
    days_lost: Any = None


@dataclass(frozen=True)
class Audit:
    """A planned or completed audit."""

    id: str
    tenant_id: str
    title: str
    status: Optional[str] = None
    audit_type: Optional[str] = None
    start_date: Optional[date] = None


@dataclass(frozen=True)
class WhistleblowerReport:
    """A report received through the ethics channel."""

    id: str
    tenant_id: str
    created_at: datetime
    status: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    is_anonymous: bool = False
    closed_at: Optional[datetime] = None
