"""Port definitions for reading tenant-scoped rows from any store."""

from datetime import date
from typing import Optional, Protocol, Sequence

from .models import (
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


class RowSource(Protocol):
    """Repository interface that adapters implement for any backend.

    Every method returns only rows of ``tenant_id``. Failures are raised,
    never reported as an empty sequence.
    """

    def fetch_employees(self, tenant_id: str, active_only: bool = True) -> Sequence[Employee]:
        """Return employees of a tenant."""

    def fetch_training_records(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[TrainingRecord]:
        """Return completed trainings with a completion date in the closed period.

        A bound left as None leaves that side of the period open.
        """

    def fetch_non_conformities(self, tenant_id: str) -> Sequence[NonConformity]:
        """Return all non-conformities, newest first."""

    def fetch_action_plans(self, tenant_id: str) -> Sequence[ActionPlan]:
        """Return corrective action plans."""

    def fetch_quality_risks(self, tenant_id: str) -> Sequence[QualityRisk]:
        """Return registered quality risks."""

    def fetch_social_projects(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[SocialProject]:
        """Return social projects started in the closed period (open when None)."""

    def fetch_safety_incidents(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[SafetyIncident]:
        """Return safety incidents that occurred in the closed period."""

    def fetch_audits(self, tenant_id: str) -> Sequence[Audit]:
        """Return audits."""

    def fetch_whistleblower_reports(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[WhistleblowerReport]:
        """Return reports created on a day of the closed period."""
