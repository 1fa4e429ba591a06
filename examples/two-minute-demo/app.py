"""Two-minute esgmetrics demo: FastAPI backend over generated tenant data."""

import logging
from datetime import date, datetime, timedelta, timezone
from random import Random
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from esgmetrics import AnalyticsService, ReportFilters, Settings
from esgmetrics.adapters import InMemoryRowSource
from esgmetrics.errors import ESGMetricsError, RowSourceError, TenantMismatchError
from esgmetrics.models import (
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

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

RNG = Random(42)
TENANTS = ("demo-company", "other-company")
DEPARTMENTS = ["Operações", "Meio Ambiente", "Recursos Humanos", "SST", None]
LOCATIONS = ["São Paulo", "Curitiba", None]
POSITIONS = ["Analista", "Técnico", "Gerente"]
CATEGORIES = ["SST", "Ambiental", "Desenvolvimento", "Qualidade", None]
SEVERITIES = ["Crítica", "Alta", "Média", "Baixa"]
NC_STATUSES = ["Aberta", "Em Análise", "Em Correção", "Fechada"]
REPORT_STATUSES = ["Recebida", "Em Investigação", "Aguardando Ação", "Resolvida", "Arquivada"]
REPORT_CATEGORIES = ["Fraude", "Assédio", "Conflito de Interesses", "Segurança", None]
PROJECT_TYPES = ["Educação", "Energia", "Compliance", None]

app = FastAPI(title="esgmetrics Two-Minute Demo", version="0.1.0")


def _build_demo_source() -> InMemoryRowSource:
    now = datetime.now(timezone.utc)
    today = now.date()
    source = InMemoryRowSource()

    for tenant in TENANTS:
        employees = []
        for idx in range(40):
            employee = Employee(
                id=f"{tenant}-emp-{idx}",
                tenant_id=tenant,
                full_name=f"Colaborador {idx}",
                gender=RNG.choice(["Feminino", "Masculino", None]),
                department=RNG.choice(DEPARTMENTS),
                position=RNG.choice(POSITIONS),
                location=RNG.choice(LOCATIONS),
                hire_date=today - timedelta(days=RNG.randint(30, 3000)),
                status="Ativo" if idx % 13 else "Inativo",
            )
            employees.append(employee)
            source.add(employee)

        for idx in range(220):
            employee = RNG.choice(employees)
            source.add(
                TrainingRecord(
                    id=f"{tenant}-tr-{idx}",
                    tenant_id=tenant,
                    employee_id=employee.id,
                    completion_date=today - timedelta(days=RNG.randint(0, 700)),
                    program_name=f"Programa {idx % 12}",
                    category=RNG.choice(CATEGORIES),
                    duration_hours=None if idx % 17 == 0 else RNG.choice([2, 4, 8, 16, 24]),
                    is_mandatory=idx % 3 == 0,
                )
            )

        for idx in range(60):
            created_at = now - timedelta(days=RNG.randint(0, 200), hours=RNG.randint(0, 23))
            status = RNG.choice(NC_STATUSES)
            source.add(
                NonConformity(
                    id=f"{tenant}-nc-{idx}",
                    tenant_id=tenant,
                    title=f"NC {idx}",
                    severity=RNG.choice(SEVERITIES),
                    status=status,
                    source=RNG.choice(["Auditoria Interna", "Cliente", None]),
                    created_at=created_at,
                    due_date=(created_at + timedelta(days=30)).date(),
                    completion_date=created_at + timedelta(days=RNG.randint(1, 40)) if status == "Fechada" else None,
                )
            )

        for idx in range(6):
            source.add(
                ActionPlan(
                    id=f"{tenant}-ap-{idx}",
                    tenant_id=tenant,
                    title=f"Plano {idx}",
                    status=RNG.choice(["Em Andamento", "Concluída"]),
                    total_items=10,
                    completed_items=RNG.randint(0, 10),
                    overdue_items=RNG.randint(0, 2),
                    updated_at=now - timedelta(days=idx),
                ),
                QualityRisk(
                    id=f"{tenant}-risk-{idx}",
                    tenant_id=tenant,
                    level=RNG.choice(["Crítico", "Alto", "Baixo"]),
                    status="Ativo",
                ),
                SocialProject(
                    id=f"{tenant}-sp-{idx}",
                    tenant_id=tenant,
                    name=f"Projeto Social {idx}",
                    status=RNG.choice(["Ativo", "Concluído", "Planejado"]),
                    budget=RNG.choice([50000, 80000, None]),
                    invested_amount=RNG.randint(10000, 90000),
                    beneficiaries=RNG.randint(20, 400),
                    start_date=today - timedelta(days=RNG.randint(0, 700)),
                    description=RNG.choice(["Aquisição de equipamentos", "Capacitação comunitária", None]),
                    project_type=RNG.choice(PROJECT_TYPES),
                ),
            )

        for idx in range(15):
            source.add(
                SafetyIncident(
                    id=f"{tenant}-inc-{idx}",
                    tenant_id=tenant,
                    incident_date=date(today.year, RNG.randint(1, today.month), RNG.randint(1, 28)),
                    incident_type=RNG.choice(["Acidente", "Quase acidente", None]),
                    severity=RNG.choice(["Alta", "Média", "Baixa"]),
                    days_lost=RNG.choice([0, 0, 1, 3, None]),
                )
            )

        for idx in range(8):
            source.add(
                Audit(
                    id=f"{tenant}-aud-{idx}",
                    tenant_id=tenant,
                    title=f"Auditoria {idx}",
                    status=RNG.choice(["Planejada", "Em Andamento", "Concluída"]),
                    audit_type=RNG.choice(["Interna", "Externa", "Fornecedor", None]),
                    start_date=date(today.year, RNG.randint(1, 12), RNG.randint(1, 28)),
                )
            )

        for idx in range(45):
            created_at = now - timedelta(days=RNG.randint(0, 700), hours=RNG.randint(0, 23))
            status = RNG.choice(REPORT_STATUSES)
            closed = status in ("Resolvida", "Arquivada")
            source.add(
                WhistleblowerReport(
                    id=f"{tenant}-wb-{idx}",
                    tenant_id=tenant,
                    created_at=created_at,
                    status=status,
                    category=RNG.choice(REPORT_CATEGORIES),
                    priority=RNG.choice(["Crítica", "Alta", "Média", "Baixa"]),
                    is_anonymous=RNG.random() < 0.6,
                    closed_at=created_at + timedelta(days=RNG.randint(1, 120)) if closed else None,
                )
            )

    return source


SERVICE = AnalyticsService(_build_demo_source(), Settings.from_env())


@app.exception_handler(RowSourceError)
def row_source_error(request: Request, exc: RowSourceError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(TenantMismatchError)
def tenant_mismatch(request: Request, exc: TenantMismatchError) -> JSONResponse:
    logger.error("tenant isolation violated: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "tenant isolation violated"})


@app.exception_handler(ESGMetricsError)
def esgmetrics_error(request: Request, exc: ESGMetricsError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "demo": "esgmetrics-two-minute"}


@app.get("/api/{tenant_id}/training")
def training(tenant_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
    return SERVICE.get_training_hours_metrics(tenant_id, start_date, end_date)


@app.get("/api/{tenant_id}/training/report")
def training_report(
    tenant_id: str,
    location: Optional[str] = None,
    department: Optional[str] = None,
    position: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    min_hours: Optional[float] = None,
    max_hours: Optional[float] = None,
) -> dict:
    try:
        filters = ReportFilters(
            location=location,
            department=department,
            position=position,
            start_date=start_date,
            end_date=end_date,
            min_measure=min_hours,
            max_measure=max_hours,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SERVICE.get_training_hours_report(tenant_id, filters)


@app.get("/api/{tenant_id}/non-conformities")
def non_conformities(tenant_id: str) -> dict:
    return {
        "dashboard": SERVICE.get_non_conformity_dashboard(tenant_id),
        "stats": SERVICE.get_non_conformity_stats(tenant_id),
    }


@app.get("/api/{tenant_id}/quality")
def quality(tenant_id: str) -> dict:
    return SERVICE.get_quality_dashboard(tenant_id)


@app.get("/api/{tenant_id}/social")
def social(tenant_id: str, year: Optional[int] = None) -> dict:
    return {
        "projects": SERVICE.get_social_project_metrics(tenant_id),
        "safety": SERVICE.get_safety_metrics(tenant_id, year),
        "workforce": SERVICE.get_workforce_stats(tenant_id),
    }


@app.get("/api/{tenant_id}/audits")
def audits(tenant_id: str, year: Optional[int] = None) -> dict:
    return SERVICE.get_audit_report_stats(tenant_id, year=year)


@app.get("/api/{tenant_id}/whistleblower")
def whistleblower(tenant_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
    return SERVICE.get_whistleblower_metrics(tenant_id, start_date, end_date)


@app.get("/api/{tenant_id}/investment")
def investment(
    tenant_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    annual_revenue: Optional[float] = None,
) -> dict:
    return SERVICE.get_sustainable_investment(tenant_id, start_date, end_date, annual_revenue)
