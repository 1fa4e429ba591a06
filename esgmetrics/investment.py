"""Sustainable investment analytics (GRI 201-1, 203-1)."""

from typing import Any, Dict, Iterable, List, Optional

from .aggregation import category_key, coerce_measure, round_half_up, safe_rate, sum_measure
from .models import SocialProject
from .social import ACTIVE_PROJECT_STATUSES, COMPLETED_PROJECT_STATUSES
from .trend import percent_change

CAPEX = "CAPEX"
OPEX = "OPEX"
ENVIRONMENTAL = "Ambiental"
SOCIAL = "Social"
GOVERNANCE = "Governança"
DEFAULT_PROJECT_TYPE = "Projeto Social"

CAPEX_KEYWORDS = (
    "infraestrutura", "equipamento", "construção", "instalação", "aquisição", "reforma",
    "modernização", "implantação", "sistema", "tecnologia", "hardware", "maquinário",
)

# Checked in order; the first category with a matching keyword wins.
ESG_KEYWORDS = (
    (ENVIRONMENTAL, (
        "ambiental", "carbono", "emissão", "energia", "água", "resíduo", "reciclagem",
        "renovável", "sustentável", "ecológico", "verde", "clima", "biodiversidade",
    )),
    (SOCIAL, (
        "social", "comunidade", "educação", "saúde", "cultura", "capacitação", "treinamento",
        "voluntariado", "inclusão", "diversidade", "direitos humanos", "bem-estar",
    )),
    (GOVERNANCE, (
        "governança", "compliance", "ética", "integridade", "transparência", "auditoria",
        "controle", "gestão de risco",
    )),
)


def classify_investment_type(project: SocialProject) -> str:
    """CAPEX when the project reads like an asset purchase, OPEX otherwise; a recorded type wins."""
    if project.investment_type in (CAPEX, OPEX):
        return project.investment_type
    text = _searchable_text(project.name, project.description)
    return CAPEX if any(keyword in text for keyword in CAPEX_KEYWORDS) else OPEX


def classify_esg_category(project: SocialProject) -> str:
    if project.esg_category in (ENVIRONMENTAL, SOCIAL, GOVERNANCE):
        return project.esg_category
    text = _searchable_text(project.name, project.description, project.project_type)
    for category, keywords in ESG_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return SOCIAL


def compute_sustainable_investment(
    projects: Iterable[SocialProject],
    previous_projects: Iterable[SocialProject] = (),
    annual_revenue: Any = None,
) -> Dict:
    """
    Investment split by CAPEX/OPEX, ESG pillar and project type, with growth
    against the previous period.

    Projects without an invested amount count as zero and are tallied under
    ``data_completeness``. Without ``annual_revenue`` the revenue share is
    None and GRI 201-1 is reported as not met.
    """
    projects = list(projects)
    investment = sum_measure(projects, lambda p: p.invested_amount)
    total = investment.total
    previous_total = sum_measure(previous_projects, lambda p: p.invested_amount).total
    revenue = coerce_measure(annual_revenue)

    by_type = {CAPEX: 0.0, OPEX: 0.0}
    by_category = {ENVIRONMENTAL: 0.0, SOCIAL: 0.0, GOVERNANCE: 0.0}
    for project in projects:
        amount = _amount(project)
        by_type[classify_investment_type(project)] += amount
        by_category[classify_esg_category(project)] += amount

    growth = percent_change(total, previous_total)
    missing = []
    if not projects:
        missing.append("Nenhum projeto de investimento registrado no período")
    if revenue is None:
        missing.append("Receita anual não cadastrada")

    return {
        "total_investment": total,
        "total_projects": len(projects),
        "active_projects": sum(1 for p in projects if p.status in ACTIVE_PROJECT_STATUSES),
        "completed_projects": sum(1 for p in projects if p.status in COMPLETED_PROJECT_STATUSES),
        "capex": {
            "total": by_type[CAPEX],
            "percentage": round_half_up(safe_rate(by_type[CAPEX], total)),
        },
        "opex": {
            "total": by_type[OPEX],
            "percentage": round_half_up(safe_rate(by_type[OPEX], total)),
        },
        "by_esg_category": [
            {
                "category": category,
                "investment": amount,
                "percentage": round_half_up(safe_rate(amount, total)),
            }
            for category, amount in by_category.items()
        ],
        "by_project_type": _project_type_breakdown(projects, total),
        "comparison": {
            "previous_period_investment": previous_total,
            "investment_growth_percentage": round_half_up(growth),
            "is_increasing": growth > 0,
        },
        "investment_percentage_revenue": (
            round_half_up(safe_rate(total, revenue), 2) if revenue else None
        ),
        "compliance": {
            "gri_201_1": total > 0 and revenue is not None,
            "gri_203_1": by_category[ENVIRONMENTAL] > 0 or by_category[SOCIAL] > 0,
            "missing_data": missing,
        },
        "data_completeness": {
            "projects_without_investment": investment.missing,
        },
        "estimated_roi_percentage": None,
        "unimplemented": ["estimated_roi_percentage"],
    }


def _project_type_breakdown(projects: List[SocialProject], total: float) -> List[Dict]:
    groups: Dict[str, Dict] = {}
    for project in projects:
        key = category_key(project.project_type, DEFAULT_PROJECT_TYPE)
        group = groups.setdefault(
            key,
            {
                "project_type": key,
                "investment": 0.0,
                "projects_count": 0,
                "category": classify_esg_category(project),
            },
        )
        group["investment"] += _amount(project)
        group["projects_count"] += 1

    result = sorted(groups.values(), key=lambda g: g["investment"], reverse=True)
    for group in result:
        group["percentage"] = round_half_up(safe_rate(group["investment"], total))
    return result


def _amount(project: SocialProject) -> float:
    return coerce_measure(project.invested_amount) or 0.0


def _searchable_text(*parts: Optional[str]) -> str:
    return " ".join(part for part in parts if part).lower()
