from datetime import date

from esgmetrics.investment import (
    CAPEX,
    GOVERNANCE,
    OPEX,
    classify_esg_category,
    classify_investment_type,
    compute_sustainable_investment,
)
from esgmetrics.models import SocialProject

TENANT = "acme"


def _projects():
    return [
        SocialProject(
            "a", TENANT, "Instalação de painéis solares", "Ativo",
            invested_amount=300, start_date=date(2026, 1, 5), project_type="Energia",
        ),
        SocialProject("b", TENANT, "Capacitação de jovens", "Concluído", invested_amount=200),
        SocialProject("c", TENANT, "Canal de ética", "Em Andamento", invested_amount="100", project_type="Compliance"),
        SocialProject("d", TENANT, "Doação", esg_category="Social"),
    ]


def test_capex_opex_and_pillar_split():
    result = compute_sustainable_investment(_projects())

    assert result["total_investment"] == 600
    assert result["capex"] == {"total": 300, "percentage": 50.0}
    assert result["opex"] == {"total": 300, "percentage": 50.0}
    assert result["by_esg_category"] == [
        {"category": "Ambiental", "investment": 300, "percentage": 50.0},
        {"category": "Social", "investment": 200, "percentage": 33.3},
        {"category": "Governança", "investment": 100, "percentage": 16.7},
    ]
    assert result["active_projects"] == 2
    assert result["completed_projects"] == 1
    assert result["data_completeness"] == {"projects_without_investment": 1}


def test_project_type_breakdown_sorted_by_investment():
    by_type = compute_sustainable_investment(_projects())["by_project_type"]

    assert by_type == [
        {"project_type": "Energia", "investment": 300, "projects_count": 1, "category": "Ambiental", "percentage": 50.0},
        {"project_type": "Projeto Social", "investment": 200, "projects_count": 2, "category": "Social", "percentage": 33.3},
        {"project_type": "Compliance", "investment": 100, "projects_count": 1, "category": "Governança", "percentage": 16.7},
    ]


def test_growth_against_previous_period():
    previous = [SocialProject("old", TENANT, "Horta", invested_amount=400)]

    result = compute_sustainable_investment(_projects(), previous)

    assert result["comparison"] == {
        "previous_period_investment": 400,
        "investment_growth_percentage": 50.0,
        "is_increasing": True,
    }


def test_shrinking_investment():
    previous = [SocialProject("old", TENANT, "Horta", invested_amount=100)]

    result = compute_sustainable_investment([], previous)

    assert result["comparison"]["investment_growth_percentage"] == -100.0
    assert result["comparison"]["is_increasing"] is False


def test_revenue_share_needs_revenue():
    without_revenue = compute_sustainable_investment(_projects())
    with_revenue = compute_sustainable_investment(_projects(), annual_revenue=12000)

    assert without_revenue["investment_percentage_revenue"] is None
    assert without_revenue["compliance"]["gri_201_1"] is False
    assert "Receita anual não cadastrada" in without_revenue["compliance"]["missing_data"]
    assert with_revenue["investment_percentage_revenue"] == 5.0
    assert with_revenue["compliance"]["gri_201_1"] is True
    assert with_revenue["compliance"]["gri_203_1"] is True


def test_recorded_classification_wins_over_keywords():
    project = SocialProject(
        "x", TENANT, "Sistema de reciclagem", investment_type=OPEX, esg_category=GOVERNANCE,
    )

    assert classify_investment_type(project) == OPEX
    assert classify_esg_category(project) == GOVERNANCE
    assert classify_investment_type(SocialProject("y", TENANT, "Sistema de reciclagem")) == CAPEX
    assert classify_esg_category(SocialProject("y", TENANT, "Sistema de reciclagem")) == "Ambiental"


def test_no_projects():
    result = compute_sustainable_investment([])

    assert result["total_investment"] == 0
    assert result["capex"]["percentage"] == 0
    assert result["by_project_type"] == []
    assert result["comparison"]["investment_growth_percentage"] == 0
    assert result["compliance"]["gri_203_1"] is False
    assert result["estimated_roi_percentage"] is None
