from aggregation import (
    UNDEFINED, age_stats, beneficiary_stats, count_by, dashboard_kpis, general_stats,
    impact_stats, percentage_of, program_breakdown, sum_by, top_n,
)
from models import Activity, Beneficiary, Project


def test_percentage_of_empty_whole_is_zero():
    assert percentage_of(0, 0) == 0
    assert percentage_of(5, 0) == 0


def test_percentage_of_rounds_half_up():
    assert percentage_of(5, 10) == 50
    assert percentage_of(4, 10) == 40
    assert percentage_of(1, 8) == 13  # 12.5
    assert percentage_of(1, 3) == 33


def test_age_stats():
    assert age_stats([]) == {"mean": 0, "min": 0, "max": 0}
    assert age_stats([{"age": 10}, {"age": 20}]) == {"mean": 15, "min": 10, "max": 20}
    rows = [{"age": 20}, {"age": 31}, {"age": None}, {"age": 45}]
    assert age_stats(rows) == {"mean": 32, "min": 20, "max": 45}


def test_count_by_groups_missing_values_under_sentinel():
    rows = [{"type": "training"}, {"type": "training"}, {"type": "workshop"}, {"type": None}, {}]
    counts = count_by(rows, "type")
    assert counts == {"training": 2, "workshop": 1, UNDEFINED: 2}
    assert sum(counts.values()) == len(rows)


def test_count_by_works_on_records():
    acts = [Activity(type="training"), Activity(type="training"), Activity(type="workshop")]
    assert count_by(acts, "type") == {"training": 2, "workshop": 1}


def test_sum_by_ignores_missing():
    assert sum_by([{"n": 3}, {"n": None}, {"n": "2"}, {}], "n") == 5


def test_top_n_is_stable_for_ties():
    items = [("a", 1), ("b", 3), ("c", 3), ("d", 2)]
    assert top_n(items, key=lambda kv: kv[1], n=3) == [("b", 3), ("c", 3), ("d", 2)]
    assert top_n([], key=lambda kv: kv[1], n=3) == []


def test_dashboard_kpis():
    projects = [Project(status="active", planned_budget=100), Project(status="paused", planned_budget=50)]
    activities = [Activity(status="done", beneficiary_count=10), Activity(status="planned")]
    kpis = dashboard_kpis(projects, activities, [Beneficiary(), Beneficiary()])
    assert kpis["active_projects"] == 1
    assert kpis["done_activities"] == 1
    assert kpis["total_beneficiaries"] == 2
    assert kpis["total_budget"] == 150
    assert kpis["reached"] == 10


def test_general_stats_budget_execution():
    projects = [Project(planned_budget=1000, realized_budget=600)]
    stats = general_stats(projects, [Activity(status="cancelled")], [])
    assert stats["budget_execution_rate"] == 60
    assert stats["cancelled_activities"] == 1
    assert general_stats([], [], [])["budget_execution_rate"] == 0


def test_beneficiary_stats():
    people = [
        Beneficiary(sex="F", age=20, category="women", status="graduated"),
        Beneficiary(sex="F", age=30, category="women"),
        Beneficiary(sex="M", age=16, category="youth"),
        Beneficiary(sex="M", age=40, category=None),
    ]
    stats = beneficiary_stats(people)
    assert stats["total"] == 4
    assert stats["women"] == 2
    assert stats["women_pct"] == 50
    assert stats["age_min"] == 16
    assert stats["age_max"] == 40
    assert stats["by_category"] == {"women": 2, "youth": 1, UNDEFINED: 1}
    assert stats["top_categories"][0] == "Women (2)"
    assert stats["graduation_rate"] == 25


def test_beneficiary_stats_empty():
    stats = beneficiary_stats([])
    assert stats["total"] == 0
    assert stats["women_pct"] == 0
    assert stats["graduation_rate"] == 0


def test_impact_stats_uses_real_figures():
    activities = [
        Activity(type="training", status="done", beneficiary_count=250),
        Activity(type="training", status="planned", beneficiary_count=500),
    ]
    people = [Beneficiary(sex="F", category="youth", status="graduated"), Beneficiary(sex="M")]
    rows = {r["key"]: r for r in impact_stats(activities, people, {"trained": 1000, "graduation_rate": 70})}
    assert rows["trained"]["realised"] == "250"
    assert rows["trained"]["achieved_pct"] == 25
    assert rows["graduation_rate"]["realised"] == "50%"
    assert rows["graduation_rate"]["target"] == "70%"
    # targets missing from the configuration read as zero
    assert rows["youth_reached"]["achieved_pct"] == 0


def test_program_breakdown_orders_by_volume():
    activities = [
        Activity(type="workshop", beneficiary_count=5),
        Activity(type="training", beneficiary_count=10),
        Activity(type="training", beneficiary_count=7),
        Activity(type=None, beneficiary_count=3),
    ]
    rows = program_breakdown(activities)
    assert rows[0] == {"type": "training", "label": "Training", "activities": 2, "reached": 17}
    undefined = [r for r in rows if r["type"] == UNDEFINED][0]
    assert undefined["label"] == "Undefined"
    assert undefined["reached"] == 3
