"""Aggregations behind the dashboard KPIs and report statistics.

Everything here works on in-memory rows (dicts or model records) and does no I/O.
"""
import math

from models import field_value, label, CATEGORY_LABELS, ACTIVITY_TYPE_LABELS

UNDEFINED = "undefined"


def _round_half_up(x):
    return int(math.floor(x + 0.5))


def _number(v):
    if v is None or v == "":
        return 0
    return float(v) if isinstance(v, str) else v


def count_by(items, field):
    counts = {}
    for item in items:
        value = field_value(item, field)
        key = UNDEFINED if value is None or value == "" else value
        counts[key] = counts.get(key, 0) + 1
    return counts


def sum_by(items, field):
    return sum(_number(field_value(item, field)) for item in items)


def percentage_of(part, whole):
    if not whole:
        return 0
    return _round_half_up(part / whole * 100)


def age_stats(items):
    ages = [field_value(i, "age") for i in items]
    ages = [a for a in ages if a is not None and a != ""]
    if not ages:
        return {"mean": 0, "min": 0, "max": 0}
    ages = [int(a) for a in ages]
    return {
        "mean": _round_half_up(sum(ages) / len(ages)),
        "min": min(ages),
        "max": max(ages),
    }


def top_n(items, key, n):
    # sorted() is stable, also with reverse=True
    return sorted(items, key=key, reverse=True)[:n]


def where(items, **equals):
    return [i for i in items if all(field_value(i, k) == v for k, v in equals.items())]


def dashboard_kpis(projects, activities, beneficiaries):
    return {
        "active_projects": len(where(projects, status="active")),
        "done_activities": len(where(activities, status="done")),
        "total_beneficiaries": len(beneficiaries),
        "total_budget": sum_by(projects, "planned_budget"),
        "total_projects": len(projects),
        "total_activities": len(activities),
        "reached": sum_by(activities, "beneficiary_count"),
    }


def general_stats(projects, activities, beneficiaries):
    planned = sum_by(projects, "planned_budget")
    realized = sum_by(projects, "realized_budget")
    stats = dashboard_kpis(projects, activities, beneficiaries)
    stats.update({
        "realized_budget": realized,
        "budget_execution_rate": percentage_of(realized, planned),
        "cancelled_activities": len(where(activities, status="cancelled")),
    })
    return stats


def beneficiary_stats(beneficiaries):
    total = len(beneficiaries)
    women = len(where(beneficiaries, sex="F"))
    men = total - women
    ages = age_stats(beneficiaries)
    by_category = count_by(beneficiaries, "category")
    top_categories = top_n(list(by_category.items()), key=lambda kv: kv[1], n=3)
    return {
        "total": total,
        "women": women,
        "men": men,
        "women_pct": percentage_of(women, total),
        "men_pct": percentage_of(men, total),
        "age_mean": ages["mean"],
        "age_min": ages["min"],
        "age_max": ages["max"],
        "by_category": by_category,
        "by_status": count_by(beneficiaries, "status"),
        "by_support_type": count_by(beneficiaries, "support_type"),
        "top_categories": [
            f"{label(cat, CATEGORY_LABELS) if cat != UNDEFINED else 'Undefined'} ({count})"
            for cat, count in top_categories
        ],
        "graduation_rate": percentage_of(len(where(beneficiaries, status="graduated")), total),
    }


def impact_stats(activities, beneficiaries, targets):
    """Realised figures against the configured impact targets."""
    trained = sum_by(
        where(activities, type="training", status="done"), "beneficiary_count"
    )
    women = len(where(beneficiaries, sex="F"))
    youth = len(where(beneficiaries, category="youth"))
    graduation_rate = percentage_of(
        len(where(beneficiaries, status="graduated")), len(beneficiaries)
    )

    rows = [
        ("trained", "People trained", trained, False),
        ("graduation_rate", "Graduation rate", graduation_rate, True),
        ("women_supported", "Women supported", women, False),
        ("youth_reached", "Youth reached", youth, False),
    ]
    out = []
    for key, title, realised, is_rate in rows:
        target = targets.get(key, 0)
        out.append({
            "key": key,
            "indicator": title,
            "target": f"{target:g}%" if is_rate else f"{target:g}",
            "realised": f"{realised:g}%" if is_rate else f"{realised:g}",
            "achieved_pct": percentage_of(realised, target),
        })
    return out


def program_breakdown(activities):
    """Activities and people reached per activity type."""
    counts = count_by(activities, "type")
    rows = []
    for type_, count in top_n(list(counts.items()), key=lambda kv: kv[1], n=len(counts)):
        matching = [a for a in activities if (field_value(a, "type") or UNDEFINED) == type_]
        reached = sum_by(matching, "beneficiary_count")
        rows.append({
            "type": type_,
            "label": label(type_, ACTIVITY_TYPE_LABELS) if type_ != UNDEFINED else "Undefined",
            "activities": count,
            "reached": reached,
        })
    return rows
