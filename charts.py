from io import BytesIO

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from aggregation import count_by, UNDEFINED
from models import label, ACTIVITY_TYPE_LABELS, CATEGORY_LABELS, BENEFICIARY_CATEGORIES

PRIMARY = "#000080"
SECONDARY = "#126262"
ACCENT = "#FFD700"


def _png(fig) -> bytes:
    bio = BytesIO()
    fig.tight_layout()
    fig.savefig(bio, format="png", dpi=120)
    plt.close(fig)
    bio.seek(0)
    return bio.getvalue()


def _label(value, mapping):
    return "Undefined" if value == UNDEFINED else label(value, mapping)


def activities_by_type(activities) -> bytes:
    counts = count_by(activities, "type")
    fig = plt.figure(figsize=(6, 3.4))
    ax = fig.add_subplot(111)
    ax.bar([_label(k, ACTIVITY_TYPE_LABELS) for k in counts], list(counts.values()), color=PRIMARY)
    ax.set_title("Activities by type")
    ax.set_ylabel("Activities")
    ax.yaxis.get_major_locator().set_params(integer=True)
    return _png(fig)


def beneficiaries_by_category(beneficiaries) -> bytes:
    """Grouped bars: women and men per beneficiary category."""
    women = count_by([b for b in beneficiaries if b.sex == "F"], "category")
    men = count_by([b for b in beneficiaries if b.sex == "M"], "category")
    categories = [c for c in BENEFICIARY_CATEGORIES if c in women or c in men]

    fig = plt.figure(figsize=(6.2, 3.4))
    ax = fig.add_subplot(111)
    x = np.arange(len(categories))
    w = 0.35
    ax.bar(x - w/2, [women.get(c, 0) for c in categories], width=w, label="Women", color=SECONDARY)
    ax.bar(x + w/2, [men.get(c, 0) for c in categories], width=w, label="Men", color=ACCENT)
    ax.set_xticks(x)
    ax.set_xticklabels([label(c, CATEGORY_LABELS) for c in categories])
    ax.set_ylabel("Beneficiaries")
    ax.set_title("Beneficiaries by category")
    if categories:
        ax.legend()
    return _png(fig)


def budget_by_project(projects, limit=8) -> bytes:
    projects = projects[:limit]
    names = [p.name for p in projects]
    planned = [p.planned_budget or 0 for p in projects]
    realized = [p.realized_budget or 0 for p in projects]

    fig = plt.figure(figsize=(6.2, 3.6))
    ax = fig.add_subplot(111)
    x = np.arange(len(names))
    w = 0.35
    ax.bar(x - w/2, planned, width=w, label="Planned", color=PRIMARY)
    ax.bar(x + w/2, realized, width=w, label="Realized", color=SECONDARY)
    ax.set_xticks(x)
    ax.set_xticklabels(names, rotation=30, ha="right")
    ax.set_title("Budget by project")
    if names:
        ax.legend()
    return _png(fig)
