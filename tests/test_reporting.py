import csv
import io
import json
from datetime import date

import pytest
from docx import Document
from openpyxl import load_workbook

from exports import export_filename, export_geojson, export_table, export_workbook, statistics_rows
from models import Activity, Indicator, Project
from reporting import (
    STANDING_RECOMMENDATIONS, TEMPLATES, ReportGenerator, compute_report_stats,
    recommendations, render_docx, render_document, resolve_targets,
)
import charts


TARGETS = {"trained": 1000, "graduation_rate": 70, "women_supported": 600, "youth_reached": 800}


@pytest.fixture
def generator(repository):
    return ReportGenerator(repository, TARGETS, organization="Test NGO", currency="XOF")


def test_recommendations_follow_budget_and_cancellations():
    recs = recommendations({"budget_execution_rate": 65, "cancelled_activities": 2})
    assert len(recs) == 2 + len(STANDING_RECOMMENDATIONS)
    recs = recommendations({"budget_execution_rate": 70, "cancelled_activities": 0})
    assert recs == STANDING_RECOMMENDATIONS


def test_indicators_override_configured_targets():
    targets = resolve_targets(TARGETS, [Indicator(code="trained", target=50), Indicator(code="other", target=1)])
    assert targets["trained"] == 50
    assert "other" not in targets
    assert TARGETS["trained"] == 1000


def test_report_stats(generator):
    stats = generator.stats()
    assert stats["gaps"] == []
    assert stats["general"]["budget_execution_rate"] == 77  # 23000 / 30000
    assert [p["name"] for p in stats["top_projects"]] == ["Women Network", "Youth Skills"]
    assert len(stats["recent_activities"]) == 2
    trained = [r for r in stats["impact"] if r["key"] == "trained"][0]
    assert trained["target"] == "50"
    assert trained["achieved_pct"] == 70  # 35 trained against the indicator target


def test_report_stats_record_gaps(generator, repository):
    repository.failing.add("beneficiaries")
    stats = generator.stats()
    assert stats["gaps"] == ["beneficiaries"]
    assert stats["beneficiaries"]["total"] == 0


@pytest.mark.parametrize("template", TEMPLATES)
def test_render_document_produces_pdf(generator, template):
    pdf, filename = generator.build(template)
    assert pdf.startswith(b"%PDF")
    assert filename == f"report_{template}_{date.today().isoformat()}.pdf"


def test_render_document_on_empty_data():
    stats = compute_report_stats({}, TARGETS)
    assert render_document("impact", stats).startswith(b"%PDF")


def test_render_document_rejects_unknown_template():
    with pytest.raises(ValueError):
        render_document("weekly", compute_report_stats({}, TARGETS))


def test_render_docx(generator):
    data, filename = generator.build_docx()
    assert filename.endswith(".docx")
    doc = Document(io.BytesIO(data))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "Test NGO" in text
    assert STANDING_RECOMMENDATIONS[0] in text


def test_render_docx_mentions_gaps():
    stats = compute_report_stats({"gaps": ["projects"]}, TARGETS)
    doc = Document(io.BytesIO(render_docx(stats)))
    assert any("projects" in p.text for p in doc.paragraphs)


def test_export_table_quotes_every_field():
    rows = [
        {"name": 'Say "hi"', "location": "Dakar, Plateau", "count": 3},
        {"name": "Plain", "location": None, "count": 0},
    ]
    text = export_table(rows)
    assert text.splitlines()[0] == '"name","location","count"'
    assert list(csv.reader(io.StringIO(text))) == [
        ["name", "location", "count"],
        ['Say "hi"', "Dakar, Plateau", "3"],
        ["Plain", "", "0"],
    ]
    assert not text.endswith("\n")


def test_export_table_empty():
    assert export_table([]) == ""


def test_export_filename():
    assert export_filename("projects", "csv", day=date(2024, 5, 1)) == "projects_2024-05-01.csv"


def test_geojson_uses_longitude_latitude_order():
    acts = [
        Activity(id="1", name="A", project_id="p1", latitude=14.7, longitude=-17.4),
        Activity(id="2", name="B"),
    ]
    data = export_geojson(acts, {"p1": "Youth Skills"})
    json.dumps(data)
    assert len(data["features"]) == 1
    feature = data["features"][0]
    assert feature["geometry"]["coordinates"] == [-17.4, 14.7]
    assert feature["properties"]["project"] == "Youth Skills"


def test_workbook_sheets():
    projects = [Project(name="P", planned_budget=100, realized_budget=50, status="active")]
    data = export_workbook({
        "Projects": [{"name": "P", "planned_budget": 100}],
        "Statistics": statistics_rows(projects, [], []),
    })
    wb = load_workbook(io.BytesIO(data))
    assert wb.sheetnames == ["Projects", "Statistics"]
    assert wb["Projects"]["A2"].value == "P"
    values = {row[0]: row[1] for row in wb["Statistics"].iter_rows(min_row=2, values_only=True)}
    assert values["Budget execution (%)"] == 50


@pytest.mark.parametrize("render,rows", [
    (charts.activities_by_type, [Activity(type="training"), Activity(type=None)]),
    (charts.budget_by_project, [Project(name="P", planned_budget=10, realized_budget=5)]),
    (charts.beneficiaries_by_category, []),
])
def test_charts_render_png(render, rows):
    assert render(rows).startswith(b"\x89PNG")
