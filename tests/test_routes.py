import json
import re

from app import create_app
from config import TestConfig


class UnconfiguredConfig(TestConfig):
    REMOTE_URL = ""
    REMOTE_API_KEY = ""


def test_index_redirects_to_dashboard(client):
    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard/")


def test_dashboard_renders(client):
    r = client.get("/dashboard/")
    assert r.status_code == 200
    assert b"Youth Skills" in r.data
    assert b"Sewing training" in r.data


def test_dashboard_shows_gaps(client, repository):
    repository.failing.add("beneficiaries")
    r = client.get("/dashboard/")
    assert r.status_code == 200
    assert b"Some data could not be loaded: beneficiaries" in r.data


def test_dashboard_chart_png(client):
    r = client.get("/dashboard/charts/activities.png")
    assert r.status_code == 200
    assert r.mimetype == "image/png"
    assert client.get("/dashboard/charts/unknown.png").status_code == 404


def test_dashboard_json_export(client):
    r = client.get("/dashboard/export.json")
    payload = json.loads(r.data)
    assert payload["summary"]["total_projects"] == 2
    assert len(payload["activities"]) == 3
    assert "attachment; filename=dashboard_" in r.headers["Content-Disposition"]


def test_unconfigured_app_redirects_to_setup():
    app = create_app(UnconfiguredConfig)
    client = app.test_client()
    r = client.get("/projects/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/setup")
    r = client.get("/admin/setup")
    assert r.status_code == 200
    assert b"REMOTE_URL" in r.data


def test_setup_redirects_once_configured(client):
    r = client.get("/admin/setup")
    assert r.status_code == 302


def test_project_list_and_search(client):
    r = client.get("/projects/?search=women")
    assert r.status_code == 200
    assert b"Women Network" in r.data
    assert b"Youth Skills" not in r.data


def test_create_project(client, repository):
    r = client.post("/projects/create", data={
        "name": "Solar Kits",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "responsible": "K. Ba",
        "planned_budget": "5000",
        "status": "active",
        "progress": "0",
    })
    assert r.status_code == 302
    assert any(p["name"] == "Solar Kits" for p in repository.tables["projects"])


def test_invalid_project_rerenders_form(client, repository):
    r = client.post("/projects/create", data={
        "name": "Solar Kits",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "planned_budget": "5000",
    })
    assert r.status_code == 200
    assert b"The field &#34;Responsible&#34; is required." in r.data
    assert b'value="Solar Kits"' in r.data
    assert repository.writes() == []


def test_view_unknown_project_redirects(client):
    r = client.get("/projects/missing")
    assert r.status_code == 302


def test_delete_requires_confirmation(client, repository):
    r = client.get("/projects/p1/delete")
    assert r.status_code == 200
    assert b"Youth Skills" in r.data

    client.post("/projects/p1/delete", data={})
    assert any(p["id"] == "p1" for p in repository.tables["projects"])

    client.post("/projects/p1/delete", data={"confirm": "yes"})
    assert not any(p["id"] == "p1" for p in repository.tables["projects"])
    assert [a["id"] for a in repository.tables["activities"]] == ["a3"]


def test_project_csv_export(client):
    r = client.get("/projects/export.csv")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    lines = r.data.decode().splitlines()
    assert lines[0].startswith('"name","responsible"')
    assert len(lines) == 3


def test_empty_export_redirects(empty_repository):
    client = create_app(TestConfig, repository=empty_repository).test_client()
    r = client.get("/beneficiaries/export.csv")
    assert r.status_code == 302


def test_activity_pages(client):
    assert client.get("/activities/?type=workshop").status_code == 200
    r = client.get("/activities/a1")
    assert b"Youth Skills" in r.data
    assert client.get("/activities/create?project_id=p1").status_code == 200
    assert client.get("/activities/a1/edit").status_code == 200


def test_invalid_coordinates_rejected(client, repository):
    r = client.post("/activities/create", data={
        "name": "Outreach", "project_id": "p1", "type": "awareness",
        "activity_date": "2024-06-01", "location": "Kolda", "latitude": "95", "longitude": "10",
    })
    assert r.status_code == 200
    assert repository.writes() == []


def test_beneficiary_pages(client):
    r = client.get("/beneficiaries/?category=women")
    assert r.status_code == 200
    assert b"BEN-001" in r.data
    assert b"BEN-002" not in r.data
    assert client.get("/beneficiaries/b1").status_code == 200
    assert client.get("/beneficiaries/create").status_code == 200


def test_edit_beneficiary(client, repository):
    r = client.post("/beneficiaries/b2/edit", data={
        "code_name": "BEN-002", "sex": "M", "age": "20", "category": "youth", "status": "graduated",
    })
    assert r.status_code == 302
    row = [b for b in repository.tables["beneficiaries"] if b["id"] == "b2"][0]
    assert row["status"] == "graduated"
    assert row["age"] == 20


def test_map_page(client):
    r = client.get("/map/?project_id=p1")
    assert r.status_code == 200
    assert b"Sewing training" in r.data
    assert b"Leadership workshop" not in r.data


def test_map_geojson_export(client):
    r = client.get("/map/export.geojson")
    data = json.loads(r.data)
    assert len(data["features"]) == 2


def test_map_export_without_data_redirects(client):
    r = client.get("/map/export.geojson?type=advocacy")
    assert r.status_code == 302


def test_reports(client):
    assert client.get("/reports/").status_code == 200
    r = client.get("/reports/monthly.pdf")
    assert r.status_code == 200
    assert r.data.startswith(b"%PDF")
    assert client.get("/reports/weekly.pdf").status_code == 302
    assert client.get("/reports/monthly.docx").status_code == 200
    assert client.get("/reports/export.xlsx").status_code == 200


def test_admin(client):
    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"City Council" in r.data
    assert b"People trained" in r.data


def test_synchronize(client, repository):
    r = client.post("/admin/sync", follow_redirects=True)
    assert b"Synchronization complete." in r.data

    repository.failing.add("projects")
    r = client.post("/admin/sync", follow_redirects=True)
    assert b"Synchronization failed" in r.data


class CsrfConfig(TestConfig):
    WTF_CSRF_ENABLED = True


def test_infinite_age_rerenders_form(client, repository):
    r = client.post("/beneficiaries/create", data={
        "code_name": "BEN-9", "sex": "F", "age": "inf", "category": "women",
    })
    assert r.status_code == 200
    assert b"must be a finite number" in r.data
    assert repository.writes() == []


def test_post_without_csrf_token_is_refused(repository):
    client = create_app(CsrfConfig, repository=repository).test_client()
    r = client.post("/projects/p1/delete", data={"confirm": "yes"})
    assert r.status_code == 400
    assert any(p["id"] == "p1" for p in repository.tables["projects"])


def test_post_with_csrf_token_from_form(repository):
    client = create_app(CsrfConfig, repository=repository).test_client()
    page = client.get("/projects/p1/delete").data.decode()
    token = re.search(r'name="csrf_token" value="([^"]+)"', page).group(1)
    r = client.post("/projects/p1/delete", data={"confirm": "yes", "csrf_token": token})
    assert r.status_code == 302
    assert not any(p["id"] == "p1" for p in repository.tables["projects"])
