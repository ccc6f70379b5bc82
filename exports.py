import csv
import io
from datetime import date
from io import BytesIO

import pandas as pd
from openpyxl.utils import get_column_letter

from aggregation import beneficiary_stats, general_stats


def export_filename(entity, ext, day=None):
    return f"{entity}_{(day or date.today()).isoformat()}.{ext}"


def export_table(rows):
    """Comma separated text, every field quoted; header taken from the first row."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if row.get(h) is None else str(row.get(h)) for h in headers])
    return buf.getvalue().rstrip("\n")


def export_geojson(activities, project_names=None):
    project_names = project_names or {}
    features = []
    for a in activities:
        if not a.has_coordinates:
            continue
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [a.longitude, a.latitude]},
            "properties": {
                "id": a.id,
                "name": a.name,
                "type": a.type,
                "project": project_names.get(str(a.project_id)),
                "activity_date": a.activity_date.isoformat() if a.activity_date else None,
                "location": a.location,
                "beneficiary_count": a.beneficiary_count or 0,
                "status": a.status,
                "responsible": a.responsible,
            },
        })
    return {"type": "FeatureCollection", "features": features}


def statistics_rows(projects, activities, beneficiaries):
    g = general_stats(projects, activities, beneficiaries)
    b = beneficiary_stats(beneficiaries)
    return [
        {"Indicator": "Total projects", "Value": g["total_projects"]},
        {"Indicator": "Active projects", "Value": g["active_projects"]},
        {"Indicator": "Total activities", "Value": g["total_activities"]},
        {"Indicator": "Done activities", "Value": g["done_activities"]},
        {"Indicator": "Total beneficiaries", "Value": b["total"]},
        {"Indicator": "Women (%)", "Value": b["women_pct"]},
        {"Indicator": "Men (%)", "Value": b["men_pct"]},
        {"Indicator": "Mean age", "Value": b["age_mean"]},
        {"Indicator": "Planned budget", "Value": g["total_budget"]},
        {"Indicator": "Realized budget", "Value": g["realized_budget"]},
        {"Indicator": "Budget execution (%)", "Value": g["budget_execution_rate"]},
    ]


def export_workbook(sheets):
    """Write {sheet title: rows} to an .xlsx workbook and return its bytes."""
    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as writer:
        for title, rows in sheets.items():
            df = pd.DataFrame(rows)
            df.to_excel(writer, sheet_name=title[:31], index=False)

        for ws in writer.book.worksheets:
            for col in range(1, ws.max_column + 1):
                max_len = 0
                col_letter = get_column_letter(col)
                for cell in ws[col_letter]:
                    v = "" if cell.value is None else str(cell.value)
                    if len(v) > max_len:
                        max_len = len(v)
                ws.column_dimensions[col_letter].width = min(max_len + 2, 60)

    bio.seek(0)
    return bio.getvalue()
