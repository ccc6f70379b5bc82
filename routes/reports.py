from io import BytesIO
from flask import render_template, redirect, url_for, flash, send_file
from exports import export_filename
from reporting import TEMPLATES, TITLES
from routes import bp_reports, get_console


@bp_reports.get("/")
def report_home():
    return render_template("reports/home.html", templates=TEMPLATES, titles=TITLES)

@bp_reports.get("/<template>.pdf")
def generate_report(template):
    if template not in TEMPLATES:
        flash(f"Unknown report type: {template}", "error")
        return redirect(url_for("reports.report_home"))

    pdf, filename = get_console().reports.build(template)
    flash(f"{TITLES[template]} generated.", "success")
    return send_file(
        BytesIO(pdf),
        as_attachment=True,
        download_name=filename,
        mimetype="application/pdf",
    )

@bp_reports.get("/monthly.docx")
def export_monthly_docx():
    doc, filename = get_console().reports.build_docx()
    return send_file(
        BytesIO(doc),
        as_attachment=True,
        download_name=filename,
        mimetype="application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )

@bp_reports.get("/export.xlsx")
def export_workbook():
    data = get_console().export_workbook()
    return send_file(
        BytesIO(data),
        as_attachment=True,
        download_name=export_filename("export", "xlsx"),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
