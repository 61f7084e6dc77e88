"""
Report Service - read-only aggregates for the admin dashboard.

Provides:
- Dashboard stats (totals, status breakdown, 6-month growth, recent activity)
- Period reports (monthly evolution, domains, top companies, acceptance rate)
- Pivot table: students who applied per company and education level
- CSV / PDF export of a period report

Monthly series are bucketed in Python so the same queries run on every
backend; months without activity are reported with zeros.
"""

import csv
import io
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import DateTime, bindparam, text

from espacestage.db.postgres import Database
from espacestage.schemas.schemas import ApplicationStatus, EducationLevel, ExportFormat, ReportPeriod

PERIOD_MONTHS = {
    ReportPeriod.one_month: 1,
    ReportPeriod.three_months: 3,
    ReportPeriod.six_months: 6,
    ReportPeriod.one_year: 12,
}

STATS_GROWTH_MONTHS = 6
PIVOT_WINDOW_DAYS = 365
RECENT_ACTIVITY_LIMIT = 10
TOP_LIMIT = 10

LEVELS = [level.value for level in EducationLevel]

TimestampType = DateTime(timezone=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_starts(now: datetime, count: int) -> List[date]:
    """First day of the last `count` months, oldest first, current month included."""
    year, month = now.year, now.month
    starts = []
    for _ in range(count):
        starts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    return list(reversed(starts))


def _full_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    return " ".join(part for part in (first_name, last_name) if part) or None


class ReportService:
    def __init__(self, db: Database):
        self.db = db

    def _timestamped(self, sql: str, params: dict, *columns: str) -> List[dict]:
        """Run a query whose `since` parameter and given columns are timestamps."""
        stmt = text(sql)
        if "since" in params:
            stmt = stmt.bindparams(bindparam("since", type_=TimestampType))
        stmt = stmt.columns(**{name: TimestampType for name in columns})
        with self.db.session() as session:
            return [dict(row) for row in session.execute(stmt, params).mappings()]

    # ------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------

    def totals(self) -> Dict[str, int]:
        row = self.db.fetch_one("""
            SELECT
                (SELECT COUNT(*) FROM accounts WHERE role = 'student') AS students,
                (SELECT COUNT(*) FROM accounts WHERE role = 'company') AS companies,
                (SELECT COUNT(*) FROM offers) AS offers,
                (SELECT COUNT(*) FROM applications) AS applications
        """)
        return {key: int(value) for key, value in row.items()}

    def applications_by_status(self) -> List[dict]:
        rows = self.db.execute_raw_sql("SELECT status, COUNT(*) AS count FROM applications GROUP BY status")
        counts = {row["status"]: int(row["count"]) for row in rows}
        return [{"status": status.value, "count": counts.get(status.value, 0)} for status in ApplicationStatus]

    def monthly_series(self, months: int, now: Optional[datetime] = None) -> List[dict]:
        now = now or _utcnow()
        starts = month_starts(now, months)
        since = datetime(starts[0].year, starts[0].month, 1, tzinfo=timezone.utc)
        buckets = {
            start.strftime("%Y-%m"): {"month": start.strftime("%Y-%m"), "students": 0,
                                      "companies": 0, "offers": 0, "applications": 0}
            for start in starts
        }

        def tally(rows: List[dict], key_for) -> None:
            for row in rows:
                bucket = buckets.get(row["ts"].strftime("%Y-%m"))
                if bucket is not None:
                    bucket[key_for(row)] += 1

        tally(self._timestamped("""
            SELECT role, created_at AS ts FROM accounts
            WHERE role IN ('student', 'company') AND created_at >= :since
        """, {"since": since}, "ts"), lambda row: "students" if row["role"] == "student" else "companies")
        tally(self._timestamped(
            "SELECT created_at AS ts FROM offers WHERE created_at >= :since", {"since": since}, "ts"
        ), lambda row: "offers")
        tally(self._timestamped(
            "SELECT submitted_at AS ts FROM applications WHERE submitted_at >= :since", {"since": since}, "ts"
        ), lambda row: "applications")

        return [buckets[start.strftime("%Y-%m")] for start in starts]

    def recent_activity(self, limit: int = RECENT_ACTIVITY_LIMIT) -> List[dict]:
        """Latest registrations, offers and applications, merged newest first."""
        per_source = {"limit": 5}
        students = self._timestamped("""
            SELECT a.email, a.created_at AS time, sp.first_name, sp.last_name
            FROM accounts a LEFT JOIN student_profiles sp ON sp.account_id = a.id
            WHERE a.role = 'student' ORDER BY a.created_at DESC, a.id DESC LIMIT :limit
        """, per_source, "time")
        companies = self._timestamped("""
            SELECT a.email, a.created_at AS time, cp.company_name
            FROM accounts a LEFT JOIN company_profiles cp ON cp.account_id = a.id
            WHERE a.role = 'company' ORDER BY a.created_at DESC, a.id DESC LIMIT :limit
        """, per_source, "time")
        offers = self._timestamped("""
            SELECT o.title, o.created_at AS time, cp.company_name
            FROM offers o LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
            ORDER BY o.created_at DESC, o.id DESC LIMIT :limit
        """, per_source, "time")
        applications = self._timestamped("""
            SELECT o.title, ap.submitted_at AS time, sp.first_name, sp.last_name
            FROM applications ap
            JOIN offers o ON o.id = ap.offer_id
            LEFT JOIN student_profiles sp ON sp.account_id = ap.student_account_id
            ORDER BY ap.submitted_at DESC, ap.id DESC LIMIT :limit
        """, per_source, "time")

        activity = (
            [{"type": "student", "name": r["email"], "time": r["time"],
              "details": _full_name(r["first_name"], r["last_name"])} for r in students]
            + [{"type": "company", "name": r["email"], "time": r["time"],
                "details": r["company_name"]} for r in companies]
            + [{"type": "offer", "name": r["title"], "time": r["time"],
                "details": r["company_name"]} for r in offers]
            + [{"type": "application", "name": r["title"], "time": r["time"],
                "details": _full_name(r["first_name"], r["last_name"])} for r in applications]
        )
        activity.sort(key=lambda item: item["time"], reverse=True)
        return activity[:limit]

    def by_domain(self) -> List[dict]:
        rows = self.db.execute_raw_sql("""
            SELECT o.domain,
                   COUNT(DISTINCT ap.student_account_id) AS students,
                   COUNT(DISTINCT o.id) AS offers
            FROM offers o
            LEFT JOIN applications ap ON ap.offer_id = o.id
            WHERE o.domain IS NOT NULL
            GROUP BY o.domain
            ORDER BY COUNT(DISTINCT o.id) DESC, o.domain
            LIMIT :limit
        """, {"limit": TOP_LIMIT})
        return [{"domain": r["domain"], "students": int(r["students"]), "offers": int(r["offers"])} for r in rows]

    def top_companies(self) -> List[dict]:
        rows = self.db.execute_raw_sql("""
            SELECT cp.company_name,
                   COUNT(DISTINCT o.id) AS offer_count,
                   COUNT(DISTINCT ap.id) AS application_count
            FROM company_profiles cp
            LEFT JOIN offers o ON o.company_account_id = cp.account_id
            LEFT JOIN applications ap ON ap.offer_id = o.id
            GROUP BY cp.account_id, cp.company_name
            ORDER BY offer_count DESC, application_count DESC, cp.company_name
            LIMIT :limit
        """, {"limit": TOP_LIMIT})
        return [
            {"company_name": r["company_name"], "offer_count": int(r["offer_count"]),
             "application_count": int(r["application_count"])}
            for r in rows
        ]

    # ------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------

    def stats(self) -> dict:
        return {
            "totals": self.totals(),
            "applications_by_status": self.applications_by_status(),
            "monthly_growth": self.monthly_series(STATS_GROWTH_MONTHS),
            "recent_activity": self.recent_activity(),
        }

    def report(self, period: ReportPeriod) -> dict:
        by_status = self.applications_by_status()
        total = sum(item["count"] for item in by_status)
        accepted = next(item["count"] for item in by_status if item["status"] == ApplicationStatus.accepted.value)
        return {
            "period": period.value,
            "generated_at": _utcnow(),
            "totals": self.totals(),
            "monthly_evolution": self.monthly_series(PERIOD_MONTHS[period]),
            "by_domain": self.by_domain(),
            "applications_by_status": by_status,
            "top_companies": self.top_companies(),
            "acceptance_rate": round(accepted * 100.0 / total, 2) if total else 0.0,
        }

    def pivot(self, now: Optional[datetime] = None) -> dict:
        """Distinct students who applied in the last 12 months, per company and level."""
        since = (now or _utcnow()) - timedelta(days=PIVOT_WINDOW_DAYS)
        rows = self._timestamped("""
            SELECT COALESCE(cp.company_name, ca.email) AS company_name,
                   sp.education_level,
                   COUNT(DISTINCT ap.student_account_id) AS students
            FROM applications ap
            JOIN student_profiles sp ON sp.account_id = ap.student_account_id
            JOIN offers o ON o.id = ap.offer_id
            JOIN accounts ca ON ca.id = o.company_account_id
            LEFT JOIN company_profiles cp ON cp.account_id = o.company_account_id
            WHERE ap.submitted_at >= :since
              AND sp.education_level IN ('L1', 'L2', 'L3', 'M1', 'M2')
            GROUP BY COALESCE(cp.company_name, ca.email), sp.education_level
        """, {"since": since})

        table: Dict[str, Dict[str, int]] = {}
        for row in rows:
            counts = table.setdefault(row["company_name"], {level: 0 for level in LEVELS})
            counts[row["education_level"]] = int(row["students"])

        pivot_rows = [
            {"company_name": name, "counts": counts, "total": sum(counts.values())}
            for name, counts in sorted(table.items())
        ]
        column_totals = {level: sum(row["counts"][level] for row in pivot_rows) for level in LEVELS}
        return {
            "levels": LEVELS,
            "rows": pivot_rows,
            "column_totals": column_totals,
            "grand_total": sum(column_totals.values()),
        }

    # ------------------------------------------------------------
    # Export
    # ------------------------------------------------------------

    def export(self, period: ReportPeriod, export_format: ExportFormat) -> Tuple[bytes, str, str]:
        """
        Render a period report as a downloadable file.

        Returns:
            Tuple of (content, media_type, filename)
        """
        report = self.report(period)
        stamp = report["generated_at"].strftime("%Y%m%d")
        if export_format == ExportFormat.csv:
            return self._generate_csv(report), "text/csv; charset=utf-8", f"report_{period.value}_{stamp}.csv"
        return self._generate_pdf(report), "application/pdf", f"report_{period.value}_{stamp}.pdf"

    @staticmethod
    def _sections(report: dict) -> List[Tuple[str, List[List[object]]]]:
        """Report as (title, rows) tables; first row of each table is its header."""
        totals = report["totals"]
        return [
            ("Totals", [
                ["Metric", "Value"],
                ["Students", totals["students"]],
                ["Companies", totals["companies"]],
                ["Offers", totals["offers"]],
                ["Applications", totals["applications"]],
                ["Acceptance rate (%)", report["acceptance_rate"]],
            ]),
            ("Monthly evolution", [["Month", "Students", "Companies", "Offers", "Applications"]] + [
                [m["month"], m["students"], m["companies"], m["offers"], m["applications"]]
                for m in report["monthly_evolution"]
            ]),
            ("By domain", [["Domain", "Students", "Offers"]] + [
                [d["domain"], d["students"], d["offers"]] for d in report["by_domain"]
            ]),
            ("Applications by status", [["Status", "Count"]] + [
                [s["status"], s["count"]] for s in report["applications_by_status"]
            ]),
            ("Top companies", [["Company", "Offers", "Applications"]] + [
                [c["company_name"] or "N/A", c["offer_count"], c["application_count"]]
                for c in report["top_companies"]
            ]),
        ]

    def _generate_csv(self, report: dict) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer)

        writer.writerow([f"EspaceStage report ({report['period']})"])
        writer.writerow([f"Generated: {report['generated_at'].strftime('%Y-%m-%d %H:%M:%S')} UTC"])
        writer.writerow([])

        for title, rows in self._sections(report):
            writer.writerow([title])
            writer.writerows(rows)
            writer.writerow([])

        # BOM so spreadsheet tools detect UTF-8
        return ("\ufeff" + buffer.getvalue()).encode("utf-8")

    def _generate_pdf(self, report: dict) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, title="EspaceStage report")
        styles = getSampleStyleSheet()
        elements = [
            Paragraph(f"EspaceStage report ({report['period']})", styles["Title"]),
            Paragraph(f"Generated: {report['generated_at'].strftime('%Y-%m-%d %H:%M:%S')} UTC", styles["Normal"]),
            Spacer(1, 20),
        ]

        for title, rows in self._sections(report):
            elements.append(Paragraph(title, styles["Heading2"]))
            if len(rows) == 1:
                elements.append(Paragraph("No data", styles["Normal"]))
            else:
                table = Table([[str(cell) for cell in row] for row in rows])
                table.setStyle(TableStyle([
                    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 10),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                ]))
                elements.append(table)
            elements.append(Spacer(1, 15))

        doc.build(elements)
        return buffer.getvalue()


def get_report_service(request: Request) -> ReportService:
    return ReportService(request.app.state.db)
