from __future__ import annotations

import csv
import io

from flask import Flask, jsonify, request, session

from ..common.request_args import json_body, optional_date, optional_int, required_date
from ..common.serialization import to_jsonable
from ..core.enums import PermissionLevel
from ..container import Container
from ..rbac.decorators import current_decision, ensure_user_in_scope, make_permissions_required
from ..time_entries.controller import parse_status
from .model import TimeReport


def register(app: Flask, container: Container) -> None:
    permissions_required = make_permissions_required(container.guard)
    service = container.timesheet_service

    def _load_in_scope(timesheet_id: int, key: str):
        view = service.get_timesheet(timesheet_id)
        ensure_user_in_scope(current_decision(), view.timesheet.user_id, key)
        return view

    def _write_report_csv(*, report: TimeReport, filename: str):
        """One row per entry, grouped by user in report order."""

        out = io.StringIO()
        writer = csv.DictWriter(
            out,
            fieldnames=[
                "work_date",
                "user_id",
                "display_name",
                "company_id",
                "start_at",
                "end_at",
                "break_minutes",
                "duration_minutes",
                "status",
                "notes",
            ],
        )
        writer.writeheader()
        for user in report.users:
            for entry in user.entries:
                writer.writerow(
                    {
                        "work_date": entry.work_date.isoformat(),
                        "user_id": user.user_id,
                        "display_name": user.display_name or "",
                        "company_id": entry.company_id if entry.company_id is not None else "",
                        "start_at": entry.start_at.isoformat(timespec="minutes") if entry.start_at else "",
                        "end_at": entry.end_at.isoformat(timespec="minutes") if entry.end_at else "",
                        "break_minutes": entry.break_minutes,
                        "duration_minutes": entry.duration_minutes,
                        "status": entry.status.value,
                        "notes": entry.notes or "",
                    }
                )

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    def _build_report() -> TimeReport:
        args = request.args
        return service.generate_time_report(
            start_date=required_date(args.get("start_date"), "start_date"),
            end_date=required_date(args.get("end_date"), "end_date"),
            user_id=optional_int(args.get("user_id"), "user_id"),
            company_id=optional_int(args.get("company_id"), "company_id"),
            status=parse_status(args.get("status")),
            user_ids=current_decision().scope.user_ids,
        )

    @app.route("/time-tracking/timesheets", methods=["POST"], endpoint="timesheets_create")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def create_timesheet():
        data = json_body()
        user_id = optional_int(data.get("user_id"), "user_id") or int(session["user_id"])
        ensure_user_in_scope(current_decision(), user_id, "time:create")

        view = service.create_timesheet(
            user_id=user_id,
            week_start_date=required_date(data.get("week_start_date"), "week_start_date"),
        )
        return jsonify({"success": True, "timesheet": to_jsonable(view)}), 201

    @app.route("/time-tracking/timesheets", methods=["GET"], endpoint="timesheets_list")
    @permissions_required("time:list", level=PermissionLevel.LIMITED)
    def list_timesheets():
        args = request.args
        views = service.list_timesheets(
            user_id=optional_int(args.get("user_id"), "user_id"),
            user_ids=current_decision().scope.user_ids,
            start_date=optional_date(args.get("start_date")),
            end_date=optional_date(args.get("end_date")),
            status=parse_status(args.get("status")),
        )
        return jsonify({"success": True, "timesheets": to_jsonable(views)})

    @app.route("/time-tracking/timesheets/<int:timesheet_id>", methods=["GET"], endpoint="timesheets_get")
    @permissions_required("time:list", level=PermissionLevel.LIMITED)
    def get_timesheet(timesheet_id: int):
        view = _load_in_scope(timesheet_id, "time:list")
        return jsonify({"success": True, "timesheet": to_jsonable(view)})

    @app.route("/time-tracking/timesheets/<int:timesheet_id>/submit", methods=["POST"], endpoint="timesheets_submit")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def submit_timesheet(timesheet_id: int):
        _load_in_scope(timesheet_id, "time:create")
        return jsonify({"success": True, "timesheet": to_jsonable(service.submit_timesheet(timesheet_id))})

    @app.route("/time-tracking/timesheets/<int:timesheet_id>/approve", methods=["POST"], endpoint="timesheets_approve")
    @permissions_required("time:approve")
    def approve_timesheet(timesheet_id: int):
        return jsonify({"success": True, "timesheet": to_jsonable(service.approve_timesheet(timesheet_id))})

    @app.route("/time-tracking/timesheets/<int:timesheet_id>/reject", methods=["POST"], endpoint="timesheets_reject")
    @permissions_required("time:approve")
    def reject_timesheet(timesheet_id: int):
        return jsonify({"success": True, "timesheet": to_jsonable(service.reject_timesheet(timesheet_id))})

    @app.route("/time-tracking/reports/time", methods=["GET"], endpoint="time_report")
    @permissions_required("time:list")
    def time_report():
        return jsonify({"success": True, "report": to_jsonable(_build_report())})

    @app.route("/time-tracking/reports.csv", methods=["GET"], endpoint="time_report_csv")
    @permissions_required("time:list")
    def time_report_csv():
        report = _build_report()
        filename = f"time_report_{report.start_date.strftime('%Y%m%d')}_{report.end_date.strftime('%Y%m%d')}.csv"
        return _write_report_csv(report=report, filename=filename)
