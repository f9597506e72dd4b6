from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request, session

from ..common.request_args import json_body, optional_date, optional_datetime, optional_int, required_date
from ..common.serialization import to_jsonable
from ..core.enums import EntryStatus, PermissionLevel
from ..core.exceptions import ValidationError
from ..container import Container
from ..rbac.decorators import current_decision, ensure_user_in_scope, make_permissions_required

_DATE_FIELDS = {"work_date"}
_DATETIME_FIELDS = {"start_at", "end_at"}
_INT_FIELDS = {"duration_minutes", "break_minutes", "company_id"}


def parse_status(value) -> Optional[EntryStatus]:
    if not value:
        return None
    try:
        return EntryStatus(str(value).upper())
    except ValueError:
        raise ValidationError(f"Invalid status {value!r}")


def register(app: Flask, container: Container) -> None:
    permissions_required = make_permissions_required(container.guard)
    service = container.time_entry_service

    def _load_in_scope(entry_id: int, key: str):
        entry = service.get_entry(entry_id)
        ensure_user_in_scope(current_decision(), entry.user_id, key)
        return entry

    @app.route("/time-tracking/entries", methods=["POST"], endpoint="time_entries_create")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def create_entry():
        data = json_body()
        user_id = optional_int(data.get("user_id"), "user_id") or int(session["user_id"])
        ensure_user_in_scope(current_decision(), user_id, "time:create")

        entry = service.create_entry(
            user_id=user_id,
            work_date=required_date(data.get("work_date"), "work_date"),
            start_at=optional_datetime(data.get("start_at")),
            end_at=optional_datetime(data.get("end_at")),
            duration_minutes=optional_int(data.get("duration_minutes"), "duration_minutes"),
            break_minutes=optional_int(data.get("break_minutes"), "break_minutes") or 0,
            company_id=optional_int(data.get("company_id"), "company_id"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "entry": to_jsonable(entry)}), 201

    @app.route("/time-tracking/entries", methods=["GET"], endpoint="time_entries_list")
    @permissions_required("time:list", level=PermissionLevel.LIMITED)
    def list_entries():
        args = request.args
        entries = service.list_entries(
            user_id=optional_int(args.get("user_id"), "user_id"),
            user_ids=current_decision().scope.user_ids,
            start_date=optional_date(args.get("start_date")),
            end_date=optional_date(args.get("end_date")),
            company_id=optional_int(args.get("company_id"), "company_id"),
            status=parse_status(args.get("status")),
        )
        return jsonify({"success": True, "entries": to_jsonable(entries)})

    @app.route("/time-tracking/entries/<int:entry_id>", methods=["GET"], endpoint="time_entries_get")
    @permissions_required("time:list", level=PermissionLevel.LIMITED)
    def get_entry(entry_id: int):
        entry = _load_in_scope(entry_id, "time:list")
        return jsonify({"success": True, "entry": to_jsonable(entry)})

    @app.route("/time-tracking/entries/<int:entry_id>", methods=["PUT", "PATCH"], endpoint="time_entries_update")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def update_entry(entry_id: int):
        _load_in_scope(entry_id, "time:create")

        data = dict(json_body())
        if "status" in data:
            raise ValidationError("Status changes go through submit/approve/reject")

        changes = {}
        for name, raw in data.items():
            if name in _DATE_FIELDS:
                changes[name] = optional_date(raw)
            elif name in _DATETIME_FIELDS:
                changes[name] = optional_datetime(raw)
            elif name in _INT_FIELDS:
                changes[name] = optional_int(raw, name)
            else:
                changes[name] = raw

        entry = service.update_entry(entry_id, **changes)
        return jsonify({"success": True, "entry": to_jsonable(entry)})

    @app.route("/time-tracking/entries/<int:entry_id>", methods=["DELETE"], endpoint="time_entries_delete")
    @permissions_required("time:update")
    def delete_entry(entry_id: int):
        service.delete_entry(entry_id)
        return jsonify({"success": True, "message": "Time entry deleted"})

    @app.route("/time-tracking/entries/<int:entry_id>/submit", methods=["POST"], endpoint="time_entries_submit")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def submit_entry(entry_id: int):
        _load_in_scope(entry_id, "time:create")
        entry = service.submit_entry(entry_id)
        return jsonify({"success": True, "entry": to_jsonable(entry)})

    @app.route("/time-tracking/entries/<int:entry_id>/approve", methods=["POST"], endpoint="time_entries_approve")
    @permissions_required("time:approve")
    def approve_entry(entry_id: int):
        entry = service.approve_entry(entry_id)
        return jsonify({"success": True, "entry": to_jsonable(entry)})

    @app.route("/time-tracking/entries/<int:entry_id>/reject", methods=["POST"], endpoint="time_entries_reject")
    @permissions_required("time:approve")
    def reject_entry(entry_id: int):
        entry = service.reject_entry(entry_id)
        return jsonify({"success": True, "entry": to_jsonable(entry)})
