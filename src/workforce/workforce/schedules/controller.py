from __future__ import annotations

from typing import Any, Optional, Sequence

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_hhmm
from ..common.request_args import json_body, optional_int, required_date
from ..common.serialization import to_jsonable
from ..core.enums import PermissionLevel
from ..core.exceptions import ValidationError
from ..container import Container
from ..rbac.decorators import current_decision, ensure_user_in_scope, make_permissions_required
from .model import ScheduleDay


def parse_days(raw: Any) -> Optional[Sequence[ScheduleDay]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError("days must be a list")

    days = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each day must be an object")
        weekday = optional_int(item.get("weekday"), "weekday")
        if weekday is None:
            raise ValidationError("weekday is required")
        days.append(
            ScheduleDay(
                weekday=weekday,
                work_start=parse_hhmm(item.get("work_start")),
                work_end=parse_hhmm(item.get("work_end")),
                lunch_start=parse_hhmm(item.get("lunch_start")),
                lunch_end=parse_hhmm(item.get("lunch_end")),
                is_day_off=bool(item.get("is_day_off", False)),
            )
        )
    return days


def register(app: Flask, container: Container) -> None:
    permissions_required = make_permissions_required(container.guard)
    service = container.schedule_service

    @app.route("/schedules", methods=["POST"], endpoint="schedules_create")
    @permissions_required("schedules:create")
    def create_schedule():
        data = json_body()
        schedule = service.create_schedule(
            user_id=optional_int(data.get("user_id"), "user_id") or int(session["user_id"]),
            name=data.get("name") or "",
            days=parse_days(data.get("days")) or [],
            timezone=data.get("timezone"),
            is_default=bool(data.get("is_default", False)),
        )
        return jsonify({"success": True, "schedule": to_jsonable(schedule)}), 201

    @app.route("/schedules", methods=["GET"], endpoint="schedules_list")
    @permissions_required("schedules:list", level=PermissionLevel.LIMITED)
    def list_schedules():
        user_id = optional_int(request.args.get("user_id"), "user_id")
        scope = current_decision().scope
        if scope.user_ids is not None:
            if user_id is None:
                user_id = int(session["user_id"])
            ensure_user_in_scope(current_decision(), user_id, "schedules:list")
        return jsonify({"success": True, "schedules": to_jsonable(service.list_schedules(user_id=user_id))})

    @app.route("/schedules/<int:schedule_id>", methods=["GET"], endpoint="schedules_get")
    @permissions_required("schedules:list", level=PermissionLevel.LIMITED)
    def get_schedule(schedule_id: int):
        schedule = service.get_schedule(schedule_id)
        ensure_user_in_scope(current_decision(), schedule.user_id, "schedules:list")
        return jsonify({"success": True, "schedule": to_jsonable(schedule)})

    @app.route("/schedules/<int:schedule_id>", methods=["PUT", "PATCH"], endpoint="schedules_update")
    @permissions_required("schedules:update")
    def update_schedule(schedule_id: int):
        data = json_body()
        schedule = service.update_schedule(
            schedule_id,
            name=data.get("name"),
            timezone=data.get("timezone"),
            is_default=bool(data["is_default"]) if "is_default" in data else None,
            days=parse_days(data.get("days")),
        )
        return jsonify({"success": True, "schedule": to_jsonable(schedule)})

    @app.route("/schedules/<int:schedule_id>", methods=["DELETE"], endpoint="schedules_delete")
    @permissions_required("schedules:delete")
    def delete_schedule(schedule_id: int):
        service.delete_schedule(schedule_id)
        return jsonify({"success": True, "message": "Schedule deleted"})

    @app.route("/schedules/working-hours", methods=["GET"], endpoint="schedules_working_hours")
    @permissions_required("schedules:list", level=PermissionLevel.LIMITED)
    def working_hours():
        user_id = optional_int(request.args.get("user_id"), "user_id") or int(session["user_id"])
        ensure_user_in_scope(current_decision(), user_id, "schedules:list")
        hours = service.get_working_hours_for_date(user_id, required_date(request.args.get("date"), "date"))
        return jsonify({"success": True, "working_hours": to_jsonable(hours)})
