from __future__ import annotations

from flask import Flask, jsonify, session

from ..common.request_args import json_body, optional_int
from ..common.serialization import to_jsonable
from ..core.enums import PermissionLevel
from ..container import Container
from ..rbac.decorators import make_permissions_required


def register(app: Flask, container: Container) -> None:
    permissions_required = make_permissions_required(container.guard)
    service = container.timer_service

    def _me() -> int:
        return int(session["user_id"])

    @app.route("/time-tracking/timer/start", methods=["POST"], endpoint="timer_start")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def start_timer():
        data = json_body()
        status = service.start_timer(
            _me(),
            company_id=optional_int(data.get("company_id"), "company_id"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "timer": to_jsonable(status)}), 201

    @app.route("/time-tracking/timer/stop", methods=["POST"], endpoint="timer_stop")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def stop_timer():
        data = json_body()
        status = service.stop_timer(
            _me(),
            break_minutes=optional_int(data.get("break_minutes"), "break_minutes") or 0,
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "timer": to_jsonable(status)})

    @app.route("/time-tracking/timer/status", methods=["GET"], endpoint="timer_status")
    @permissions_required("time:list", level=PermissionLevel.LIMITED)
    def timer_status():
        return jsonify({"success": True, "timer": to_jsonable(service.get_timer_status(_me()))})

    @app.route("/time-tracking/timer/cancel", methods=["DELETE", "POST"], endpoint="timer_cancel")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def cancel_timer():
        service.cancel_timer(_me())
        return jsonify({"success": True, "message": "Timer cancelled successfully"})

    @app.route("/time-tracking/timer/pause", methods=["POST"], endpoint="timer_pause")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def pause_timer():
        return jsonify({"success": True, "timer": to_jsonable(service.pause_timer(_me()))})

    @app.route("/time-tracking/timer/resume", methods=["POST"], endpoint="timer_resume")
    @permissions_required("time:create", level=PermissionLevel.LIMITED)
    def resume_timer():
        return jsonify({"success": True, "timer": to_jsonable(service.resume_timer(_me()))})
