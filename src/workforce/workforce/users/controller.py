from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.request_args import json_body
from ..common.serialization import to_jsonable
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS
from ..rbac.decorators import login_required


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

    @app.route("/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email") or "", data.get("password") or "")

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        session["user_id"] = s_user.user_id
        session["email"] = s_user.email
        session["name"] = s_user.display_name

        return jsonify({"success": True, "user": to_jsonable(s_user)})

    @app.route("/auth/logout", methods=["POST"], endpoint="auth_logout")
    def logout():
        session.clear()
        return jsonify({"success": True, "message": "Logged out"})

    @app.route("/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        user_id = int(session["user_id"])
        return jsonify(
            {
                "success": True,
                "user": {
                    "user_id": user_id,
                    "email": session.get("email"),
                    "display_name": session.get("name"),
                },
                "roles": to_jsonable(container.rbac_service.get_user_roles(user_id)),
                "permissions": to_jsonable(container.rbac_service.get_user_permissions(user_id)),
            }
        )
