from __future__ import annotations

from flask import Flask, jsonify

from ..common.request_args import json_body
from ..common.serialization import to_jsonable
from ..core.enums import PermissionLevel
from ..core.exceptions import ValidationError
from ..container import Container
from .decorators import current_decision, ensure_user_in_company_scope, make_permissions_required


def register(app: Flask, container: Container) -> None:
    permissions_required = make_permissions_required(container.guard)
    service = container.rbac_service

    # -------- Roles --------
    @app.route("/rbac/roles", methods=["POST"], endpoint="rbac_roles_create")
    @permissions_required("users:create")
    def create_role():
        data = json_body()
        role = service.create_role(name=data.get("name") or "", description=data.get("description"))
        return jsonify({"success": True, "role": to_jsonable(role)}), 201

    @app.route("/rbac/roles", methods=["GET"], endpoint="rbac_roles_list")
    @permissions_required("users:view")
    def list_roles():
        return jsonify({"success": True, "roles": to_jsonable(service.list_roles())})

    @app.route("/rbac/roles/<int:role_id>", methods=["GET"], endpoint="rbac_roles_get")
    @permissions_required("users:view")
    def get_role(role_id: int):
        return jsonify({"success": True, "role": to_jsonable(service.get_role(role_id))})

    @app.route("/rbac/roles/<int:role_id>", methods=["PATCH", "PUT"], endpoint="rbac_roles_update")
    @permissions_required("users:update")
    def update_role(role_id: int):
        data = json_body()
        role = service.update_role(role_id, name=data.get("name"), description=data.get("description"))
        return jsonify({"success": True, "role": to_jsonable(role)})

    @app.route("/rbac/roles/<int:role_id>", methods=["DELETE"], endpoint="rbac_roles_delete")
    @permissions_required("users:delete")
    def delete_role(role_id: int):
        service.delete_role(role_id)
        return jsonify({"success": True, "message": "Role deleted successfully"})

    # -------- Permissions --------
    @app.route("/rbac/permissions", methods=["POST"], endpoint="rbac_permissions_create")
    @permissions_required("users:create")
    def create_permission():
        data = json_body()
        permission = service.create_permission(key=data.get("key") or "", description=data.get("description"))
        return jsonify({"success": True, "permission": to_jsonable(permission)}), 201

    @app.route("/rbac/permissions", methods=["GET"], endpoint="rbac_permissions_list")
    @permissions_required("users:view")
    def list_permissions():
        return jsonify({"success": True, "permissions": to_jsonable(service.list_permissions())})

    @app.route("/rbac/roles/<int:role_id>/permissions", methods=["GET"], endpoint="rbac_role_permissions")
    @permissions_required("users:view")
    def get_role_permissions(role_id: int):
        return jsonify({"success": True, "permissions": to_jsonable(service.get_role_permissions(role_id))})

    @app.route("/rbac/roles/<int:role_id>/permissions", methods=["PATCH", "PUT"], endpoint="rbac_role_permissions_update")
    @permissions_required("users:update")
    def update_role_permissions(role_id: int):
        data = json_body()
        updates = data.get("permissions", data)
        if not isinstance(updates, dict):
            raise ValidationError("permissions must be an object of key -> level")
        views = service.update_role_permissions(role_id, updates)
        return jsonify({"success": True, "permissions": to_jsonable(views)})

    # -------- User assignments --------
    @app.route("/rbac/users/<int:user_id>/roles", methods=["PATCH", "PUT"], endpoint="rbac_user_roles_update")
    @permissions_required("users:update")
    def assign_roles(user_id: int):
        role_ids = json_body().get("role_ids")
        if not isinstance(role_ids, list):
            raise ValidationError("role_ids must be a list")
        try:
            role_ids = [int(r) for r in role_ids]
        except (TypeError, ValueError):
            raise ValidationError("role_ids must contain integers")
        roles = service.assign_roles(user_id, role_ids)
        return jsonify({"success": True, "roles": to_jsonable(roles)})

    @app.route("/rbac/users/<int:user_id>/roles", methods=["GET"], endpoint="rbac_user_roles")
    @permissions_required("users:view", level=PermissionLevel.LIMITED)
    def get_user_roles(user_id: int):
        ensure_user_in_company_scope(current_decision(), container.companies_repo, user_id, "users:view")
        return jsonify({"success": True, "roles": to_jsonable(service.get_user_roles(user_id))})

    @app.route("/rbac/users/<int:user_id>/permissions", methods=["GET"], endpoint="rbac_user_permissions")
    @permissions_required("users:view", level=PermissionLevel.LIMITED)
    def get_user_permissions(user_id: int):
        ensure_user_in_company_scope(current_decision(), container.companies_repo, user_id, "users:view")
        return jsonify({"success": True, "permissions": to_jsonable(service.get_user_permissions(user_id))})
