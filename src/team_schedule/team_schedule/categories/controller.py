from __future__ import annotations

from typing import Any

from flask import Flask

from ..common.http import id_list, json_body, json_endpoint, ok, parse_bool, request_context
from ..container import Container
from .model import Category


def category_to_json(c: Category) -> dict[str, Any]:
    return {
        "id": c.category_id,
        "teamId": c.team_id,
        "name": c.name,
        "description": c.description,
        "isSchoolOnly": c.is_school_only,
        "displayOrder": c.display_order,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/categories", methods=["GET"], endpoint="list_categories")
    @json_endpoint
    def list_categories():
        ctx = request_context()
        return ok([category_to_json(c) for c in container.category_service.list(ctx.team_id)])

    @app.route("/categories", methods=["POST"], endpoint="create_category")
    @json_endpoint
    def create_category():
        body = json_body()
        ctx = request_context(body)
        cat = container.category_service.create(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            name=body.get("name") or "",
            description=body.get("description"),
            is_school_only=parse_bool(body.get("isSchoolOnly", False), "isSchoolOnly"),
        )
        return ok(category_to_json(cat), 201)

    @app.route("/categories/<int:category_id>", methods=["PUT"], endpoint="update_category")
    @json_endpoint
    def update_category(category_id: int):
        body = json_body()
        ctx = request_context(body)
        cat = container.category_service.update(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            category_id=category_id,
            name=body.get("name"),
            description=body.get("description"),
            is_school_only=parse_bool(body["isSchoolOnly"], "isSchoolOnly") if "isSchoolOnly" in body else None,
        )
        return ok(category_to_json(cat))

    @app.route("/categories/<int:category_id>", methods=["DELETE"], endpoint="delete_category")
    @json_endpoint
    def delete_category(category_id: int):
        ctx = request_context()
        container.category_service.delete(
            team_id=ctx.team_id, actor_id=ctx.actor_id, current_role=ctx.role, category_id=category_id
        )
        return "", 204

    @app.route("/categories/reorder-batch", methods=["POST"], endpoint="reorder_categories")
    @json_endpoint
    def reorder_categories():
        body = json_body()
        ctx = request_context(body)
        cats = container.category_service.reorder(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            ordered_ids=id_list(body.get("categoryIds")),
        )
        return ok([category_to_json(c) for c in cats])
