from __future__ import annotations

from typing import Any

from flask import Flask

from ..common.http import id_list, json_body, json_endpoint, ok, request_context
from ..container import Container
from ..documents.model import SharedDocument
from ..schedules.controller import date_window, instance_to_json
from .model import SiblingLink, Student


def student_to_json(s: Student) -> dict[str, Any]:
    return {
        "id": s.student_id,
        "teamId": s.team_id,
        "name": s.name,
        "playerType": s.player_type.value,
        "categoryIds": list(s.category_ids),
        "birthDate": s.birth_date.isoformat() if s.birth_date else None,
        "jerseyNumber": s.jersey_number,
    }


def sibling_link_to_json(link: SiblingLink) -> dict[str, Any]:
    return {
        "id": link.link_id,
        "studentId": link.student_id,
        "siblingStudentId": link.sibling_student_id,
        "status": link.status.value,
    }


def document_to_json(d: SharedDocument) -> dict[str, Any]:
    return {
        "id": d.document_id,
        "title": d.title,
        "fileUrl": d.file_url,
        "categoryIds": list(d.category_ids),
        "createdAt": d.created_at.isoformat() if d.created_at else None,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/students/<int:student_id>/schedules", methods=["GET"], endpoint="student_schedules")
    @json_endpoint
    def student_schedules(student_id: int):
        ctx = request_context()
        start, end = date_window()
        entries = container.student_calendar_service.list_for_student(
            team_id=ctx.team_id,
            student_id=student_id,
            start=start,
            end=end,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
        )
        return ok([{**instance_to_json(e.instance), "editable": e.editable} for e in entries])

    @app.route("/students/<int:student_id>/categories", methods=["PUT"], endpoint="student_categories")
    @json_endpoint
    def student_categories(student_id: int):
        body = json_body()
        ctx = request_context(body)
        student = container.student_service.set_categories(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            student_id=student_id,
            category_ids=id_list(body.get("categoryIds")),
        )
        return ok(student_to_json(student))

    @app.route("/students/<int:student_id>/documents", methods=["GET"], endpoint="student_documents")
    @json_endpoint
    def student_documents(student_id: int):
        ctx = request_context()
        docs = container.document_service.list_visible(
            team_id=ctx.team_id, student_id=student_id, actor_id=ctx.actor_id, current_role=ctx.role
        )
        return ok([document_to_json(d) for d in docs])

    @app.route("/documents", methods=["POST"], endpoint="share_document")
    @json_endpoint
    def share_document():
        body = json_body()
        ctx = request_context(body)
        doc = container.document_service.create(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            title=body.get("title") or "",
            file_url=body.get("fileUrl") or "",
            category_ids=id_list(body.get("categoryIds")),
        )
        return ok(document_to_json(doc), 201)

    @app.route("/students/<int:student_id>/player-type", methods=["PUT"], endpoint="student_player_type")
    @json_endpoint
    def student_player_type(student_id: int):
        body = json_body()
        ctx = request_context(body)
        student = container.student_service.set_player_type(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            student_id=student_id,
            player_type=body.get("playerType") or "",
        )
        return ok(student_to_json(student))

    @app.route("/students/<int:student_id>/siblings", methods=["POST"], endpoint="link_siblings")
    @json_endpoint
    def link_siblings(student_id: int):
        body = json_body()
        ctx = request_context(body)
        link = container.student_service.link_siblings(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            student_id=student_id,
            sibling_student_id=body.get("siblingStudentId") or 0,
        )
        return ok(sibling_link_to_json(link), 201)

    @app.route("/sibling-links/<int:link_id>/approve", methods=["POST"], endpoint="approve_sibling_link")
    @json_endpoint
    def approve_sibling_link(link_id: int):
        ctx = request_context()
        link = container.student_service.approve_sibling_link(
            team_id=ctx.team_id, actor_id=ctx.actor_id, current_role=ctx.role, link_id=link_id
        )
        return ok(sibling_link_to_json(link))
