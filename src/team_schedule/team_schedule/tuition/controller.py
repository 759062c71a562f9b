from __future__ import annotations

from typing import Any

from flask import Flask, request

from ..common.http import json_body, json_endpoint, ok, parse_bool, request_context
from ..container import Container
from .model import GenerationResult, MonthlySummary, TuitionPayment

# JSON key -> payment field
_EDITABLE = {
    "baseAmount": "base_amount",
    "discount": "discount",
    "annualFee": "annual_fee",
    "entranceFee": "entrance_fee",
    "insuranceFee": "insurance_fee",
    "spotFee": "spot_fee",
    "amount": "amount",
    "category": "category",
}


def payment_to_json(p: TuitionPayment) -> dict[str, Any]:
    return {
        "id": p.payment_id,
        "studentId": p.student_id,
        "teamId": p.team_id,
        "year": p.year,
        "month": p.month,
        "category": p.category,
        "baseAmount": p.base_amount,
        "discount": p.discount,
        "annualFee": p.annual_fee,
        "entranceFee": p.entrance_fee,
        "insuranceFee": p.insurance_fee,
        "spotFee": p.spot_fee,
        "amount": p.amount,
        "isPaid": p.is_paid,
        "paidAt": p.paid_at.isoformat() if p.paid_at else None,
    }


def summary_to_json(s: MonthlySummary) -> dict[str, Any]:
    return {
        "year": s.year,
        "month": s.month,
        "count": s.count,
        "paidCount": s.paid_count,
        "total": s.total,
        "collected": s.collected,
        "outstanding": s.outstanding,
    }


def result_to_json(r: GenerationResult) -> dict[str, Any]:
    return {"generated": r.generated, "deleted": r.deleted, "skippedPaid": r.skipped_paid}


def register(app: Flask, container: Container) -> None:
    @app.route("/tuition-payments", methods=["GET"], endpoint="list_tuition_payments")
    @json_endpoint
    def list_tuition_payments():
        ctx = request_context()
        year, month = request.args.get("year"), request.args.get("month")
        payments = container.tuition_service.list_for_month(team_id=ctx.team_id, year=year, month=month)
        summary = container.tuition_service.summary(team_id=ctx.team_id, year=year, month=month)
        return ok({"payments": [payment_to_json(p) for p in payments], "summary": summary_to_json(summary)})

    @app.route("/tuition-payments/generate", methods=["POST"], endpoint="generate_tuition")
    @json_endpoint
    def generate_tuition():
        body = json_body()
        ctx = request_context(body)
        result = container.tuition_service.generate(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            year=body.get("year"),
            month=body.get("month"),
        )
        return ok(result_to_json(result))

    @app.route("/tuition-payments/reset-unpaid", methods=["POST"], endpoint="reset_unpaid_tuition")
    @json_endpoint
    def reset_unpaid_tuition():
        body = json_body()
        ctx = request_context(body)
        result = container.tuition_service.reset_unpaid(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            year=body.get("year"),
            month=body.get("month"),
        )
        return ok(result_to_json(result))

    @app.route("/tuition-payments/<int:payment_id>", methods=["PUT"], endpoint="update_tuition_payment")
    @json_endpoint
    def update_tuition_payment(payment_id: int):
        body = json_body()
        ctx = request_context(body)
        changes = {field: body[key] for key, field in _EDITABLE.items() if key in body}
        payment = container.tuition_service.update_payment(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            payment_id=payment_id,
            changes=changes,
        )
        return ok(payment_to_json(payment))

    @app.route("/tuition-payments/<int:payment_id>/paid", methods=["POST"], endpoint="mark_tuition_paid")
    @json_endpoint
    def mark_tuition_paid(payment_id: int):
        body = json_body()
        ctx = request_context(body)
        if parse_bool(body.get("isPaid", True), "isPaid"):
            payment = container.tuition_service.mark_paid(
                team_id=ctx.team_id, actor_id=ctx.actor_id, current_role=ctx.role, payment_id=payment_id
            )
        else:
            payment = container.tuition_service.mark_unpaid(
                team_id=ctx.team_id, actor_id=ctx.actor_id, current_role=ctx.role, payment_id=payment_id
            )
        return ok(payment_to_json(payment))
