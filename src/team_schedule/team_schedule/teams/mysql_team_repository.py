from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Team
from .repository import TeamRepository


def _opt_int(value) -> Optional[int]:
    return int(value) if value is not None else None


class MySQLTeamRepository(TeamRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, team_id: int) -> Optional[Team]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT team_id, name, monthly_fee_member, monthly_fee_school, sibling_discount,
                       annual_fee, entrance_fee, insurance_fee, annual_fee_month, insurance_fee_month
                FROM teams
                WHERE team_id=%s
                """,
                (int(team_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Team(
                team_id=int(r["team_id"]),
                name=r["name"],
                monthly_fee_member=_opt_int(r.get("monthly_fee_member")),
                monthly_fee_school=_opt_int(r.get("monthly_fee_school")),
                sibling_discount=_opt_int(r.get("sibling_discount")),
                annual_fee=_opt_int(r.get("annual_fee")),
                entrance_fee=_opt_int(r.get("entrance_fee")),
                insurance_fee=_opt_int(r.get("insurance_fee")),
                annual_fee_month=int(r["annual_fee_month"]),
                insurance_fee_month=int(r["insurance_fee_month"]),
            )

    def update_fees(self, team: Team) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE teams
                SET monthly_fee_member=%s, monthly_fee_school=%s, sibling_discount=%s,
                    annual_fee=%s, entrance_fee=%s, insurance_fee=%s,
                    annual_fee_month=%s, insurance_fee_month=%s
                WHERE team_id=%s
                """,
                (
                    team.monthly_fee_member,
                    team.monthly_fee_school,
                    team.sibling_discount,
                    team.annual_fee,
                    team.entrance_fee,
                    team.insurance_fee,
                    int(team.annual_fee_month),
                    int(team.insurance_fee_month),
                    int(team.team_id),
                ),
            )
            # rowcount is 0 when values are unchanged; existence was checked by the service.
            return cur.rowcount >= 0
