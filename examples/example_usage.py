"""Example: using the service layer directly (no Flask).

Controllers stay thin; the rules live in the services.
"""

import importlib
from datetime import date

from config import get_settings_module

from src.team_schedule.team_schedule.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    for inst in container.schedule_service.list_effective_instances(
        team_id=1, start=date(2025, 4, 6), end=date(2025, 4, 19)
    ):
        print(inst.date, inst.title, inst.venue_label, "virtual" if inst.is_virtual else f"#{inst.schedule_id}")

    print(container.tuition_service.summary(team_id=1, year=2025, month=4))


if __name__ == "__main__":
    main()
