"""Example: driving the leave services without Flask.

Opens a leave session for one applicant, prints the balance after the yearly
reset check and after processing anything already approved, then closes it.
"""

import importlib
import logging
import sys

from dotenv import load_dotenv

from config import get_settings_module

from src.school_leave.school_leave.container import build_container
from src.school_leave.school_leave.core.enums import Role


def main(applicant_id: str = "student-1", role: str = "student") -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    session = container.open_session(applicant_id=applicant_id, role=Role(role), watch=False)
    try:
        print(session.balance.to_dict())
        for app in container.application_service.list_for_applicant(applicant_id=applicant_id):
            print(app.date_bucket, app.application_id, app.leave_type.value, app.duration, app.status.value, app.processed)
    finally:
        session.close()


if __name__ == "__main__":
    main(*sys.argv[1:3])
