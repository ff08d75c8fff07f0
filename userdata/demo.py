"""Create the same user twice against the configured database and print both outcomes.

Usage:
    python -m userdata.demo
"""
import logging
import sys
from datetime import datetime

from userdata.core import config
from userdata.database import Database
from userdata.queries.users import create_user, delete_all

RIZAL = {
    "email": "j.rizal@lasolidaridad.org",
    "password": "noli-me-tangere",
    "first_name": "Jose",
    "last_name": "Rizal",
    "address": {
        "street": "Rizal Avenue",
        "city": "Calamba",
        "province": "Laguna",
    },
}


def main() -> None:
    logging.basicConfig(level=config.LOG_LEVEL)
    print(f"Hello world! {datetime.now()}")

    with Database() as database:
        database.create_schema()
        with database.session() as db:
            cleared = delete_all(db)
            if not cleared.ok:
                print(f"Could not clear tables: {cleared.message}", file=sys.stderr)
                sys.exit(1)

            first = create_user(db, RIZAL)
            print(f"First Create: {first.model_dump_json(exclude={'payload'})}")

            second = create_user(db, RIZAL)
            print(f"Second Create: {second.model_dump_json(exclude={'payload'})}")

            delete_all(db)


if __name__ == "__main__":
    main()
