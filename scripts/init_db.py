"""Script to initialize the database."""

import argparse

from healthdb.core.logging import configure_logging
from healthdb.database import create_db_engine, drop_database, init_database


def main() -> None:
    """Create all tables at the configured DATABASE_URL."""
    parser = argparse.ArgumentParser(description="Create the healthdb schema")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop existing tables before creating them",
    )
    args = parser.parse_args()

    configure_logging()
    engine = create_db_engine(args.database_url)

    if args.reset:
        drop_database(engine)
    init_database(engine)

    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    main()
