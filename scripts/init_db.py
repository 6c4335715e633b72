#!/usr/bin/env python3
"""
Create all tables for a local/dev database (no migrations).
Run from the project root: python -m scripts.init_db
"""
from groupshare.db.base import Base
from groupshare.db.session import engine
import groupshare.models  # noqa: F401  registers all tables


def main() -> None:
    Base.metadata.create_all(bind=engine)
    print(f"Created {len(Base.metadata.tables)} tables")


if __name__ == "__main__":
    main()
