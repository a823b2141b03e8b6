from __future__ import annotations

import os

from sqlalchemy import inspect

from my_finances.store import Store, metadata


def main() -> None:
    database_url = os.getenv("DATABASE_URL", "sqlite:///./my_finances.db")
    store = Store(database_url)
    existing = set(inspect(store.engine).get_table_names())
    store.create_schema()
    for table in metadata.sorted_tables:
        if table.name in existing:
            continue
        print(f"Created: {table.name}")
    store.dispose()
    print("Schema initialization finished.")


if __name__ == "__main__":
    main()
