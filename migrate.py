"""
Migration: Seed the scheduler_status row for the auto-close scheduler.

Run this ONCE at deployment against your database:
    python migrate.py

It is safe to run multiple times; it uses IF NOT EXISTS / ON CONFLICT DO NOTHING logic.
"""

import asyncio
import os
import uuid
from dotenv import load_dotenv  # pip install python-dotenv  (only needed to run this script)

load_dotenv()  # reads your .env file

import asyncpg


async def migrate():
    conn = await asyncpg.connect(
        host=os.environ["DB_HOST"],
        port=int(os.environ.get("DB_PORT", 5432)),
        database=os.environ["DB_NAME"],
        user=os.environ["DB_USER"],
        password=os.environ["DB_PASSWORD"],
    )
    scheduler_name = os.environ.get("SCHEDULER_NAME", "auto_close_assignments")

    print("Connected to database. Running migration...")

    await conn.execute("""
        CREATE TABLE IF NOT EXISTS scheduler_status (
            id UUID PRIMARY KEY,
            scheduler_name VARCHAR(100) NOT NULL UNIQUE,
            is_running BOOLEAN NOT NULL DEFAULT FALSE,
            last_run_at TIMESTAMPTZ,
            last_success_at TIMESTAMPTZ,
            last_error_at TIMESTAMPTZ,
            last_error_message TEXT,
            run_count INTEGER NOT NULL DEFAULT 0,
            success_count INTEGER NOT NULL DEFAULT 0,
            error_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now()
        );
    """)
    print("  ✓ Table 'scheduler_status' ensured.")

    status = await conn.execute(
        """
        INSERT INTO scheduler_status (id, scheduler_name)
        VALUES ($1, $2)
        ON CONFLICT (scheduler_name) DO NOTHING;
        """,
        uuid.uuid4(),
        scheduler_name,
    )
    if status.endswith(" 1"):
        print(f"  ✓ Seeded status row for '{scheduler_name}'.")
    else:
        print(f"  ✓ Status row for '{scheduler_name}' already present.")

    await conn.close()
    print("\nMigration complete. You can now start the FastAPI server.")


if __name__ == "__main__":
    asyncio.run(migrate())
