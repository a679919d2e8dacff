#!/usr/bin/env python3
"""
Check that the settlement tables exist after `alembic upgrade head`
"""
import asyncio
import sys
import platform
from sqlalchemy import text
from savings_pay.core.database import engine

EXPECTED_TABLES = ("metas", "depositos_metas", "pagos", "metodos_pago")

async def verify_database() -> bool:
    """Report the migration revision and row counts; False when a table is missing."""
    async with engine.connect() as conn:
        print("🔗 Connected to database")

        result = await conn.execute(text("SELECT version_num FROM alembic_version;"))
        revision = result.scalar_one_or_none()
        print(f"🔄 Alembic revision: {revision or 'none'}")

        result = await conn.execute(text(
            "SELECT tablename FROM pg_tables WHERE schemaname = 'public';"
        ))
        present = {row[0] for row in result.fetchall()}

        missing = [table for table in EXPECTED_TABLES if table not in present]
        for table in EXPECTED_TABLES:
            if table in missing:
                print(f"   ❌ {table}: missing")
                continue
            count = (await conn.execute(text(f"SELECT COUNT(*) FROM {table};"))).scalar_one()
            print(f"   ✅ {table}: {count} rows")

    await engine.dispose()
    return not missing

def main():
    if platform.system() == 'Windows':
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    if not asyncio.run(verify_database()):
        print("\n⚠️  Run `alembic upgrade head` to create the missing tables")
        sys.exit(1)
    print("\n✅ Database is ready for settlements")

if __name__ == "__main__":
    main()
