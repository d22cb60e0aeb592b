"""Seed database with demo tenants."""

from __future__ import annotations

from sqlalchemy import text

from aeoscore.db.migrate import run_migrations
from aeoscore.db.session import create_engine_from_env

DEMO_TENANTS = [
    {"domain": "hexco.myshopify.com", "name": "HexCo", "plan": "FREE"},
    {"domain": "lumi-threads.myshopify.com", "name": "Lumi Threads", "plan": "PLUS"},
]


def main() -> None:
    engine = create_engine_from_env()
    run_migrations(engine)
    with engine.begin() as conn:
        for tenant in DEMO_TENANTS:
            conn.execute(
                text(
                    """
                    INSERT INTO tenants (domain, name, plan)
                    VALUES (:domain, :name, :plan)
                    ON CONFLICT (domain) DO UPDATE SET name = EXCLUDED.name, plan = EXCLUDED.plan
                    """
                ),
                tenant,
            )
    print("Seed complete")


if __name__ == "__main__":
    main()
