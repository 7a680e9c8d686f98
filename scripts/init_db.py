"""
init_db.py — One-time database initialization script.

Run this once to:
  1. Create all tables via SQLAlchemy
  2. Install row-level security on every firm-scoped table
  3. Seed a demo firm with an admin user

The RLS policy admits a row when its firm_id equals the transaction setting
`app.current_firm_id`, which the app sets from the signed-in user's firm
(utils/tenancy.py). Connections that never set it (this script, migrations)
see every row; the value 'none' (signed in without a firm) sees nothing.

Usage:
    cd legalbeacon
    python scripts/init_db.py
"""

import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from flask import Flask
from config import get_config
from database import init_db, get_raw_connection
from models import FIRM_SCOPED_TABLES


POLICY_NAME = "firm_isolation"

POLICY_PREDICATE = (
    "coalesce(nullif(current_setting('app.current_firm_id', true), ''), firm_id) = firm_id"
)


def create_app():
    app = Flask(__name__)
    app.config.from_object(get_config())
    return app


def install_row_level_security(conn):
    """
    Enable + force RLS and (re)create the firm isolation policy on each
    firm-scoped table. Idempotent.
    """
    cur = conn.cursor()
    for table in FIRM_SCOPED_TABLES:
        cur.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        cur.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")
        cur.execute(f"DROP POLICY IF EXISTS {POLICY_NAME} ON {table};")
        cur.execute(f"""
            CREATE POLICY {POLICY_NAME} ON {table}
            USING ({POLICY_PREDICATE})
            WITH CHECK ({POLICY_PREDICATE});
        """)
        print(f"[RLS] {table}: policy '{POLICY_NAME}' installed.")
    conn.commit()
    cur.close()


def report_row_level_security(conn):
    cur = conn.cursor()
    cur.execute(
        "SELECT relname, relrowsecurity, relforcerowsecurity FROM pg_class WHERE relname = ANY(%s);",
        (list(FIRM_SCOPED_TABLES),),
    )
    for row in cur.fetchall():
        state = "on" if row["relrowsecurity"] and row["relforcerowsecurity"] else "OFF"
        print(f"[RLS] {row['relname']:<20} {state}")
    cur.close()


def seed_demo_firm(conn):
    """
    Insert a demo firm and admin user if they don't exist.
    Useful for first-time setup.
    """
    from werkzeug.security import generate_password_hash
    import uuid as _uuid

    cur = conn.cursor()
    cur.execute("SELECT id FROM firms WHERE name = 'Demo Firm';")
    if cur.fetchone():
        print("[SEED] Demo firm already exists, skipping seed.")
        cur.close()
        return

    firm_id = str(_uuid.uuid4())
    user_id = str(_uuid.uuid4())
    password_hash = generate_password_hash("Admin123!")

    cur.execute(
        """INSERT INTO firms (id, name, address, phone, email, subscription_tier, is_active, created_at)
           VALUES (%s, %s, '', '', %s, 'basic', TRUE, NOW());""",
        (firm_id, "Demo Firm", "admin@demo.legalbeacon.app"),
    )
    cur.execute(
        """INSERT INTO users (id, firm_id, email, first_name, last_name, password_hash, role, is_active, created_at)
           VALUES (%s, %s, %s, %s, %s, %s, %s, TRUE, NOW());""",
        (user_id, firm_id, "admin@demo.legalbeacon.app", "Demo", "Admin", password_hash, "admin"),
    )
    conn.commit()
    cur.close()
    print(f"[SEED] Demo firm created (firm_id={firm_id})")
    print("[SEED] Admin user: admin@demo.legalbeacon.app / Admin123!")
    print("[SEED] IMPORTANT: Change the password immediately in production.")


def main():
    print("=" * 60)
    print(" LegalBeacon — Database Initialisation")
    print("=" * 60)

    app = create_app()

    # Step 1: Create all tables
    print("[DB] Creating all tables...")
    init_db(app)

    # Steps 2-3 need raw psycopg2
    conn = get_raw_connection()
    try:
        install_row_level_security(conn)
        report_row_level_security(conn)
        seed_demo_firm(conn)
    finally:
        conn.close()

    print("=" * 60)
    print(" Database initialisation complete.")
    print("=" * 60)


if __name__ == "__main__":
    main()
