"""
Applies the CRM schema migrations.

Usage:
    python migrations/apply.py

Requires SUPABASE_URL and SUPABASE_SERVICE_KEY in .env
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from supabase import create_client

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY")

MIGRATIONS_DIR = Path(__file__).parent

# Applied in order
MIGRATIONS = [
    "001_crm_schema.sql",
]


def apply_migrations(client) -> list[str]:
    """Applies every migration in order; returns the ones that failed."""
    failed = []
    for migration_file in MIGRATIONS:
        path = MIGRATIONS_DIR / migration_file
        if not path.exists():
            print(f"[SKIP] {migration_file} not found")
            continue

        print(f"[APPLY] {migration_file}...")
        try:
            # Raw SQL through the exec_sql RPC
            client.rpc("exec_sql", {"sql": path.read_text()}).execute()
            print(f"[OK] {migration_file}")
        except Exception as e:
            print(f"[ERROR] {migration_file}: {e}")
            failed.append(migration_file)
    return failed


if __name__ == "__main__":
    if not SUPABASE_URL or not SUPABASE_KEY:
        print("Error: SUPABASE_URL and SUPABASE_SERVICE_KEY are required in .env")
        sys.exit(1)

    print("=== CRM migrations ===")
    print(f"URL: {SUPABASE_URL}")
    print()

    failed = apply_migrations(create_client(SUPABASE_URL, SUPABASE_KEY))

    if failed:
        print()
        print("Run these manually in the Supabase SQL Editor:")
        for m in failed:
            print(f"  - migrations/{m}")
        sys.exit(1)
