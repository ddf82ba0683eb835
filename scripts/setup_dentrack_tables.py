"""
setup_dentrack_tables.py
========================
Print the Supabase schema for DentTrack cloud sync and check that the
tables are reachable with the configured credentials.

Usage:
    python scripts/setup_dentrack_tables.py            # print SQL
    python scripts/setup_dentrack_tables.py --check    # print SQL, then probe tables

Credentials come from .streamlit/secrets.toml ([supabase] url/key) or the
SUPABASE_URL / SUPABASE_KEY environment variables (.env is honoured).
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from supabase import create_client

from dentrack_core.config import load_settings
from dentrack_core.errors import ErrorContext, error_boundary, safe_execute
from dentrack_core.logging import setup_logging
from dentrack_core.offline import RemoteStore


SCHEMA_SQL = """
-- ============================================================================
-- DENTTRACK CLOUD SYNC SCHEMA FOR SUPABASE
-- ============================================================================
-- Run this SQL in your Supabase SQL Editor

CREATE TABLE IF NOT EXISTS treatments (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    tooth_id INTEGER CHECK (tooth_id IS NULL OR (tooth_id % 10 BETWEEN 1 AND 8 AND tooth_id / 10 BETWEEN 1 AND 4)),
    type TEXT NOT NULL,
    date DATE NOT NULL,
    notes TEXT DEFAULT '',
    cost NUMERIC(12, 2),
    currency TEXT DEFAULT 'USD',
    warranty_until DATE,
    attachments JSONB DEFAULT '[]'::jsonb,
    dentist_id UUID,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT TIMEZONE('utc', NOW())
);

CREATE INDEX IF NOT EXISTS idx_treatments_user_date ON treatments(user_id, date DESC);

CREATE TABLE IF NOT EXISTS dentists (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    clinic_name TEXT,
    type TEXT,
    phone TEXT,
    notes TEXT,
    is_verified BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT TIMEZONE('utc', NOW())
);

CREATE INDEX IF NOT EXISTS idx_dentists_user_name ON dentists(user_id, name);

CREATE TABLE IF NOT EXISTS teeth_status (
    user_id UUID NOT NULL REFERENCES auth.users(id) ON DELETE CASCADE,
    tooth_id INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'Healthy',
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT TIMEZONE('utc', NOW()),

    -- One status per tooth per user; the app upserts on this key
    CONSTRAINT unique_user_tooth UNIQUE (user_id, tooth_id)
);

-- Every row belongs to exactly one account
ALTER TABLE treatments ENABLE ROW LEVEL SECURITY;
ALTER TABLE dentists ENABLE ROW LEVEL SECURITY;
ALTER TABLE teeth_status ENABLE ROW LEVEL SECURITY;

CREATE POLICY "Users manage their own treatments" ON treatments
    FOR ALL USING (auth.uid() = user_id) WITH CHECK (auth.uid() = user_id);

CREATE POLICY "Users manage their own dentists" ON dentists
    FOR ALL USING (auth.uid() = user_id) WITH CHECK (auth.uid() = user_id);

CREATE POLICY "Users manage their own teeth status" ON teeth_status
    FOR ALL USING (auth.uid() = user_id) WITH CHECK (auth.uid() = user_id);

GRANT ALL ON treatments, dentists, teeth_status TO authenticated;
"""


def print_sql_schema():
    """Print SQL schema for the sync tables."""
    print(SCHEMA_SQL)
    return SCHEMA_SQL


@error_boundary(default_return=False)
def check_tables() -> bool:
    """
    Probe each table with a one-row select.

    Row-level security hides other users' rows, so an anonymous key sees
    empty tables; an error means the table is missing or unreachable.
    """
    settings = safe_execute(load_settings, error_message="Invalid DentTrack configuration")
    if settings is None:
        print("ERROR: Configuration is invalid (see log above).")
        return False
    if settings.supabase is None:
        print("ERROR: Missing Supabase credentials.")
        print("Configure .streamlit/secrets.toml ([supabase] url/key) or set SUPABASE_URL and SUPABASE_KEY")
        return False

    print(f"Using Supabase URL: {settings.supabase.url[:40]}...")
    client = create_client(settings.supabase.url, settings.supabase.key)

    all_ok = True
    for table in RemoteStore.TABLES.values():
        reachable = False
        with ErrorContext(f"Checking table {table}"):
            client.table(table).select("*").limit(1).execute()
            reachable = True
        print(f"  {'OK' if reachable else 'MISSING':<8} {table}")
        all_ok = all_ok and reachable
    return all_ok


def main():
    parser = argparse.ArgumentParser(
        description="Setup DentTrack cloud sync tables in Supabase"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="After printing the schema, verify the tables are reachable"
    )

    args = parser.parse_args()
    setup_logging("INFO", log_to_file=False)

    print("=" * 70)
    print("DENTTRACK SYNC TABLES SETUP FOR SUPABASE")
    print("=" * 70)
    print("\nSQL Schema (copy and run in Supabase SQL Editor):\n")
    print_sql_schema()

    if args.check:
        print("\nChecking tables...")
        if not check_tables():
            print("\nSome tables are missing. Run the SQL above first.")
            sys.exit(1)

    print("\nDone!")


if __name__ == "__main__":
    main()
