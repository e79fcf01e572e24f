from __future__ import annotations

import sqlite3


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create CRM tables, the scrape job table, indexes and views (idempotent)."""
    cur = conn.cursor()

    # Companies table
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS companies (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  name TEXT NOT NULL,\n"
            "  website TEXT,\n"
            "  domain TEXT,\n"
            "  linkedin_url TEXT,\n"
            "  logo_url TEXT\n"
            ")"
        )
    )
    # Backfill columns if table existed before
    for ddl in (
        "ALTER TABLE companies ADD COLUMN domain TEXT;",
        "ALTER TABLE companies ADD COLUMN logo_url TEXT;",
    ):
        try:
            cur.execute(ddl)
        except sqlite3.OperationalError:
            pass
    cur.execute("CREATE INDEX IF NOT EXISTS idx_companies_name ON companies(name);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_companies_linkedin_url ON companies(linkedin_url);")

    # People table
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS people (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  name TEXT NOT NULL,\n"
            "  email TEXT,\n"
            "  phone TEXT,\n"
            "  linkedin_url TEXT,\n"
            "  city TEXT,\n"
            "  country TEXT,\n"
            "  avatar_url TEXT,\n"
            "  notes TEXT\n"
            ")"
        )
    )
    try:
        cur.execute("ALTER TABLE people ADD COLUMN avatar_url TEXT;")
    except sqlite3.OperationalError:
        pass
    cur.execute("CREATE INDEX IF NOT EXISTS idx_people_linkedin_url ON people(linkedin_url);")

    # Positions link people to companies
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS positions (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  person_id INTEGER NOT NULL,\n"
            "  company_id INTEGER NOT NULL,\n"
            "  title TEXT NOT NULL,\n"
            "  active INTEGER NOT NULL DEFAULT 1,\n"
            "  duration TEXT,\n"
            "  FOREIGN KEY(person_id) REFERENCES people(id) ON DELETE CASCADE,\n"
            "  FOREIGN KEY(company_id) REFERENCES companies(id) ON DELETE CASCADE\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_positions_person_id ON positions(person_id);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_positions_company_id ON positions(company_id);")

    # Scrape jobs: one row per batch request to Bright Data
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS linkedin_scrape_jobs (\n"
            "  id TEXT PRIMARY KEY,\n"
            "  type TEXT NOT NULL CHECK (type IN ('profile', 'company')),\n"
            "  urls_json TEXT NOT NULL,\n"
            "  snapshot_id TEXT NOT NULL,\n"
            "  status TEXT NOT NULL DEFAULT 'pending',\n"
            "  result_json TEXT,\n"
            "  error_message TEXT,\n"
            "  created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),\n"
            "  completed_at TEXT\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_scrape_jobs_status ON linkedin_scrape_jobs(status);")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_scrape_jobs_created ON linkedin_scrape_jobs(created_at);")

    # View for joined reads
    cur.execute("DROP VIEW IF EXISTS v_positions_with_company;")
    cur.execute(
        (
            "CREATE VIEW v_positions_with_company AS\n"
            "SELECT\n"
            "  pos.id AS position_id,\n"
            "  pos.title,\n"
            "  pos.active,\n"
            "  pos.duration,\n"
            "  p.id AS person_id,\n"
            "  p.name AS person_name,\n"
            "  p.linkedin_url AS person_linkedin_url,\n"
            "  c.id AS company_id,\n"
            "  c.name AS company_name,\n"
            "  c.linkedin_url AS company_linkedin_url,\n"
            "  c.logo_url\n"
            "FROM positions pos\n"
            "JOIN people p ON pos.person_id = p.id\n"
            "JOIN companies c ON pos.company_id = c.id;"
        )
    )

    conn.commit()
