from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional

from services.linkedin_urls import slug_of


_COLUMNS = ("id", "name", "email", "phone", "linkedin_url", "city", "country", "avatar_url", "notes")


class PeopleRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, person_id: int) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {', '.join(_COLUMNS)} FROM people WHERE id = ?", (person_id,))
        row = cur.fetchone()
        return dict(zip(_COLUMNS, row)) if row else None

    def find_by_slug(self, slug: Optional[str]) -> Optional[Dict[str, Any]]:
        """Person whose stored LinkedIn URL canonicalizes to the given profile slug."""
        if not slug:
            return None
        cur = self.conn.cursor()
        cur.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM people "
            "WHERE linkedin_url IS NOT NULL AND linkedin_url != '' ORDER BY id"
        )
        for row in cur.fetchall():
            record = dict(zip(_COLUMNS, row))
            if slug_of("profile", record["linkedin_url"]) == slug:
                return record
        return None

    def insert_person(
        self,
        name: str,
        linkedin_url: Optional[str],
        avatar_url: Optional[str] = None,
        city: Optional[str] = None,
        country: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Insert a person row; returns person id."""
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO people (name, linkedin_url, avatar_url, city, country, notes) VALUES (?, ?, ?, ?, ?, ?)",
            (name, linkedin_url, avatar_url, city, country, notes),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def list_all(self) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {', '.join(_COLUMNS)} FROM people ORDER BY id")
        return [dict(zip(_COLUMNS, r)) for r in cur.fetchall()]
