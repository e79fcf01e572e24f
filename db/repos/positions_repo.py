from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional


class PositionsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def find(self, person_id: int, company_id: int, title: str) -> Optional[int]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT id FROM positions WHERE person_id = ? AND company_id = ? AND lower(title) = lower(?)",
            (person_id, company_id, title),
        )
        row = cur.fetchone()
        return int(row[0]) if row else None

    def insert_position(
        self,
        person_id: int,
        company_id: int,
        title: str,
        active: bool = False,
        duration: Optional[str] = None,
    ) -> int:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO positions (person_id, company_id, title, active, duration) VALUES (?, ?, ?, ?, ?)",
            (person_id, company_id, title, 1 if active else 0, duration),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def link(self, person_id: int, company_id: int, title: str, active: bool = False,
             duration: Optional[str] = None) -> Optional[int]:
        """Insert unless the same (person, company, title) already exists; returns the new id or None."""
        if self.find(person_id, company_id, title) is not None:
            return None
        return self.insert_position(person_id, company_id, title, active=active, duration=duration)

    def list_for_person(self, person_id: int) -> List[Dict[str, Any]]:
        """Positions of a person joined with their company, current first."""
        cols = ("position_id", "title", "active", "duration", "company_id", "company_name", "company_linkedin_url")
        cur = self.conn.cursor()
        cur.execute(
            f"SELECT {', '.join(cols)} FROM v_positions_with_company WHERE person_id = ? "
            "ORDER BY active DESC, position_id",
            (person_id,),
        )
        return [dict(zip(cols, row)) for row in cur.fetchall()]
