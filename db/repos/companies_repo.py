from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from services.linkedin_urls import extract_apex_domain, slug_of


_COLUMNS = ("id", "name", "website", "domain", "linkedin_url", "logo_url")
_BACKFILL_COLUMNS = ("logo_url", "website", "domain")


class CompaniesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _select(self, where: str = "", params: tuple = ()) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {', '.join(_COLUMNS)} FROM companies {where}", params)
        return [dict(zip(_COLUMNS, row)) for row in cur.fetchall()]

    def get(self, company_id: int) -> Optional[Dict[str, Any]]:
        rows = self._select("WHERE id = ?", (company_id,))
        return rows[0] if rows else None

    def list_all(self) -> List[Dict[str, Any]]:
        return self._select("ORDER BY id")

    def list_by_ids(self, company_ids: Iterable[int]) -> List[Dict[str, Any]]:
        ids = [int(i) for i in company_ids]
        if not ids:
            return []
        marks = ", ".join("?" for _ in ids)
        return self._select(f"WHERE id IN ({marks}) ORDER BY id", tuple(ids))

    def list_needing_update(self) -> List[Dict[str, Any]]:
        """Companies with a LinkedIn URL but no logo yet."""
        return self._select("WHERE linkedin_url IS NOT NULL AND linkedin_url != '' "
                            "AND (logo_url IS NULL OR logo_url = '') ORDER BY id")

    def find_by_slug(self, slug: Optional[str]) -> Optional[Dict[str, Any]]:
        """Lookup-before-insert: the stored URL canonicalizes to the same company slug."""
        if not slug:
            return None
        for row in self._select("WHERE linkedin_url IS NOT NULL AND linkedin_url != '' ORDER BY id"):
            if slug_of("company", row["linkedin_url"]) == slug:
                return row
        return None

    def insert(
        self,
        name: str,
        linkedin_url: Optional[str] = None,
        website: Optional[str] = None,
        logo_url: Optional[str] = None,
    ) -> int:
        """Insert a company row and return its id."""
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO companies (name, website, domain, linkedin_url, logo_url) VALUES (?, ?, ?, ?, ?)",
            (name, website, extract_apex_domain(website), linkedin_url, logo_url),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def backfill(self, company_id: int, fields: Dict[str, Any]) -> List[str]:
        """Fill columns that are currently empty; never overwrite a value.

        Returns the names of the columns actually written.
        """
        row = self.get(company_id)
        if row is None:
            return []
        columns: List[str] = []
        values: List[Any] = []
        for key in _BACKFILL_COLUMNS:
            value = fields.get(key)
            if key == "domain" and not value and "website" in columns:
                # Domain follows a website we are writing now
                value = extract_apex_domain(fields.get("website"))
            if value and not row.get(key):
                columns.append(key)
                values.append(value)
        if not columns:
            return []
        sql = f"UPDATE companies SET {', '.join(f'{c} = ?' for c in columns)} WHERE id = ?;"
        self.conn.execute(sql, (*values, company_id))
        self.conn.commit()
        return columns

    def set_linkedin_url(self, company_id: int, linkedin_url: str) -> None:
        self.conn.execute("UPDATE companies SET linkedin_url = ? WHERE id = ?;", (linkedin_url, company_id))
        self.conn.commit()
