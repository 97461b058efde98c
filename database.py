import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from errors import StoreError
from security import hash_password

logger = logging.getLogger(__name__)


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def get_db(db_path: str):
    """Database connection context manager; sqlite failures surface as StoreError"""
    try:
        conn = sqlite3.connect(db_path, timeout=5)
    except sqlite3.Error as exc:
        raise StoreError(f"Cannot open database {db_path}: {exc}") from exc
    conn.row_factory = sqlite3.Row  # Enable dict-like access
    try:
        yield conn
    except sqlite3.Error as exc:
        conn.rollback()
        raise StoreError(f"Database error: {exc}") from exc
    finally:
        conn.close()


def init_database(db_path: str):
    """Create the identity, assignment and audit tables"""
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        # Identities known to the bundled identity provider
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS identities (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                display_name TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        ''')

        # One role binding per identity, keyed by email
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS role_assignments (
                identity_key TEXT PRIMARY KEY,
                role TEXT NOT NULL,
                department TEXT,
                status TEXT NOT NULL DEFAULT 'active',
                assigned_at TEXT NOT NULL,
                assigned_by TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        ''')

        # Audit trail of assignment mutations
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS role_changes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                identity_key TEXT NOT NULL,
                action TEXT NOT NULL,
                old_role TEXT,
                new_role TEXT,
                changed_by TEXT NOT NULL,
                changed_at TEXT NOT NULL
            )
        ''')

        conn.commit()
    logger.info("Database initialized at %s", db_path)


def seed_identities(db_path: str, seeds: Iterable[tuple]):
    """Insert default identities and their assignments if not already present"""
    now = utcnow()
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        for email, display_name, password, role, department in seeds:
            cursor.execute('''
                INSERT OR IGNORE INTO identities (email, display_name, password_hash, created_at)
                VALUES (?, ?, ?, ?)
            ''', (email.lower(), display_name, hash_password(password), now))
            cursor.execute('''
                INSERT OR IGNORE INTO role_assignments
                    (identity_key, role, department, status, assigned_at, assigned_by, updated_at)
                VALUES (?, ?, ?, 'active', ?, 'system', ?)
            ''', (email.lower(), role, department, now, now))
        conn.commit()


def get_identity_by_email(db_path: str, email: str) -> Optional[Dict[str, Any]]:
    """Get identity row by email"""
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM identities WHERE email = ?", (email,))
        row = cursor.fetchone()
        return dict(row) if row else None


def get_identity_by_id(db_path: str, identity_id: int) -> Optional[Dict[str, Any]]:
    """Get identity row by ID"""
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM identities WHERE id = ?", (identity_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def create_identity(db_path: str, email: str, display_name: str, password_hash: str) -> Optional[int]:
    """Create a new identity; returns None if the email is already registered"""
    with get_db(db_path) as conn:
        cursor = conn.cursor()
        try:
            cursor.execute('''
                INSERT INTO identities (email, display_name, password_hash, created_at)
                VALUES (?, ?, ?, ?)
            ''', (email, display_name, password_hash, utcnow()))
        except sqlite3.IntegrityError:
            return None
        new_id = cursor.lastrowid
        conn.commit()
        return new_id


class AssignmentStore:
    """SQLite-backed store of role assignments keyed by identity."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_assignment(self, identity_key: str) -> Optional[Dict[str, Any]]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM role_assignments WHERE identity_key = ?", (identity_key,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def upsert_assignment(self, identity_key: str, data: Dict[str, Any], audit: Optional[Dict[str, Any]] = None):
        """Insert or overwrite the binding for ``identity_key``.

        ``assigned_at`` is only written on insert, so the original grant time
        survives later changes. ``audit`` is recorded in the same transaction.
        """
        now = utcnow()
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO role_assignments
                    (identity_key, role, department, status, assigned_at, assigned_by, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(identity_key) DO UPDATE SET
                    role = excluded.role,
                    department = excluded.department,
                    status = excluded.status,
                    assigned_by = excluded.assigned_by,
                    updated_at = excluded.updated_at
            ''', (
                identity_key,
                data["role"],
                data.get("department"),
                data.get("status", "active"),
                now,
                data["assigned_by"],
                now,
            ))
            if audit:
                self._record_change(cursor, identity_key, audit, now)
            conn.commit()

        return self.get_assignment(identity_key)

    def delete_assignment(self, identity_key: str, audit: Optional[Dict[str, Any]] = None) -> bool:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM role_assignments WHERE identity_key = ?", (identity_key,))
            deleted = cursor.rowcount > 0
            if deleted and audit:
                self._record_change(cursor, identity_key, audit, utcnow())
            conn.commit()
            return deleted

    def list_assignments(self) -> List[Dict[str, Any]]:
        """All assignments, most recently granted first"""
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM role_assignments ORDER BY assigned_at DESC, identity_key ASC"
            )
            return [dict(row) for row in cursor.fetchall()]

    def list_changes(self, identity_key: str) -> List[Dict[str, Any]]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM role_changes WHERE identity_key = ? ORDER BY id ASC",
                (identity_key,),
            )
            return [dict(row) for row in cursor.fetchall()]

    @staticmethod
    def _record_change(cursor, identity_key: str, audit: Dict[str, Any], changed_at: str):
        cursor.execute('''
            INSERT INTO role_changes (identity_key, action, old_role, new_role, changed_by, changed_at)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (
            identity_key,
            audit["action"],
            audit.get("old_role"),
            audit.get("new_role"),
            audit["changed_by"],
            changed_at,
        ))
