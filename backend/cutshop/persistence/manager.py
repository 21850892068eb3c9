"""
SQLite persistence manager for Cutshop state.

Single-file SQLite database. Every public method runs in its own
connection and transaction. Write transactions take the database write
lock up front (BEGIN IMMEDIATE), so a read-modify-write of one row is
atomic and concurrent writers resolve as last-write-wins.
"""

import sqlite3
import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime
from contextlib import contextmanager

from ..errors import CutshopError
from .errors import PersistenceError


# Database schema version for migrations
SCHEMA_VERSION = 1

# Seconds to wait for the write lock before failing
LOCK_TIMEOUT = 10.0

SheetMutation = Callable[[List[str], int], Tuple[List[str], int]]


def _now() -> str:
    return datetime.now().isoformat()


class PersistenceManager:
    """
    Manages SQLite persistence for Cutshop state.

    Stores:
    - Users and roles
    - Colour groups and colours
    - Jobs, cutlists, materials (with per-sheet statuses)
    - Recut entries (with their own per-sheet statuses)
    - Job time logs

    Rows are exchanged as plain dicts; model conversion happens in the
    registries.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize persistence manager.

        Args:
            db_path: Path to SQLite database file (defaults to ./cutshop.db)
        """
        if db_path is None:
            db_path = str(Path.cwd() / "cutshop.db")

        self.db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connect(self, write: bool = False):
        """Context manager for one transaction."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=LOCK_TIMEOUT, isolation_level=None)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row  # Access columns by name
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            yield conn
            conn.execute("COMMIT")
        except CutshopError:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise PersistenceError(f"Database operation failed: {e}") from e
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def _ensure_schema(self):
        """Create schema if it doesn't exist."""
        with self._connect(write=True) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
            """)

            row = conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            ).fetchone()
            current_version = row[0] if row else 0

            if current_version < SCHEMA_VERSION:
                self._migrate_schema(conn, current_version)

    def _migrate_schema(self, conn, from_version: int):
        """Apply schema migrations."""
        if from_version < 1:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    password TEXT NOT NULL,
                    email TEXT,
                    role TEXT NOT NULL DEFAULT 'user',
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS color_groups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS colors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    hex_color TEXT NOT NULL,
                    group_id INTEGER REFERENCES color_groups (id) ON DELETE SET NULL,
                    texture TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_number TEXT NOT NULL UNIQUE,
                    customer_name TEXT NOT NULL,
                    job_name TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'waiting',
                    start_time TEXT,
                    end_time TEXT,
                    total_duration INTEGER,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS cutlists (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id INTEGER NOT NULL REFERENCES jobs (id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    order_index INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS job_materials (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    cutlist_id INTEGER REFERENCES cutlists (id) ON DELETE CASCADE,
                    color_id INTEGER NOT NULL REFERENCES colors (id),
                    total_sheets INTEGER NOT NULL,
                    completed_sheets INTEGER NOT NULL DEFAULT 0,
                    sheet_statuses TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS recut_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    material_id INTEGER NOT NULL REFERENCES job_materials (id) ON DELETE CASCADE,
                    quantity INTEGER NOT NULL,
                    reason TEXT,
                    sheet_statuses TEXT NOT NULL DEFAULT '[]',
                    completed_sheets INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    user_id INTEGER REFERENCES users (id) ON DELETE SET NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS job_time_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id INTEGER NOT NULL REFERENCES jobs (id) ON DELETE CASCADE,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    user_id INTEGER REFERENCES users (id) ON DELETE SET NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_cutlists_job_id ON cutlists (job_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_materials_cutlist_id ON job_materials (cutlist_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_recuts_material_id ON recut_entries (material_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_time_logs_job_id ON job_time_logs (job_id)")

            # Record migration
            conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, _now())
            )

    # Row conversion

    @staticmethod
    def _user_row(row) -> Dict:
        return {
            "id": row["id"],
            "username": row["username"],
            "password": row["password"],
            "email": row["email"],
            "role": row["role"],
            "created_at": row["created_at"],
        }

    @staticmethod
    def _color_row(row) -> Dict:
        return {
            "id": row["id"],
            "name": row["name"],
            "hex_color": row["hex_color"],
            "group_id": row["group_id"],
            "texture": row["texture"],
            "created_at": row["created_at"],
        }

    @staticmethod
    def _recut_row(row) -> Dict:
        return {
            "id": row["id"],
            "material_id": row["material_id"],
            "quantity": row["quantity"],
            "reason": row["reason"],
            "sheet_statuses": json.loads(row["sheet_statuses"]) if row["sheet_statuses"] else [],
            "completed_sheets": row["completed_sheets"],
            "created_at": row["created_at"],
            "user_id": row["user_id"],
        }

    @staticmethod
    def _time_log_row(row) -> Dict:
        return {
            "id": row["id"],
            "job_id": row["job_id"],
            "start_time": row["start_time"],
            "end_time": row["end_time"],
            "user_id": row["user_id"],
            "created_at": row["created_at"],
        }

    def _material_row(self, conn, row) -> Dict:
        color = conn.execute("SELECT * FROM colors WHERE id = ?", (row["color_id"],)).fetchone()
        recuts = conn.execute(
            "SELECT * FROM recut_entries WHERE material_id = ? ORDER BY id", (row["id"],)
        ).fetchall()
        return {
            "id": row["id"],
            "cutlist_id": row["cutlist_id"],
            "job_id": row["job_id"] if "job_id" in row.keys() else None,
            "color_id": row["color_id"],
            "total_sheets": row["total_sheets"],
            "completed_sheets": row["completed_sheets"],
            "sheet_statuses": json.loads(row["sheet_statuses"]) if row["sheet_statuses"] else [],
            "created_at": row["created_at"],
            "color": self._color_row(color) if color else None,
            "recut_entries": [self._recut_row(r) for r in recuts],
        }

    def _job_row(self, conn, row) -> Dict:
        cutlists = conn.execute(
            "SELECT * FROM cutlists WHERE job_id = ? ORDER BY order_index, id", (row["id"],)
        ).fetchall()
        time_logs = conn.execute(
            "SELECT * FROM job_time_logs WHERE job_id = ? ORDER BY start_time, id", (row["id"],)
        ).fetchall()
        return {
            "id": row["id"],
            "job_number": row["job_number"],
            "customer_name": row["customer_name"],
            "job_name": row["job_name"],
            "status": row["status"],
            "start_time": row["start_time"],
            "end_time": row["end_time"],
            "total_duration": row["total_duration"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
            "cutlists": [self._cutlist_row(conn, c) for c in cutlists],
            "time_logs": [self._time_log_row(t) for t in time_logs],
        }

    def _cutlist_row(self, conn, row) -> Dict:
        materials = conn.execute(
            """
            SELECT m.*, c.job_id AS job_id FROM job_materials m
            JOIN cutlists c ON c.id = m.cutlist_id
            WHERE m.cutlist_id = ? ORDER BY m.id
            """,
            (row["id"],),
        ).fetchall()
        return {
            "id": row["id"],
            "job_id": row["job_id"],
            "name": row["name"],
            "order_index": row["order_index"],
            "created_at": row["created_at"],
            "materials": [self._material_row(conn, m) for m in materials],
        }

    @staticmethod
    def _update_fields(conn, table: str, row_id: int, fields: Dict[str, Any]) -> bool:
        if not fields:
            return conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (row_id,)).fetchone() is not None
        assignments = ", ".join(f"{column} = ?" for column in fields)
        cursor = conn.execute(
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            (*fields.values(), row_id),
        )
        return cursor.rowcount > 0

    # User persistence

    def insert_user(self, user_data: Dict) -> int:
        """
        Insert a user.

        Args:
            user_data: Dict with keys: username, password (hash), email, role

        Returns:
            The new user ID
        """
        with self._connect(write=True) as conn:
            cursor = conn.execute(
                "INSERT INTO users (username, password, email, role, created_at) VALUES (?, ?, ?, ?, ?)",
                (
                    user_data["username"],
                    user_data["password"],
                    user_data.get("email"),
                    user_data.get("role", "user"),
                    _now(),
                ),
            )
            return cursor.lastrowid

    def load_user(self, user_id: int) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._user_row(row) if row else None

    def load_user_by_username(self, username: str) -> Optional[Dict]:
        """Case-insensitive username lookup."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE lower(username) = lower(?)", (username,)
            ).fetchone()
            return self._user_row(row) if row else None

    def load_all_users(self) -> List[Dict]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
            return [self._user_row(row) for row in rows]

    def count_users(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]

    def update_user(self, user_id: int, fields: Dict[str, Any]) -> bool:
        """Update selected user columns. Returns False if the user does not exist."""
        with self._connect(write=True) as conn:
            return self._update_fields(conn, "users", user_id, fields)

    def delete_user(self, user_id: int) -> bool:
        with self._connect(write=True) as conn:
            return conn.execute("DELETE FROM users WHERE id = ?", (user_id,)).rowcount > 0

    # Colour catalog persistence

    def insert_color_group(self, name: str) -> int:
        with self._connect(write=True) as conn:
            cursor = conn.execute(
                "INSERT INTO color_groups (name, created_at) VALUES (?, ?)", (name, _now())
            )
            return cursor.lastrowid

    def load_color_group(self, group_id: int) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM color_groups WHERE id = ?", (group_id,)).fetchone()
            return dict(row) if row else None

    def load_color_group_by_name(self, name: str) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM color_groups WHERE lower(name) = lower(?)", (name,)
            ).fetchone()
            return dict(row) if row else None

    def load_all_color_groups(self) -> List[Dict]:
        with self._connect() as conn:
            return [dict(row) for row in conn.execute("SELECT * FROM color_groups ORDER BY name")]

    def update_color_group(self, group_id: int, name: str) -> bool:
        with self._connect(write=True) as conn:
            return self._update_fields(conn, "color_groups", group_id, {"name": name})

    def delete_color_group(self, group_id: int) -> bool:
        """Delete a group; its colours remain with no group."""
        with self._connect(write=True) as conn:
            return conn.execute("DELETE FROM color_groups WHERE id = ?", (group_id,)).rowcount > 0

    def insert_color(self, color_data: Dict) -> int:
        """
        Insert a colour.

        Args:
            color_data: Dict with keys: name, hex_color, group_id, texture
        """
        with self._connect(write=True) as conn:
            cursor = conn.execute(
                "INSERT INTO colors (name, hex_color, group_id, texture, created_at) VALUES (?, ?, ?, ?, ?)",
                (
                    color_data["name"],
                    color_data["hex_color"],
                    color_data.get("group_id"),
                    color_data.get("texture"),
                    _now(),
                ),
            )
            return cursor.lastrowid

    def load_color(self, color_id: int) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM colors WHERE id = ?", (color_id,)).fetchone()
            return self._color_row(row) if row else None

    def load_all_colors(self, search: Optional[str] = None) -> List[Dict]:
        """Load colours, optionally filtered by a case-insensitive name fragment."""
        with self._connect() as conn:
            if search:
                rows = conn.execute(
                    "SELECT * FROM colors WHERE name LIKE ? ORDER BY name",
                    (f"%{search}%",),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM colors ORDER BY name").fetchall()
            return [self._color_row(row) for row in rows]

    def update_color(self, color_id: int, fields: Dict[str, Any]) -> bool:
        with self._connect(write=True) as conn:
            return self._update_fields(conn, "colors", color_id, fields)

    def count_materials_using_color(self, color_id: int) -> int:
        with self._connect() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM job_materials WHERE color_id = ?", (color_id,)
            ).fetchone()[0]

    def delete_color(self, color_id: int) -> bool:
        with self._connect(write=True) as conn:
            return conn.execute("DELETE FROM colors WHERE id = ?", (color_id,)).rowcount > 0

    # Job persistence

    def insert_job(self, job_data: Dict, cutlists: List[Dict]) -> int:
        """
        Insert a job with its cutlists and materials in one transaction.

        The job number is derived from the assigned row ID.

        Args:
            job_data: Dict with keys: customer_name, job_name, status
            cutlists: List of dicts with keys: name, order_index, materials
                (each material: color_id, total_sheets, sheet_statuses)

        Returns:
            The new job ID
        """
        now = _now()
        with self._connect(write=True) as conn:
            cursor = conn.execute(
                """
                INSERT INTO jobs (job_number, customer_name, job_name, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    f"pending-{now}",
                    job_data["customer_name"],
                    job_data["job_name"],
                    job_data.get("status", "waiting"),
                    now,
                    now,
                ),
            )
            job_id = cursor.lastrowid
            conn.execute(
                "UPDATE jobs SET job_number = ? WHERE id = ?",
                (f"JOB-{job_id:05d}", job_id),
            )

            for cutlist in cutlists:
                cutlist_id = conn.execute(
                    "INSERT INTO cutlists (job_id, name, order_index, created_at) VALUES (?, ?, ?, ?)",
                    (job_id, cutlist["name"], cutlist.get("order_index", 0), now),
                ).lastrowid
                for material in cutlist.get("materials", []):
                    self._insert_material(conn, cutlist_id, material)

            return job_id

    def load_job(self, job_id: int) -> Optional[Dict]:
        """
        Load a job with cutlists, materials, colours, recuts and time logs.

        Returns:
            Dict with job data or None if not found
        """
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
            if not row:
                return None
            return self._job_row(conn, row)

    def load_all_jobs(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        created_from: Optional[str] = None,
        created_before: Optional[str] = None,
        created_until: Optional[str] = None,
    ) -> List[Dict]:
        """
        Load jobs, newest first.

        Args:
            search: Case-insensitive fragment of job number, customer or job name
            status: Exact status filter
            created_from: Inclusive lower bound on created_at (ISO string)
            created_before: Exclusive upper bound on created_at (ISO string)
            created_until: Inclusive upper bound on created_at (ISO string)
        """
        clauses = []
        params: List[Any] = []
        if search:
            clauses.append("(job_number LIKE ? OR customer_name LIKE ? OR job_name LIKE ?)")
            params.extend([f"%{search}%"] * 3)
        if status:
            clauses.append("status = ?")
            params.append(status)
        if created_from:
            clauses.append("created_at >= ?")
            params.append(created_from)
        if created_before:
            clauses.append("created_at < ?")
            params.append(created_before)
        if created_until:
            clauses.append("created_at <= ?")
            params.append(created_until)

        query = "SELECT * FROM jobs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC, id DESC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._job_row(conn, row) for row in rows]

    def update_job(self, job_id: int, fields: Dict[str, Any]) -> bool:
        """Update selected job columns and bump updated_at."""
        with self._connect(write=True) as conn:
            return self._update_fields(conn, "jobs", job_id, {**fields, "updated_at": _now()})

    def delete_job(self, job_id: int) -> bool:
        """Delete a job; cutlists, materials, recuts and time logs cascade."""
        with self._connect(write=True) as conn:
            return conn.execute("DELETE FROM jobs WHERE id = ?", (job_id,)).rowcount > 0

    # Cutlist persistence

    def insert_cutlists(self, job_id: int, count: int) -> List[int]:
        """
        Append `count` cutlists named after their position in the job.

        Returns:
            IDs of the created cutlists
        """
        now = _now()
        with self._connect(write=True) as conn:
            row = conn.execute(
                "SELECT COUNT(*), COALESCE(MAX(order_index), -1) FROM cutlists WHERE job_id = ?",
                (job_id,),
            ).fetchone()
            existing, max_order = row[0], row[1]
            ids = []
            for offset in range(count):
                ids.append(conn.execute(
                    "INSERT INTO cutlists (job_id, name, order_index, created_at) VALUES (?, ?, ?, ?)",
                    (job_id, f"Cutlist {existing + offset + 1}", max_order + offset + 1, now),
                ).lastrowid)
            return ids

    def load_cutlist(self, cutlist_id: int) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM cutlists WHERE id = ?", (cutlist_id,)).fetchone()
            return self._cutlist_row(conn, row) if row else None

    def delete_cutlist(self, cutlist_id: int) -> Optional[int]:
        """
        Delete a cutlist and its materials.

        Returns:
            The owning job ID, or None if the cutlist did not exist
        """
        with self._connect(write=True) as conn:
            row = conn.execute("SELECT job_id FROM cutlists WHERE id = ?", (cutlist_id,)).fetchone()
            if not row:
                return None
            conn.execute("DELETE FROM cutlists WHERE id = ?", (cutlist_id,))
            return row["job_id"]

    # Material persistence

    @staticmethod
    def _insert_material(conn, cutlist_id: int, material: Dict) -> int:
        statuses = list(material["sheet_statuses"])
        return conn.execute(
            """
            INSERT INTO job_materials (cutlist_id, color_id, total_sheets, completed_sheets, sheet_statuses, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                cutlist_id,
                material["color_id"],
                material["total_sheets"],
                material.get("completed_sheets", 0),
                json.dumps(statuses),
                _now(),
            ),
        ).lastrowid

    def insert_material(self, cutlist_id: int, material: Dict) -> int:
        """
        Insert a material into a cutlist.

        Args:
            material: Dict with keys: color_id, total_sheets, sheet_statuses
        """
        with self._connect(write=True) as conn:
            return self._insert_material(conn, cutlist_id, material)

    def load_material(self, material_id: int) -> Optional[Dict]:
        """Load a material with its colour, recut entries and owning job ID."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT m.*, c.job_id AS job_id FROM job_materials m
                LEFT JOIN cutlists c ON c.id = m.cutlist_id
                WHERE m.id = ?
                """,
                (material_id,),
            ).fetchone()
            return self._material_row(conn, row) if row else None

    def delete_material(self, material_id: int) -> bool:
        """Delete a material; its recut entries cascade."""
        with self._connect(write=True) as conn:
            return conn.execute("DELETE FROM job_materials WHERE id = ?", (material_id,)).rowcount > 0

    def mutate_material_sheets(self, material_id: int, mutate: SheetMutation) -> Optional[Dict]:
        """
        Atomically rewrite a material's status sequence.

        `mutate` receives (sheet_statuses, total_sheets) as stored and
        returns the new (sheet_statuses, total_sheets). The cached
        completed count is recomputed from the new sequence. The whole
        read-modify-write runs under the write lock; errors raised by
        `mutate` roll the transaction back unchanged.

        Returns:
            The updated material row, or None if it does not exist
        """
        with self._connect(write=True) as conn:
            row = conn.execute(
                "SELECT sheet_statuses, total_sheets FROM job_materials WHERE id = ?",
                (material_id,),
            ).fetchone()
            if not row:
                return None

            current = json.loads(row["sheet_statuses"]) if row["sheet_statuses"] else []
            statuses, total = mutate(current, row["total_sheets"])
            statuses = [str(getattr(s, "value", s)) for s in statuses]
            if len(statuses) != total:
                raise PersistenceError(
                    f"Refusing to store {len(statuses)} statuses for {total} sheets "
                    f"on material {material_id}"
                )

            conn.execute(
                """
                UPDATE job_materials
                SET sheet_statuses = ?, total_sheets = ?, completed_sheets = ?
                WHERE id = ?
                """,
                (json.dumps(statuses), total, statuses.count("cut"), material_id),
            )

            updated = conn.execute(
                """
                SELECT m.*, c.job_id AS job_id FROM job_materials m
                LEFT JOIN cutlists c ON c.id = m.cutlist_id
                WHERE m.id = ?
                """,
                (material_id,),
            ).fetchone()
            return self._material_row(conn, updated)

    # Recut persistence

    def insert_recut(self, recut_data: Dict) -> int:
        """
        Insert a recut entry.

        Args:
            recut_data: Dict with keys: material_id, quantity, reason,
                sheet_statuses, user_id
        """
        with self._connect(write=True) as conn:
            return conn.execute(
                """
                INSERT INTO recut_entries (material_id, quantity, reason, sheet_statuses, completed_sheets, created_at, user_id)
                VALUES (?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    recut_data["material_id"],
                    recut_data["quantity"],
                    recut_data.get("reason"),
                    json.dumps(list(recut_data["sheet_statuses"])),
                    _now(),
                    recut_data.get("user_id"),
                ),
            ).lastrowid

    def load_recut(self, recut_id: int) -> Optional[Dict]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM recut_entries WHERE id = ?", (recut_id,)).fetchone()
            return self._recut_row(row) if row else None

    def load_recuts(self, material_id: int) -> List[Dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM recut_entries WHERE material_id = ? ORDER BY id", (material_id,)
            ).fetchall()
            return [self._recut_row(row) for row in rows]

    def delete_recut(self, recut_id: int) -> bool:
        with self._connect(write=True) as conn:
            return conn.execute("DELETE FROM recut_entries WHERE id = ?", (recut_id,)).rowcount > 0

    def mutate_recut_sheets(self, recut_id: int, mutate: SheetMutation) -> Optional[Dict]:
        """
        Atomically rewrite a recut entry's status sequence.

        Same contract as mutate_material_sheets, with quantity as the bound.
        """
        with self._connect(write=True) as conn:
            row = conn.execute(
                "SELECT sheet_statuses, quantity FROM recut_entries WHERE id = ?", (recut_id,)
            ).fetchone()
            if not row:
                return None

            current = json.loads(row["sheet_statuses"]) if row["sheet_statuses"] else []
            statuses, quantity = mutate(current, row["quantity"])
            statuses = [str(getattr(s, "value", s)) for s in statuses]
            if len(statuses) != quantity:
                raise PersistenceError(
                    f"Refusing to store {len(statuses)} statuses for {quantity} sheets "
                    f"on recut {recut_id}"
                )

            conn.execute(
                "UPDATE recut_entries SET sheet_statuses = ?, quantity = ?, completed_sheets = ? WHERE id = ?",
                (json.dumps(statuses), quantity, statuses.count("cut"), recut_id),
            )
            updated = conn.execute("SELECT * FROM recut_entries WHERE id = ?", (recut_id,)).fetchone()
            return self._recut_row(updated)

    def load_job_id_for_material(self, material_id: int) -> Optional[int]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT c.job_id FROM job_materials m
                JOIN cutlists c ON c.id = m.cutlist_id WHERE m.id = ?
                """,
                (material_id,),
            ).fetchone()
            return row["job_id"] if row else None

    # Time log persistence

    def insert_time_log(self, job_id: int, start_time: str, user_id: Optional[int] = None) -> int:
        with self._connect(write=True) as conn:
            return conn.execute(
                "INSERT INTO job_time_logs (job_id, start_time, user_id, created_at) VALUES (?, ?, ?, ?)",
                (job_id, start_time, user_id, _now()),
            ).lastrowid

    def load_open_time_logs(self, job_id: int) -> List[Dict]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM job_time_logs WHERE job_id = ? AND end_time IS NULL ORDER BY id",
                (job_id,),
            ).fetchall()
            return [self._time_log_row(row) for row in rows]

    def close_open_time_logs(self, job_id: int, end_time: str) -> int:
        """
        Close every open time log of a job.

        Returns:
            Number of logs closed
        """
        with self._connect(write=True) as conn:
            return conn.execute(
                "UPDATE job_time_logs SET end_time = ? WHERE job_id = ? AND end_time IS NULL",
                (end_time, job_id),
            ).rowcount

    def total_logged_seconds(self, job_id: int) -> float:
        """Sum of elapsed seconds across the closed time logs of a job."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT start_time, end_time FROM job_time_logs WHERE job_id = ? AND end_time IS NOT NULL",
                (job_id,),
            ).fetchall()
        elapsed = 0.0
        for row in rows:
            started = datetime.fromisoformat(row["start_time"])
            ended = datetime.fromisoformat(row["end_time"])
            elapsed += max(0.0, (ended - started).total_seconds())
        return elapsed

    def load_time_logs(
        self,
        started_from: Optional[str] = None,
        started_before: Optional[str] = None,
        started_until: Optional[str] = None,
    ) -> List[Dict]:
        """
        Load time logs across all jobs, optionally bounded by start time.

        started_before is an exclusive upper bound, started_until an
        inclusive one.
        """
        clauses = []
        params: List[Any] = []
        if started_from:
            clauses.append("start_time >= ?")
            params.append(started_from)
        if started_before:
            clauses.append("start_time < ?")
            params.append(started_before)
        if started_until:
            clauses.append("start_time <= ?")
            params.append(started_until)
        query = "SELECT * FROM job_time_logs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY start_time"
        with self._connect() as conn:
            return [self._time_log_row(row) for row in conn.execute(query, params).fetchall()]
