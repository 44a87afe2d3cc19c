from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Iterable, Sequence
from urllib.parse import urlparse

import aiosqlite

from carechat.config import DATABASE_MAX_CONNECTIONS, DATABASE_PATH, DATABASE_URL, SEED_DEMO_DATA

try:  # Optional: only required when DATABASE_URL points at Postgres
    import asyncpg  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    asyncpg = None

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    engine: str

    async def execute(self, query: str, params: Sequence | None = None) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_one(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_all(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def commit(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executescript(self, script: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class SQLiteAdapter(DatabaseAdapter):
    conn: aiosqlite.Connection
    engine: str = "sqlite"

    async def execute(self, query: str, params: Sequence | None = None) -> None:
        await self.conn.execute(query, params or ())

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        await self.conn.executemany(query, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchall()

    async def commit(self) -> None:
        await self.conn.commit()

    async def close(self) -> None:
        await self.conn.close()

    async def executescript(self, script: str) -> None:
        await self.conn.executescript(script)


@dataclass
class PostgresAdapter(DatabaseAdapter):
    pool: "asyncpg.Pool"  # type: ignore[name-defined]
    engine: str = "postgres"

    @staticmethod
    def _translate_query(query: str) -> str:
        # Convert SQLite-style ? placeholders to asyncpg-style $1, $2, ...
        if "$1" in query:
            return query
        idx = 1
        out = []
        for ch in query:
            if ch == "?":
                out.append(f"${idx}")
                idx += 1
            else:
                out.append(ch)
        return "".join(out)

    async def execute(self, query: str, params: Sequence | None = None) -> None:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            await conn.execute(q, *(params or ()))

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            await conn.executemany(q, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(q, *(params or ()))

    async def fetch_all(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetch(q, *(params or ()))

    async def commit(self) -> None:
        # asyncpg autocommits per statement unless an explicit transaction is used.
        return

    async def close(self) -> None:
        await self.pool.close()

    async def executescript(self, script: str) -> None:
        # Not supported for Postgres; callers should split statements.
        raise NotImplementedError


_db: DatabaseAdapter | None = None


async def _connect_sqlite(path: str) -> SQLiteAdapter:
    conn = await aiosqlite.connect(path)
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA foreign_keys = ON")
    logger.info("Connected to SQLite database at %s", path)
    return SQLiteAdapter(conn)


async def get_db() -> DatabaseAdapter:
    global _db
    if _db is None:
        if DATABASE_URL:
            if DATABASE_URL.startswith("sqlite"):
                _db = await _connect_sqlite(_sqlite_path_from_url(DATABASE_URL) or DATABASE_PATH)
            else:
                if asyncpg is None:
                    raise RuntimeError(
                        "DATABASE_URL is set but asyncpg is not installed. "
                        "Install asyncpg or unset DATABASE_URL."
                    )
                pool = await asyncpg.create_pool(
                    dsn=DATABASE_URL,
                    min_size=1,
                    max_size=DATABASE_MAX_CONNECTIONS,
                )
                _db = PostgresAdapter(pool)
                logger.info("Connected to Postgres database")
        else:
            _db = await _connect_sqlite(DATABASE_PATH)
    return _db


def _sqlite_path_from_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or ""
    if not path or path == "/":
        return ""
    # sqlite:////absolute/path.db -> keep absolute path
    if url.startswith("sqlite:////"):
        return "/" + path.lstrip("/")
    # sqlite:///relative.db -> strip leading slash
    if path.startswith("/"):
        return path[1:]
    return path


# Constraint names are referenced by carechat.storage.CONSTRAINT_MESSAGES.
_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        full_name TEXT NOT NULL,
        role TEXT NOT NULL CONSTRAINT profile_role_valid CHECK (role IN ('doctor', 'intern')),
        department TEXT CONSTRAINT profile_department_valid
            CHECK (department IS NULL OR department IN ('cardiology', 'oncology', 'surgery')),
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY,
        full_name TEXT NOT NULL,
        date_of_birth TEXT NOT NULL,
        gender TEXT NOT NULL CONSTRAINT patient_gender_valid CHECK (gender IN ('male', 'female', 'other')),
        blood_type TEXT,
        phone TEXT,
        email TEXT,
        address TEXT,
        emergency_contact_name TEXT,
        emergency_contact_phone TEXT,
        department TEXT NOT NULL CONSTRAINT patient_department_valid
            CHECK (department IN ('cardiology', 'oncology', 'surgery')),
        admission_date TEXT,
        status TEXT NOT NULL DEFAULT 'admitted' CONSTRAINT patient_status_valid
            CHECK (status IN ('admitted', 'recovering', 'discharged')),
        created_by TEXT REFERENCES profiles(id),
        created_at TEXT NOT NULL,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS medical_records (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        diagnosis TEXT NOT NULL,
        treatment_plan TEXT,
        medications TEXT,
        allergies TEXT,
        medical_history TEXT,
        created_by TEXT REFERENCES profiles(id),
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS surgeries (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        surgery_type TEXT NOT NULL,
        surgery_date TEXT NOT NULL,
        surgeon_name TEXT NOT NULL,
        duration_minutes INTEGER,
        notes TEXT,
        created_by TEXT REFERENCES profiles(id),
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS post_operative_notes (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        surgery_id TEXT REFERENCES surgeries(id) ON DELETE CASCADE,
        day_number INTEGER NOT NULL,
        vital_signs TEXT DEFAULT '{}',
        pain_level INTEGER CONSTRAINT pain_level_range CHECK (pain_level >= 0 AND pain_level <= 10),
        mobility_status TEXT,
        wound_condition TEXT,
        complications TEXT,
        notes TEXT,
        created_by TEXT REFERENCES profiles(id),
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS recovery_milestones (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
        milestone_type TEXT NOT NULL,
        milestone_description TEXT NOT NULL,
        achieved BOOLEAN NOT NULL DEFAULT FALSE,
        achieved_date TEXT,
        target_date TEXT,
        notes TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        patient_id TEXT REFERENCES patients(id) ON DELETE SET NULL,
        message TEXT NOT NULL,
        response TEXT NOT NULL,
        context_data TEXT,
        created_at TEXT NOT NULL
    )
    """,
]

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_patients_department ON patients(department)",
    "CREATE INDEX IF NOT EXISTS idx_medical_records_patient ON medical_records(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_surgeries_patient ON surgeries(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_post_op_notes_patient ON post_operative_notes(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_milestones_patient ON recovery_milestones(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_chat_history_user ON chat_history(user_id)",
]


async def init_db() -> None:
    db = await get_db()

    if db.engine == "sqlite":
        await db.executescript(";\n".join(_TABLES + _INDEXES) + ";")
    else:
        for stmt in _TABLES + _INDEXES:
            await db.execute(stmt)

    await db.commit()

    if SEED_DEMO_DATA:
        await _seed_demo_data(db)


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


def _new_id() -> str:
    return str(uuid.uuid4())


async def _seed_demo_data(db: DatabaseAdapter) -> None:
    """Seed a few patients with related records for UI previews."""
    row = await db.fetch_one("SELECT COUNT(*) AS count FROM patients")
    if row and row["count"]:
        return

    now = datetime.now(UTC)

    def ts(days: float = 0) -> str:
        return (now - timedelta(days=days)).isoformat()

    priya, arjun, maria, ethan = _new_id(), _new_id(), _new_id(), _new_id()
    patients = [
        (priya, "Priya Sharma", "1990-05-01", "female", "B+", "+91-98200-11223",
         "priya.sharma@example.com", "14 Marine Drive, Mumbai", "Ravi Sharma", "+91-98200-44556",
         "cardiology", ts(6), "recovering", ts(6), ts(1)),
        (arjun, "Arjun Mehta", "1972-11-19", "male", "O+", "+91-99300-22334",
         "arjun.mehta@example.com", "7 Residency Road, Bengaluru", "Kavya Mehta", "+91-99300-55667",
         "surgery", ts(3), "admitted", ts(3), ts(3)),
        (maria, "Maria Lopez", "1958-02-14", "female", "A-", "+1-555-0142",
         "maria.lopez@example.com", "229 Lakeview Drive, Oakridge", "Daniel Lopez", "+1-555-0143",
         "oncology", ts(10), "recovering", ts(10), ts(2)),
        (ethan, "Ethan Brooks", "2001-08-30", "male", "AB+", "+1-555-0190",
         "ethan.brooks@example.com", "91 Riverbend Ave, Lakeview", "Laura Brooks", "+1-555-0191",
         "cardiology", ts(1), "admitted", ts(1), ts(1)),
    ]
    await db.executemany(
        """INSERT INTO patients (
            id, full_name, date_of_birth, gender, blood_type, phone, email, address,
            emergency_contact_name, emergency_contact_phone, department, admission_date,
            status, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        patients,
    )

    records = [
        (_new_id(), priya, "Coronary artery disease", "CABG followed by cardiac rehabilitation",
         "Aspirin 75mg OD, Atorvastatin 40mg ON, Metoprolol 25mg BD", "Penicillin",
         "Hypertension for 6 years", ts(6)),
        (_new_id(), arjun, "Appendicitis", "Laparoscopic appendectomy, IV antibiotics",
         "Ceftriaxone 1g IV BD, Paracetamol 1g QDS", "None known", "No significant history", ts(3)),
        (_new_id(), maria, "Breast carcinoma, left", "Mastectomy with sentinel node biopsy, adjuvant review",
         "Letrozole 2.5mg OD, Ondansetron PRN", "Sulfa drugs", "Type 2 diabetes", ts(10)),
        (_new_id(), ethan, "Atrial fibrillation", "Rate control and anticoagulation",
         "Apixaban 5mg BD, Bisoprolol 2.5mg OD", "None known", "Palpitations for 3 months", ts(1)),
    ]
    await db.executemany(
        """INSERT INTO medical_records (
            id, patient_id, diagnosis, treatment_plan, medications, allergies, medical_history, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        records,
    )

    priya_cabg, arjun_appy, maria_mast = _new_id(), _new_id(), _new_id()
    surgeries = [
        (priya_cabg, priya, "Coronary Artery Bypass Grafting", ts(5), "Dr. Anil Kapoor", 240,
         "Triple vessel bypass, on-pump", ts(5)),
        (arjun_appy, arjun, "Laparoscopic Appendectomy", ts(2), "Dr. Sara Iyer", 55,
         "Non-perforated appendix", ts(2)),
        (maria_mast, maria, "Mastectomy", ts(9), "Dr. Helen Park", 150,
         "Left simple mastectomy, two sentinel nodes", ts(9)),
    ]
    await db.executemany(
        """INSERT INTO surgeries (
            id, patient_id, surgery_type, surgery_date, surgeon_name, duration_minutes, notes, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        surgeries,
    )

    def vitals(bp: str, hr: int, temp: float, spo2: int) -> str:
        return json.dumps({
            "blood_pressure": bp,
            "heart_rate": hr,
            "temperature": temp,
            "oxygen_saturation": spo2,
        })

    notes = [
        (_new_id(), priya, priya_cabg, 1, vitals("128/82", 92, 37.8, 95), 6,
         "Bed rest", "Clean, dry dressing", None, ts(4)),
        (_new_id(), priya, priya_cabg, 3, vitals("122/78", 84, 37.2, 97), 4,
         "Walking with assistance", "Healing well", None, ts(2)),
        (_new_id(), arjun, arjun_appy, 1, vitals("118/76", 78, 37.0, 98), 3,
         "Independent", "Port sites clean", None, ts(1)),
        (_new_id(), maria, maria_mast, 7, vitals("130/85", 80, 36.9, 98), 2,
         "Independent", "Drain removed", "Minor seroma", ts(2)),
    ]
    await db.executemany(
        """INSERT INTO post_operative_notes (
            id, patient_id, surgery_id, day_number, vital_signs, pain_level,
            mobility_status, wound_condition, complications, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        notes,
    )

    milestones = [
        (_new_id(), priya, "mobility", "Walk 50 metres unassisted", False, None, ts(-2), ts(5)),
        (_new_id(), priya, "pain_management", "Pain below 4 on oral analgesia", True, ts(2), ts(1), ts(5)),
        (_new_id(), maria, "wound_healing", "Drain removal", True, ts(3), ts(3), ts(9)),
        (_new_id(), arjun, "mobility", "Mobilise day 1", True, ts(1), ts(1), ts(2)),
    ]
    await db.executemany(
        """INSERT INTO recovery_milestones (
            id, patient_id, milestone_type, milestone_description, achieved,
            achieved_date, target_date, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        milestones,
    )
    await db.commit()
    logger.info("Seeded %d demo patients", len(patients))
