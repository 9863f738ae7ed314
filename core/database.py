"""
Database abstraction layer for the SkillRas learning platform.

Provides a clean interface for data-store operations using SQLite.
All row storage goes through this layer: lookups keyed by a unique
code/email, insert-returning-row and update-by-filter. Services own the
business rules; this class only stores and converts rows.
"""

import sqlite3
import aiosqlite
from datetime import datetime
from pathlib import Path
from typing import Optional, List

from core.config import Config
from core.errors import AlreadyRegisteredError
from core.models import (
    User, PaidUser, PaymentStatus, ReferralCode, CodeType, Product, Lead,
    utcnow, to_naive_utc,
)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    # Rows written before offsets were normalised may still carry one
    return to_naive_utc(datetime.fromisoformat(value)) if value else None


class Database:
    """Database connection and query manager."""

    def __init__(self, db_path: str = None):
        if db_path is None:
            Config.ensure_data_directory()
            db_path = Config.DATABASE_PATH
        elif db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.conn = None

    async def connect(self):
        """Create database connection and initialize schema."""
        self.conn = await aiosqlite.connect(self.db_path)
        self.conn.row_factory = aiosqlite.Row
        await self._init_schema()

    async def close(self):
        """Close database connection."""
        if getattr(self, "conn", None) is not None:
            await self.conn.close()
        self.conn = None

    async def _ensure_connection(self):
        """Connect lazily on first use."""
        if getattr(self, "conn", None) is None:
            await self.connect()

    async def _init_schema(self):
        """Initialize database schema."""
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                phone TEXT,
                password_hash TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS paid_users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                phone TEXT NOT NULL,
                age INTEGER,
                qualification TEXT,
                state TEXT,
                pincode TEXT,
                course_id TEXT,
                course_name TEXT,
                package_selected TEXT NOT NULL,
                original_price INTEGER NOT NULL,
                referral_code TEXT,
                referrer_name TEXT,
                discount_percentage INTEGER NOT NULL DEFAULT 0,
                discount_amount INTEGER NOT NULL DEFAULT 0,
                final_price INTEGER NOT NULL,
                payment_link TEXT,
                payment_status TEXT NOT NULL DEFAULT 'pending',
                payment_id TEXT,
                photo_link TEXT,
                created_at TEXT NOT NULL
            )
        """)

        # Migration: payment_id column for databases created before it existed
        try:
            await self.conn.execute("ALTER TABLE paid_users ADD COLUMN payment_id TEXT")
            await self.conn.commit()
        except sqlite3.OperationalError:
            # Column already exists
            pass

        await self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_paid_users_email
            ON paid_users(email)
        """)
        await self.conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_paid_users_referral_code
            ON paid_users(referral_code)
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS referral_codes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                code TEXT NOT NULL UNIQUE,
                code_type TEXT NOT NULL,              -- 'referral', 'coupon' or 'affiliate'
                referrer_name TEXT,
                referrer_email TEXT,
                discount_percentage INTEGER NOT NULL DEFAULT 0,
                description TEXT,
                max_usage INTEGER,                    -- NULL or 0: unlimited
                current_usage INTEGER NOT NULL DEFAULT 0,
                payment_link TEXT,                    -- starter slot / primary link
                payment_link2 TEXT,                   -- professional slot
                payment_link3 TEXT,                   -- enterprise slot
                valid_until TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                code TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                download_url TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS leads (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL UNIQUE,
                phone TEXT NOT NULL,
                product_code TEXT,
                created_at TEXT NOT NULL
            )
        """)

        # Processed payments table (idempotency for webhooks)
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS processed_payments (
                payment_id TEXT PRIMARY KEY,
                processed_at TEXT NOT NULL
            )
        """)

        await self.conn.commit()

    # Payment operations (webhook idempotency)
    async def is_payment_processed(self, payment_id: str) -> bool:
        """Return True if payment_id was already processed."""
        await self._ensure_connection()
        async with self.conn.execute(
            "SELECT 1 FROM processed_payments WHERE payment_id = ? LIMIT 1",
            (payment_id,),
        ) as cursor:
            row = await cursor.fetchone()
            return bool(row)

    async def try_mark_payment_processed(self, payment_id: str) -> bool:
        """
        Attempt to mark payment_id as processed.

        Returns True if the record was inserted by this call, False if it already existed.
        """
        await self._ensure_connection()
        now = utcnow().isoformat()
        cursor = await self.conn.execute(
            "INSERT OR IGNORE INTO processed_payments (payment_id, processed_at) VALUES (?, ?)",
            (payment_id, now),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    # User operations
    async def create_user(self, name: str, email: str, phone: Optional[str],
                          password_hash: Optional[str]) -> User:
        """Create a user. Raises AlreadyRegisteredError on a duplicate email."""
        await self._ensure_connection()
        now = utcnow().isoformat()
        try:
            cursor = await self.conn.execute("""
                INSERT INTO users (name, email, phone, password_hash, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (name, email, phone, password_hash, now))
            await self.conn.commit()
        except sqlite3.IntegrityError:
            await self.conn.rollback()
            raise AlreadyRegisteredError()
        return await self.get_user(cursor.lastrowid)

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        await self._ensure_connection()
        async with self.conn.execute(
            "SELECT * FROM users WHERE id = ?", (user_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalised) email."""
        await self._ensure_connection()
        async with self.conn.execute(
            "SELECT * FROM users WHERE email = ?", ((email or "").strip().lower(),)
        ) as cursor:
            row = await cursor.fetchone()
            return self._row_to_user(row) if row else None

    # Enrollment (paid user) operations
    async def create_enrollment(self, *, name: str, email: str, phone: str,
                                package_selected: str, original_price: int,
                                discount_percentage: int, discount_amount: int,
                                final_price: int, payment_link: Optional[str],
                                course_id: Optional[str] = None,
                                course_name: Optional[str] = None,
                                age: Optional[int] = None,
                                qualification: Optional[str] = None,
                                state: Optional[str] = None,
                                pincode: Optional[str] = None,
                                referral_code: Optional[str] = None,
                                referrer_name: Optional[str] = None,
                                payment_status: PaymentStatus = PaymentStatus.PENDING,
                                created_at: Optional[datetime] = None) -> PaidUser:
        """Insert an enrollment row and return it."""
        await self._ensure_connection()
        created = (to_naive_utc(created_at) or utcnow()).isoformat()
        cursor = await self.conn.execute("""
            INSERT INTO paid_users (
                name, email, phone, age, qualification, state, pincode,
                course_id, course_name, package_selected, original_price,
                referral_code, referrer_name, discount_percentage, discount_amount,
                final_price, payment_link, payment_status, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            name, email, phone, age, qualification, state, pincode,
            course_id, course_name, package_selected, int(original_price),
            referral_code, referrer_name, int(discount_percentage), int(discount_amount),
            int(final_price), payment_link, PaymentStatus(payment_status).value, created,
        ))
        await self.conn.commit()
        return await self.get_enrollment(cursor.lastrowid)

    async def get_enrollment(self, enrollment_id: int) -> Optional[PaidUser]:
        """Get enrollment by ID."""
        await self._ensure_connection()
        async with self.conn.execute(
            "SELECT * FROM paid_users WHERE id = ?", (enrollment_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return self._row_to_paid_user(row) if row else None

    async def get_completed_enrollments(self, email: str) -> List[PaidUser]:
        """Get enrollments with a completed payment for an email."""
        await self._ensure_connection()
        async with self.conn.execute("""
            SELECT * FROM paid_users
            WHERE email = ? AND payment_status = ?
            ORDER BY created_at DESC
        """, ((email or "").strip().lower(), PaymentStatus.COMPLETED.value)) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_paid_user(row) for row in rows]

    async def get_latest_enrollment(self, email: str) -> Optional[PaidUser]:
        """Get the most recent enrollment for an email, whatever its status."""
        await self._ensure_connection()
        async with self.conn.execute("""
            SELECT * FROM paid_users WHERE email = ?
            ORDER BY created_at DESC, id DESC LIMIT 1
        """, ((email or "").strip().lower(),)) as cursor:
            row = await cursor.fetchone()
            return self._row_to_paid_user(row) if row else None

    async def get_enrollments_by_referral_code(self, code: str) -> List[PaidUser]:
        """Get every enrollment that used a code, newest first."""
        await self._ensure_connection()
        async with self.conn.execute("""
            SELECT * FROM paid_users WHERE referral_code = ?
            ORDER BY created_at DESC, id DESC
        """, (code,)) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_paid_user(row) for row in rows]

    async def set_enrollment_payment_id(self, enrollment_id: int, payment_id: str) -> bool:
        """Bind the processor's payment id to an enrollment."""
        await self._ensure_connection()
        cursor = await self.conn.execute(
            "UPDATE paid_users SET payment_id = ? WHERE id = ?",
            (payment_id, enrollment_id),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    async def update_enrollment_status(self, enrollment_id: int, status: PaymentStatus) -> bool:
        """
        Move an enrollment to a new payment status.

        A completed row is never changed, so of two concurrent completions
        only one gets True back.
        """
        await self._ensure_connection()
        cursor = await self.conn.execute(
            """
            UPDATE paid_users SET payment_status = ?
            WHERE id = ? AND payment_status != ?
            """,
            (PaymentStatus(status).value, enrollment_id, PaymentStatus.COMPLETED.value),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    async def update_photo_link(self, email: str, photo_link: Optional[str]) -> int:
        """Set photo_link on every enrollment row of an email. Returns rows updated."""
        await self._ensure_connection()
        cursor = await self.conn.execute(
            "UPDATE paid_users SET photo_link = ? WHERE email = ?",
            (photo_link, (email or "").strip().lower()),
        )
        await self.conn.commit()
        return cursor.rowcount

    # Referral codes
    async def create_referral_code(
        self,
        code: str,
        code_type: CodeType,
        discount_percentage: int,
        *,
        referrer_name: Optional[str] = None,
        referrer_email: Optional[str] = None,
        description: Optional[str] = None,
        max_usage: Optional[int] = None,
        payment_link: Optional[str] = None,
        payment_link2: Optional[str] = None,
        payment_link3: Optional[str] = None,
        valid_until: Optional[datetime] = None,
        is_active: bool = True,
    ) -> ReferralCode:
        await self._ensure_connection()
        now = utcnow().isoformat()
        await self.conn.execute(
            """
            INSERT INTO referral_codes (
                code, code_type, referrer_name, referrer_email, discount_percentage,
                description, max_usage, current_usage, payment_link, payment_link2,
                payment_link3, valid_until, is_active, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?, ?)
            """,
            (
                code.strip().upper(),
                CodeType(code_type).value,
                referrer_name,
                referrer_email.strip().lower() if referrer_email else None,
                int(discount_percentage),
                description,
                int(max_usage) if max_usage is not None else None,
                payment_link,
                payment_link2,
                payment_link3,
                to_naive_utc(valid_until).isoformat() if valid_until else None,
                1 if is_active else 0,
                now,
            ),
        )
        await self.conn.commit()
        return await self.get_referral_code(code)

    async def get_referral_code(self, code: str) -> Optional[ReferralCode]:
        """Look up a code regardless of its state."""
        await self._ensure_connection()
        code = (code or "").strip().upper()
        if not code:
            return None
        async with self.conn.execute(
            "SELECT * FROM referral_codes WHERE code = ?", (code,)
        ) as cursor:
            row = await cursor.fetchone()
            return self._row_to_referral_code(row) if row else None

    async def get_affiliate_code(self, referrer_email: str) -> Optional[ReferralCode]:
        """Active affiliate code owned by an email."""
        await self._ensure_connection()
        async with self.conn.execute(
            """
            SELECT * FROM referral_codes
            WHERE referrer_email = ? AND code_type = ? AND is_active = 1
            ORDER BY created_at DESC LIMIT 1
            """,
            ((referrer_email or "").strip().lower(), CodeType.AFFILIATE.value),
        ) as cursor:
            row = await cursor.fetchone()
            return self._row_to_referral_code(row) if row else None

    async def list_referral_codes(self, referrer_email: Optional[str] = None,
                                  limit: int = 20) -> List[ReferralCode]:
        await self._ensure_connection()
        if referrer_email:
            query = """
                SELECT * FROM referral_codes WHERE referrer_email = ?
                ORDER BY created_at DESC LIMIT ?
            """
            params = (referrer_email.strip().lower(), int(limit))
        else:
            query = "SELECT * FROM referral_codes ORDER BY created_at DESC LIMIT ?"
            params = (int(limit),)
        async with self.conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_referral_code(r) for r in rows]

    async def increment_referral_code_use(self, code: str) -> bool:
        """
        Atomically count one use of a code.

        The usage cap and expiry are checked in the same statement, so two
        concurrent redemptions can never push current_usage past max_usage.
        """
        await self._ensure_connection()
        code = (code or "").strip().upper()
        if not code:
            return False
        cursor = await self.conn.execute(
            """
            UPDATE referral_codes
            SET current_usage = current_usage + 1
            WHERE code = ?
              AND is_active = 1
              AND (max_usage IS NULL OR max_usage = 0 OR current_usage < max_usage)
              AND (valid_until IS NULL OR valid_until > ?)
            """,
            (code, utcnow().isoformat()),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    async def deactivate_referral_code(self, code: str) -> bool:
        """Soft-delete: mark code inactive."""
        await self._ensure_connection()
        code = (code or "").strip().upper()
        if not code:
            return False
        cursor = await self.conn.execute(
            "UPDATE referral_codes SET is_active = 0 WHERE code = ?",
            (code,),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    # Products and leads
    async def create_product(self, code: str, name: str, download_url: Optional[str] = None) -> Product:
        await self._ensure_connection()
        now = utcnow().isoformat()
        await self.conn.execute(
            "INSERT INTO products (code, name, download_url, created_at) VALUES (?, ?, ?, ?)",
            (code.strip().upper(), name, download_url, now),
        )
        await self.conn.commit()
        return await self.get_product_by_code(code)

    async def get_product_by_code(self, code: str) -> Optional[Product]:
        await self._ensure_connection()
        async with self.conn.execute(
            "SELECT * FROM products WHERE code = ?", ((code or "").strip().upper(),)
        ) as cursor:
            row = await cursor.fetchone()
            return self._row_to_product(row) if row else None

    async def create_lead(self, name: str, email: str, phone: str,
                          product_code: Optional[str] = None) -> Lead:
        """Store a download-form lead. Raises AlreadyRegisteredError on a duplicate email."""
        await self._ensure_connection()
        now = utcnow().isoformat()
        try:
            cursor = await self.conn.execute(
                """
                INSERT INTO leads (name, email, phone, product_code, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, email, phone, product_code, now),
            )
            await self.conn.commit()
        except sqlite3.IntegrityError:
            await self.conn.rollback()
            raise AlreadyRegisteredError()
        async with self.conn.execute(
            "SELECT * FROM leads WHERE id = ?", (cursor.lastrowid,)
        ) as cur:
            row = await cur.fetchone()
            return self._row_to_lead(row)

    # Helper methods for row conversion
    def _row_to_user(self, row) -> User:
        """Convert database row to User object."""
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            password_hash=row["password_hash"],
            created_at=_parse_dt(row["created_at"]),
        )

    def _row_to_paid_user(self, row) -> PaidUser:
        """Convert database row to PaidUser object."""
        return PaidUser(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            age=row["age"],
            qualification=row["qualification"],
            state=row["state"],
            pincode=row["pincode"],
            course_id=row["course_id"],
            course_name=row["course_name"],
            package_selected=row["package_selected"],
            original_price=int(row["original_price"]),
            referral_code=row["referral_code"],
            referrer_name=row["referrer_name"],
            discount_percentage=int(row["discount_percentage"] or 0),
            discount_amount=int(row["discount_amount"] or 0),
            final_price=int(row["final_price"] or 0),
            payment_link=row["payment_link"],
            payment_status=PaymentStatus(row["payment_status"]),
            photo_link=row["photo_link"],
            payment_id=row["payment_id"],
            created_at=_parse_dt(row["created_at"]),
        )

    def _row_to_referral_code(self, row) -> ReferralCode:
        """Convert database row to ReferralCode object."""
        return ReferralCode(
            id=row["id"],
            code=row["code"],
            code_type=CodeType(row["code_type"]),
            referrer_name=row["referrer_name"],
            referrer_email=row["referrer_email"],
            discount_percentage=int(row["discount_percentage"] or 0),
            description=row["description"],
            max_usage=row["max_usage"],
            current_usage=int(row["current_usage"] or 0),
            payment_link=row["payment_link"],
            payment_link2=row["payment_link2"],
            payment_link3=row["payment_link3"],
            valid_until=_parse_dt(row["valid_until"]),
            is_active=bool(row["is_active"]),
        )

    def _row_to_product(self, row) -> Product:
        return Product(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            download_url=row["download_url"],
            created_at=_parse_dt(row["created_at"]),
        )

    def _row_to_lead(self, row) -> Lead:
        return Lead(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            product_code=row["product_code"],
            created_at=_parse_dt(row["created_at"]),
        )
