"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from sqlalchemy import JSON, Column, Float, Integer, String, create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class DuplicateEmailError(Exception):
    """Raised when a user is created with an email that is already stored."""

    def __init__(self, email: str):
        super().__init__(f"Email already in use: {email}")
        self.email = email


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(self, email: str, password_hash: str) -> "UserRecord":
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def create_form(
        self,
        title: Optional[str],
        header_image: Optional[str],
        questions: list,
    ) -> "FormRecord":
        ...

    def list_forms(
        self, offset: int = 0, limit: Optional[int] = None
    ) -> list["FormRecord"]:
        ...

    def count_forms(self) -> int:
        ...


@dataclass
class UserRecord:
    user_id: str
    email: str
    password_hash: str
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        # Public view; never includes password_hash.
        return {"id": self.user_id, "email": self.email}


@dataclass
class FormRecord:
    form_id: str
    title: Optional[str]
    header_image: Optional[str]
    questions: list
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.form_id,
            "title": self.title,
            "headerImage": self.header_image,
            "questions": self.questions,
            "createdAt": self.created_at,
        }


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.forms: Dict[str, FormRecord] = {}
        self._lock = threading.Lock()

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        with self._lock:
            if email in self.users:
                raise DuplicateEmailError(email)
            record = UserRecord(
                user_id=uuid.uuid4().hex, email=email, password_hash=password_hash
            )
            self.users[email] = record
            return record

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return self.users.get(email)

    def create_form(
        self,
        title: Optional[str],
        header_image: Optional[str],
        questions: list,
    ) -> FormRecord:
        record = FormRecord(
            form_id=uuid.uuid4().hex,
            title=title,
            header_image=header_image,
            questions=list(questions),
        )
        with self._lock:
            self.forms[record.form_id] = record
        return record

    def list_forms(
        self, offset: int = 0, limit: Optional[int] = None
    ) -> list[FormRecord]:
        with self._lock:
            items = list(self.forms.values())
        end = None if limit is None else offset + limit
        return items[offset:end]

    def count_forms(self) -> int:
        return len(self.forms)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self.forms.clear()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            user_id=row.user_id,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def _to_form_record(self, row: "FormRow") -> FormRecord:
        return FormRecord(
            form_id=row.form_id,
            title=row.title,
            header_image=row.header_image,
            questions=row.questions or [],
            created_at=row.created_at,
        )

    def create_user(self, email: str, password_hash: str) -> UserRecord:
        with self.Session() as session:
            existing = session.execute(
                select(UserRow).where(UserRow.email == email)
            ).scalar_one_or_none()
            if existing:
                raise DuplicateEmailError(email)
            row = UserRow(
                user_id=uuid.uuid4().hex,
                email=email,
                password_hash=password_hash,
                created_at=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                # Lost a race with a concurrent signup for the same email.
                session.rollback()
                raise DuplicateEmailError(email) from exc
            return self._to_user_record(row)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email)
            ).scalar_one_or_none()
            if not row:
                return None
            return self._to_user_record(row)

    def create_form(
        self,
        title: Optional[str],
        header_image: Optional[str],
        questions: list,
    ) -> FormRecord:
        with self.Session() as session:
            row = FormRow(
                form_id=uuid.uuid4().hex,
                title=title,
                header_image=header_image,
                questions=list(questions),
                created_at=time.time(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_form_record(row)

    def list_forms(
        self, offset: int = 0, limit: Optional[int] = None
    ) -> list[FormRecord]:
        with self.Session() as session:
            stmt = select(FormRow).order_by(FormRow.seq.asc()).offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            rows = session.execute(stmt).scalars().all()
            return [self._to_form_record(row) for row in rows]

    def count_forms(self) -> int:
        with self.Session() as session:
            return session.execute(select(func.count(FormRow.seq))).scalar_one()


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class FormRow(Base):
    __tablename__ = "forms"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=True)
    header_image = Column(String, nullable=True)
    questions = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
