# backend/fitbook/models/user.py
"""
User model for FitBook.

Users are owned by the external authentication collaborator. The backend
only reads them to resolve the actor of a request and to distinguish
trainers from clients.

Classes:
    UserRole: Enum defining the possible user roles
    User: Trainer or client account
"""

from enum import Enum
import logging

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """Marketplace roles."""

    TRAINER = "trainer"
    CLIENT = "client"


class User(Base):
    """
    Trainer or client account.

    Attributes:
        id: ULID primary key
        email: Unique email address
        full_name: Display name used in notifications
        role: trainer or client
        is_active: Whether the account may act
        created_at: Account creation timestamp
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CLIENT.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('trainer', 'client')", name="ck_users_role"),
    )

    @property
    def is_trainer(self) -> bool:
        return self.role == UserRole.TRAINER.value

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT.value

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
