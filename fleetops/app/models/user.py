"""
User database model.

This module defines the User SQLAlchemy model for authentication.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from fleetops.app.db.session import Base
from fleetops.app.models.enums import UserRole


class User(Base):
    """
    User model for authentication and role-based access.

    The user is the actor recorded on every mutating operation.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    user_name = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    role = Column(Enum(UserRole), default=UserRole.FINANCIAL_ANALYSTS, nullable=False)

    # Session and recovery tokens
    refresh_token = Column(String(512), nullable=True)
    password_reset_token = Column(String(255), nullable=True)
    password_reset_expiry = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, user_name='{self.user_name}', email='{self.email}', role='{self.role.value}')>"
