# FILE: app/auth/models.py
"""SQLAlchemy ORM models for admins and session tokens."""
from sqlalchemy import Column, Integer, String, DateTime

from app.db import Base, utcnow


class Admin(Base):
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)  # bcrypt
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    token = Column(String(100), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # client | admin
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
