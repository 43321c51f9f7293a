"""Domain 1: User & Authentication Model"""

from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, StatusMixin
from app.models.enums import UserRole


class User(BaseModel, StatusMixin):
    """
    Unified user model for admins and students.
    Students must verify their email before they can enroll.
    """
    __tablename__ = "users"

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Personal Information
    name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)

    # Role & Permissions (RBAC)
    role = Column(Enum(UserRole, name="user_role"), default=UserRole.STUDENT, nullable=False, index=True)

    # Relationships
    enrollments = relationship("Enrollment", back_populates="user", foreign_keys="Enrollment.user_id")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        """Check if user is an admin"""
        return self.role == UserRole.ADMIN

    @property
    def is_student(self) -> bool:
        """Check if user is a student"""
        return self.role == UserRole.STUDENT

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
