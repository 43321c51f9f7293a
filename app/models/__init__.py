"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, StatusMixin
from app.models.enums import *
from app.models.user import User
from app.models.batch import Batch
from app.models.enrollment import Enrollment
from app.models.payment import Payment
from app.models.communication import Notification, EmailJob
from app.models.class_session import ClassSession


__all__ = [
    # Base classes
    "BaseModel",
    "StatusMixin",

    # Users
    "User",

    # Enrollment & Payment
    "Batch",
    "Enrollment",
    "Payment",

    # Communication
    "Notification",
    "EmailJob",

    # Classes
    "ClassSession",
]
