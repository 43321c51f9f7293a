"""Centralized Enum Definitions"""

import enum


# Domain 1: Users
class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"


# Domain 2: Enrollment & Payment
class EnrollmentStatus(str, enum.Enum):
    """Enrollment lifecycle states"""
    PENDING = "PENDING"
    PAYMENT_SUBMITTED = "PAYMENT_SUBMITTED"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


# Statuses that still hold a seat in the batch
ACTIVE_TRACK_STATUSES = (
    EnrollmentStatus.PENDING,
    EnrollmentStatus.PAYMENT_SUBMITTED,
    EnrollmentStatus.ACTIVE,
)

TERMINAL_STATUSES = (
    EnrollmentStatus.ACTIVE,
    EnrollmentStatus.REJECTED,
    EnrollmentStatus.EXPIRED,
    EnrollmentStatus.CANCELLED,
)


class PaymentStatus(str, enum.Enum):
    """Payment verification status"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentMethod(str, enum.Enum):
    """Supported mobile-money and bank channels"""
    BKASH = "BKASH"
    NAGAD = "NAGAD"
    ROCKET = "ROCKET"
    BANK = "BANK"


# Domain 3: Communication
class EmailJobType(str, enum.Enum):
    """Kinds of queued transactional email"""
    VERIFICATION = "VERIFICATION"
    PAYMENT_NOTIFICATION = "PAYMENT_NOTIFICATION"
    ENROLLMENT_NOTIFICATION = "ENROLLMENT_NOTIFICATION"


class EmailJobStatus(str, enum.Enum):
    """Outbox delivery status"""
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    SENT = "SENT"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


# Domain 4: Classes
class ClassStatus(str, enum.Enum):
    """Live class session status"""
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
