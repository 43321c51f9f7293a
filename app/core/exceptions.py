"""Named service errors surfaced to the API layer"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code = "SERVICE_ERROR"
    default_message = "Operation failed"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = None, status_code: int = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# Precondition violations: reported before any mutation

class PreconditionError(ServiceError):
    code = "PRECONDITION_FAILED"


class NotFoundError(ServiceError):
    code = "RESOURCE_NOT_FOUND"
    default_message = "Not found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ServiceError):
    code = "FORBIDDEN"
    default_message = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class UnauthorizedError(ServiceError):
    code = "UNAUTHORIZED"
    default_message = "Incorrect email or password"
    status_code = status.HTTP_401_UNAUTHORIZED


class EmailNotVerifiedError(PreconditionError):
    code = "EMAIL_NOT_VERIFIED"
    default_message = "Verify email first"
    status_code = status.HTTP_403_FORBIDDEN


class AccountInactiveError(PreconditionError):
    code = "ACCOUNT_INACTIVE"
    default_message = "Account is deactivated"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTokenError(PreconditionError):
    code = "INVALID_TOKEN"
    default_message = "Invalid or expired token"


class EmailAlreadyVerifiedError(PreconditionError):
    code = "EMAIL_ALREADY_VERIFIED"
    default_message = "Email already verified"


class WrongPasswordError(PreconditionError):
    code = "WRONG_PASSWORD"
    default_message = "Wrong password"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class BatchNotFoundError(NotFoundError):
    code = "BATCH_NOT_FOUND"
    default_message = "Batch not found"


class EnrollmentNotFoundError(NotFoundError):
    code = "ENROLLMENT_NOT_FOUND"
    default_message = "Enrollment not found"


class NotificationNotFoundError(NotFoundError):
    code = "NOTIFICATION_NOT_FOUND"
    default_message = "Notification not found"


class EnrollmentClosedError(PreconditionError):
    code = "ENROLLMENT_CLOSED"
    default_message = "Enrollment closed"


class OutsideEnrollmentPeriodError(PreconditionError):
    code = "OUTSIDE_ENROLLMENT_PERIOD"
    default_message = "Outside enrollment period"


class NoSeatsLeftError(PreconditionError):
    code = "NO_SEATS_LEFT"
    default_message = "No seats left"


class AlreadyEnrolledError(PreconditionError):
    code = "ALREADY_ENROLLED"
    default_message = "Already enrolled"


class InvalidEnrollmentWindowError(PreconditionError):
    code = "INVALID_ENROLLMENT_WINDOW"
    default_message = "Invalid enrollment time window"


class SelfActionError(PreconditionError):
    code = "SELF_ACTION_NOT_ALLOWED"
    default_message = "You cannot perform this action on your own account"


# Conflict violations: detected inside the transaction, which is rolled back

class ConflictError(ServiceError):
    code = "CONFLICT"
    default_message = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(ConflictError):
    code = "INVALID_STATE"
    default_message = "Invalid state"


class TransactionAlreadyUsedError(ConflictError):
    code = "TRANSACTION_ALREADY_USED"
    default_message = "Transaction already used"


class PaymentAlreadyExistsError(ConflictError):
    code = "PAYMENT_ALREADY_EXISTS"
    default_message = "Payment already exists"


class PaymentNotFoundError(ConflictError):
    code = "PAYMENT_NOT_FOUND"
    default_message = "No payment found"


class PaymentAlreadyVerifiedError(ConflictError):
    code = "PAYMENT_ALREADY_VERIFIED"
    default_message = "Payment already verified"


class BatchHasEnrollmentsError(ConflictError):
    code = "BATCH_HAS_ENROLLMENTS"
    default_message = "Cannot delete batches that have enrollments"


class PaymentDeletionError(ConflictError):
    code = "PAYMENT_NOT_DELETABLE"
    default_message = "Cannot delete approved or rejected payments"


class EmailAlreadyExistsError(ConflictError):
    code = "EMAIL_ALREADY_EXISTS"
    default_message = "A user with this email already exists"


class ClassNotFoundError(NotFoundError):
    code = "CLASS_NOT_FOUND"
    default_message = "Class not found"


class InvalidClassTimeRangeError(PreconditionError):
    code = "INVALID_TIME_RANGE"
    default_message = "Invalid time range"
