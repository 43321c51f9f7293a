"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import (
    auth, batches, enrollments, payments, notifications,
    admin, admin_batches, admin_enrollments, admin_payments, users, profile,
    classes, admin_classes,
)

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(batches.router, prefix="/batches", tags=["Batches"])
api_router.include_router(enrollments.router, prefix="/enrollments", tags=["Enrollments"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(profile.router, prefix="/users", tags=["Profile"])
api_router.include_router(classes.router, prefix="/classes", tags=["Classes"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(admin_batches.router, prefix="/admin/batches", tags=["Batches (Admin)"])
api_router.include_router(admin_enrollments.router, prefix="/admin/enrollments", tags=["Enrollments (Admin)"])
api_router.include_router(admin_payments.router, prefix="/admin/payments", tags=["Payments (Admin)"])
api_router.include_router(admin_classes.router, prefix="/admin/classes", tags=["Classes (Admin)"])
api_router.include_router(users.router, prefix="/admin/users", tags=["Users (Admin)"])
