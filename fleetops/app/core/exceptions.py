"""
Custom exceptions and error handlers for consistent error responses.

Provides the fleet rule error taxonomy and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict

logger = logging.getLogger("fleetops.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# Fleet rule errors
#
# Every guard failure in the lifecycle rules raises one of these before any
# write is applied.

class FleetRuleError(AppException):
    """Base class for lifecycle guard failures."""

    error_code = "ERR_RULE"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=type(self).error_code,
            status_code=type(self).status_code,
            details=details
        )


class ResourceNotFoundError(FleetRuleError):
    """Raised when requested resource is not found."""

    error_code = "ERR_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details={"resource": resource, "id": resource_id})


class DuplicateKeyError(FleetRuleError):
    error_code = "ERR_DUPLICATE_KEY"
    status_code = status.HTTP_409_CONFLICT


class InvalidExpiryError(FleetRuleError):
    error_code = "ERR_INVALID_EXPIRY"


class OutOfRangeError(FleetRuleError):
    error_code = "ERR_OUT_OF_RANGE"


class CapacityExceededError(FleetRuleError):
    error_code = "ERR_CAPACITY_EXCEEDED"


class VehicleUnavailableError(FleetRuleError):
    error_code = "ERR_VEHICLE_UNAVAILABLE"
    status_code = status.HTTP_409_CONFLICT


class LicenseExpiredError(FleetRuleError):
    error_code = "ERR_LICENSE_EXPIRED"


class DriverSuspendedError(FleetRuleError):
    error_code = "ERR_DRIVER_SUSPENDED"


class InvalidStateTransitionError(FleetRuleError):
    error_code = "ERR_INVALID_STATE_TRANSITION"
    status_code = status.HTTP_409_CONFLICT


class OdometerRegressionError(FleetRuleError):
    error_code = "ERR_ODOMETER_REGRESSION"


class ActiveTripConflictError(FleetRuleError):
    error_code = "ERR_ACTIVE_TRIP_CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class ValidationFailedError(FleetRuleError):
    error_code = "ERR_VALIDATION"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    logger.debug("%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error_code": exc.error_code,
            "message": exc.message,
            "details": jsonable_encoder(exc.details)
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
