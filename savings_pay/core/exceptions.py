"""
Error taxonomy for the payments/goals API.

Every domain error carries the HTTP status it maps to and a ``details``
dict that is merged into the JSON body next to ``error``.
"""
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error rendered as ``{"error": message, **details}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidReference(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Referencia de pago no válida"):
        super().__init__(message)


class NoPaymentMethod(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "No hay método de pago registrado para pagos automáticos"):
        super().__init__(message)


class InsufficientFunds(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, available: float, requested: float):
        self.available = available
        self.requested = requested
        super().__init__(
            "Saldo insuficiente",
            details={"saldo_disponible": available, "monto_solicitado": requested},
        )


class PaymentDeclined(AppError):
    """Simulated bank decline. The rejected payment has already been recorded."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Pago rechazado por el banco", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class GoalNotFound(NotFound):
    def __init__(self, goal_id: Any = None):
        self.goal_id = goal_id
        super().__init__("Meta no encontrada", details={"meta_id": goal_id} if goal_id is not None else None)


class SettlementTimeout(AppError):
    """The store did not answer in time. Nothing was recorded; the caller may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Tiempo de espera agotado al procesar el pago"):
        super().__init__(message, details={"reintentable": True})


def error_body(exc: AppError) -> Dict[str, Any]:
    return {"error": exc.message, **jsonable_encoder(exc.details)}


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    line = f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
    if exc.status_code >= 500:
        logger.warning(line)
    else:
        logger.info(line)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # The offending input is not echoed: it may be a card number or a non-JSON float
    errores = [{k: v for k, v in error.items() if k != "input"} for error in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Datos inválidos", "errores": jsonable_encoder(errores)},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Details stay in the server log; the client only sees a generic message
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )
