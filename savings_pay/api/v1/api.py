from fastapi import APIRouter

from savings_pay.api.v1.routes import goals, payments

api_router = APIRouter()

api_router.include_router(payments.router)
api_router.include_router(goals.router)
