from fastapi import APIRouter

from app.api.endpoints import leave, notifications, sla, tickets, workflows

api_router = APIRouter()
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(leave.router, tags=["leave"])
api_router.include_router(sla.router, prefix="/sla", tags=["sla"])
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
