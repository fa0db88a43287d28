from fastapi import APIRouter
from app.routers import approval_workflows, leave_balances, leave_requests

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(approval_workflows.router, tags=["Approval Workflows"])
api_router.include_router(leave_requests.router, tags=["Leave Requests"])
api_router.include_router(leave_balances.router, tags=["Leave Balances"])
