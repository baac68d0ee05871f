"""API routes for the FastAPI application."""

from credibill.api.router import TrailingSlashRouter
from credibill.api.v1.endpoints import health, subscriptions, webhook_deliveries

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(webhook_deliveries.router, prefix="/apps", tags=["webhook-deliveries"])
