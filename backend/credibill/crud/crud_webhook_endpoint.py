"""CRUD operations for outgoing webhook endpoints."""

from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.core.shared_models import WebhookEndpointStatus
from credibill.crud._base_system import CRUDBaseSystem
from credibill.models.webhook_endpoint import WebhookEndpoint
from credibill.schemas.webhook_endpoint import WebhookEndpointCreate, WebhookEndpointUpdate


class CRUDWebhookEndpoint(
    CRUDBaseSystem[WebhookEndpoint, WebhookEndpointCreate, WebhookEndpointUpdate]
):
    """CRUD operations for outgoing webhook endpoints."""

    async def get_active_for_event(
        self, db: AsyncSession, *, app_id: UUID, event: str
    ) -> list[WebhookEndpoint]:
        """Get the active endpoints of an app that subscribe to `event`.

        The event list is a JSON column, so membership is checked after loading the
        app's active endpoints.
        """
        query = select(self.model).where(
            and_(
                self.model.app_id == app_id,
                self.model.status == WebhookEndpointStatus.ACTIVE.value,
            )
        )
        result = await db.execute(query)
        return [endpoint for endpoint in result.scalars().all() if event in (endpoint.events or [])]


webhook_endpoint = CRUDWebhookEndpoint(WebhookEndpoint)
