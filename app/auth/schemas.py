from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Identity resolved from the bearer token. tenant_id is passed explicitly into every service call."""

    id: UUID
    tenant_id: UUID
    role: str
