from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    online: bool
    remote_configured: bool
    auto_sync_enabled: bool
