from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class MercadoLibreNotification(BaseModel):
    """Notification body posted by MercadoLibre to the webhook URL"""
    notification_id: Optional[str] = Field(None, alias="_id")
    topic: str = ""
    resource: str = ""
    user_id: Optional[Union[int, str]] = None
    application_id: Optional[Union[int, str]] = None
    attempts: int = 1
    sent: Optional[str] = None
    received: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def resource_id(self) -> str:
        """Last path segment of the resource, e.g. "/items/MLU123" -> "MLU123"."""
        return self.resource.rstrip("/").rsplit("/", 1)[-1]

    def belongs_to(self, seller_id: str) -> bool:
        return self.user_id is not None and str(self.user_id).strip() == str(seller_id).strip()
