"""
Schémas Pydantic pour les notifications partenaires.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    """Schéma de réponse pour une notification."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    partenaire_id: Optional[str]
    titre: str
    message: str
    type: str
    lu: bool
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")
    created_at: datetime
    read_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    """Schéma pour la liste des notifications."""
    items: List[NotificationResponse]
    total: int
    unread_count: int
    page: int
    page_size: int
    pages: int
