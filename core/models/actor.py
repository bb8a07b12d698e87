"""Acting identity passed explicitly into every operation."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class UserType(str, Enum):
    """Marketplace role of a user."""

    CUSTOMER = "customer"
    PROVIDER = "provider"


class Actor(BaseModel):
    """The authenticated user performing an operation."""

    id: UUID
    user_type: UserType

    model_config = {"frozen": True}

    @property
    def is_customer(self) -> bool:
        return self.user_type == UserType.CUSTOMER

    @property
    def is_provider(self) -> bool:
        return self.user_type == UserType.PROVIDER
