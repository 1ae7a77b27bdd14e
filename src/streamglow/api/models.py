from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Base Models
class BaseResponse(BaseModel):
    """Base response model"""

    status: str
    message: str


# Light Models
class LightCommand(BaseModel):
    """Body of a light request: a named command or a panel level"""

    command: Optional[str] = None
    brightness: Optional[int] = Field(default=None, ge=0, le=100)
    temperature: Optional[int] = Field(default=None, ge=143, le=344)

    @field_validator("command")
    @classmethod
    def strip_command(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Command must not be empty")
        return v


class LightRequest(BaseModel):
    """Request wrapper as sent by the chat bot"""

    data: LightCommand


# Prize Pool Models
class PrizeData(BaseModel):
    """Single donation assigned to a prize slot"""

    model_config = ConfigDict(populate_by_name=True)

    donor: Optional[str] = Field(default=None, alias="from")
    place: Literal["first", "second", "third"]
    amount: float = Field(gt=0)


class PrizeRequest(BaseModel):
    """Prize pool adjustment"""

    type: str = "donation"
    data: PrizeData


class SystemState(BaseModel):
    """Snapshot of router, adapters and devices"""

    running: bool
    router: Dict[str, Any]
    adapters: Dict[str, Any]
    devices: Dict[str, Any]
    observers: int
