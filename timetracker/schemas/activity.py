from pydantic import BaseModel, Field


class ActivityCreate(BaseModel):
    name: str = Field(min_length=1)
    color: str | None = Field(default=None, max_length=16)


class ActivityUpdate(BaseModel):
    name: str | None = None
    color: str | None = Field(default=None, max_length=16)


class ActivityOut(BaseModel):
    id: str
    name: str
    color: str
    log_count: int = 0
