from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class URLStat(BaseModel):
    original_url: str
    short_code: str
    created_at: datetime
    visits: int = Field(ge=0)

    model_config = ConfigDict(from_attributes=True)
