from pydantic import BaseModel, Field


class AdvisorQuery(BaseModel):
    task: str = Field(min_length=1)
    payload: dict = Field(default_factory=dict)
