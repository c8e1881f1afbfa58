from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VisitorStatistics(BaseModel):
    """
    Visitor statistics for the dashboard.

    total_visitors comes from user activity statistics; tracked_visitors is
    the number of stored visitor records. They measure different things.
    """
    retention_rate: float
    total_visitors: int = Field(..., description="Distinct users with activity statistics in the last 30 days")
    tracked_visitors: int = Field(..., description="Visitor records currently stored")
    last_updated: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
