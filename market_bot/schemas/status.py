from pydantic import BaseModel


class ServiceStatus(BaseModel):
    env: dict[str, bool]
    data_apis: dict[str, bool]
    ai_providers: dict[str, bool]
    telegram: bool
    check_interval_min: int
    alert_threshold: float
    report_hours: list[int]
