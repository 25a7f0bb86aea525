from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DroughtAlertSettings(BaseModel):
    """Drought detection window"""
    threshold: float = Field(default=30.0, ge=0.0, le=100.0)
    minimum_duration_hours: int = Field(default=24, gt=0)
    history_days: int = Field(default=7, gt=0)


class HeatStressSettings(BaseModel):
    """Sustained heat analysis"""
    critical_temperature: float = 35.0
    minimum_duration_hours: int = Field(default=6, gt=0)
    history_hours: int = Field(default=24, gt=0)


class IrrigationSettings(BaseModel):
    """Irrigation recommendation"""
    optimal_moisture: float = Field(default=60.0, ge=0.0, le=100.0)
    critical_moisture: float = Field(default=30.0, ge=0.0, le=100.0)
    soil_water_capacity: float = Field(default=150.0, gt=0.0)  # mm
    history_days: int = Field(default=7, gt=0)


class PestRiskSettings(BaseModel):
    """Pest risk analysis"""
    min_temperature: float = 22.0
    max_temperature: float = 32.0
    min_moisture: float = Field(default=60.0, ge=0.0, le=100.0)
    minimum_favorable_days: int = Field(default=5, gt=0)
    history_days: int = Field(default=14, gt=0)


class ThresholdAlertSettings(BaseModel):
    """Single-reading alert threshold"""
    threshold: float


class Settings(BaseSettings):
    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "fieldops"
    postgres_user: str = "fieldops"
    postgres_password: str
    database_url: Optional[str] = None  # overrides the postgres_* fields

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    stream_maxlen: Optional[int] = 10000

    # Games catalogue API
    games_api_url: str
    games_api_key: Optional[str] = None
    games_api_timeout_seconds: float = 10.0

    # Messaging destinations
    notifications_queue: str = "fcg.notifications.queue"
    payments_topic: str = "fcg.paymentstopic"
    alert_notifications_destination: str = "notifications-queue"
    alert_required_destination: str = "alert-required-queue"

    # Field alerts
    drought: DroughtAlertSettings = DroughtAlertSettings()
    extreme_heat: ThresholdAlertSettings = ThresholdAlertSettings(threshold=40.0)
    freezing: ThresholdAlertSettings = ThresholdAlertSettings(threshold=0.0)
    excessive_rainfall: ThresholdAlertSettings = ThresholdAlertSettings(threshold=60.0)

    # Field analyses
    heat_stress: HeatStressSettings = HeatStressSettings()
    irrigation: IrrigationSettings = IrrigationSettings()
    pest_risk: PestRiskSettings = PestRiskSettings()

    # Application
    service_name: str = "fieldops"
    log_level: str = "INFO"
    environment: str = "development"

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")

    @property
    def redis_url(self) -> str:
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
