from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./ecoar.db"
    dashboard_api_key: str | None = None
    log_level: str = "INFO"

    # Remote metrics API (one GET per device)
    metrics_api_url: str = "https://tb8calt97j.execute-api.sa-east-1.amazonaws.com/dev/dados"
    metrics_api_timeout: float = 10.0  # seconds, per device request
    metrics_include_history: bool = True

    # Goal fallbacks used when neither a stored override nor a remote default exists
    goals_consumption_fallback: float = 10000.0  # unit undocumented upstream
    goals_activation_fallback_daily: float = 24.0  # hours in a day
    goals_activation_fallback_monthly: float = 720.0  # 30 days * 24 h

    # Without-system baseline = with-system / factor (system assumed to save 20%)
    baseline_reduction_factor: float = 0.8

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
