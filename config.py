from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # 倒數計時每一次 tick 的間隔（秒）
    tick_interval_seconds: float = 1.0
    # 斷線後保留 isActive 的寬限期（秒）
    grace_period_seconds: float = 10.0
    # 單一連線送出事件的最長等待時間，避免卡住 tick
    send_timeout_seconds: float = 2.0
    room_code_length: int = 8
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 3001

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()
