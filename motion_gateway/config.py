from typing import Any

from pydantic import BaseModel, Field

from motion_gateway.messages import OverlapPolicy


class ServerConfig(BaseModel):
    """Настройки веб-сервера"""
    host: str = Field("0.0.0.0", description="Адрес для привязки сервера")
    port: int = Field(7755, ge=1, le=65535, description="Порт сервера")
    max_concurrency: int = Field(16, ge=1, le=1024, description="Максимум одновременно обрабатываемых запросов")


class DriveConfig(BaseModel):
    """Настройки фонового выполнения команд движения"""
    tick_interval_s: float = Field(0.05, gt=0.0, le=1.0, description="Период повторной отправки drive в SDK")
    default_duration_ms: int = Field(500, gt=0, le=10000, description="Длительность drive по умолчанию (мс)")
    max_duration_ms: int = Field(10000, gt=0, le=60000, description="Максимальная длительность drive (мс)")
    overlap_policy: OverlapPolicy = Field(
        OverlapPolicy.CONCURRENT,
        description="Что делать, если drive приходит во время активного drive",
    )


class LimitsConfig(BaseModel):
    """Допустимые диапазоны параметров команд"""
    # Поворот
    turn_degrees_max: float = Field(360.0, gt=0.0, description="Максимальный угол поворота по модулю")

    # Наклон головы
    tilt_angle_min: float = Field(-25.0, description="Минимальный угол наклона")
    tilt_angle_max: float = Field(55.0, description="Максимальный угол наклона")

    # Скорость turn/tilt, диапазон (0, speed_max]
    speed_max: float = Field(10.0, gt=0.0, description="Максимальная скорость turn/tilt")
    default_speed: float = Field(1.0, gt=0.0, description="Скорость по умолчанию")

    # Drive, нормированные скорости
    drive_speed_max: float = Field(1.0, gt=0.0, le=1.0, description="Максимальная скорость drive по модулю")


class Config(BaseModel):
    """Главная конфигурация приложения"""
    server: ServerConfig = ServerConfig()
    drive: DriveConfig = DriveConfig()
    limits: LimitsConfig = LimitsConfig()


def load_config(**overrides: Any) -> Config:
    """
    Собрать конфигурацию с переопределениями из командной строки.

    Args:
        overrides: host, port, overlap_policy, max_concurrency; None игнорируется
    """
    server = {k: v for k, v in overrides.items() if k in ServerConfig.model_fields and v is not None}
    drive = {k: v for k, v in overrides.items() if k in DriveConfig.model_fields and v is not None}
    return Config(server=ServerConfig(**server), drive=DriveConfig(**drive))


# Глобальный экземпляр конфигурации
config = Config()
