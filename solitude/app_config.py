from pydantic import BaseModel

from solitude.shared.config import config


def _split_origins(raw: str) -> list[str]:
    return [x.strip() for x in raw.split(",") if x.strip()] or ["*"]


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_flag("DEBUG")

    API_HOST: str = config.get("API_HOST", "0.0.0.0").strip()  # type: ignore
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 3000)
    API_CORS_ORIGINS: list[str] = _split_origins(config.get("API_CORS_ORIGINS", "*"))  # type: ignore

    # Presence timing, in seconds. The staleness threshold tolerates two missed heartbeats.
    HEARTBEAT_INTERVAL_SECONDS: float = float(
        (config.get("HEARTBEAT_INTERVAL_SECONDS") or "").strip() or 5
    )
    SWEEP_INTERVAL_SECONDS: float = float((config.get("SWEEP_INTERVAL_SECONDS") or "").strip() or 5)
    STALE_THRESHOLD_SECONDS: float = float(
        (config.get("STALE_THRESHOLD_SECONDS") or "").strip() or 15
    )

    # Event stream configuration
    STREAM_QUEUE_SIZE: int = int((config.get("STREAM_QUEUE_SIZE") or "").strip() or 32)
    STREAM_KEEPALIVE_SECONDS: float = float(
        (config.get("STREAM_KEEPALIVE_SECONDS") or "").strip() or 15
    )
    # When False, a closed stream only detaches and the record waits for heartbeat or the sweeper
    RELEASE_ON_STREAM_CLOSE: bool = config.get_flag("RELEASE_ON_STREAM_CLOSE", True)

    LOGFIRE_ENABLE: bool = config.get_flag("LOGFIRE_ENABLE")
    LOGFIRE_TOKEN: str | None = (config.get("LOGFIRE_TOKEN") or "").strip() or None


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
