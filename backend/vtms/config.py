from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    LOG_LEVEL: str = "INFO"
    # Named port / anchorage circles
    AREAS_CONFIG: str = "config/areas.yaml"
    # Collision detection (nautical miles / minutes / knots)
    SAFETY_ZONE_RADIUS_NM: float = 2.0
    WARNING_THRESHOLD_NM: float = 2.0
    DANGER_THRESHOLD_NM: float = 1.0
    CRITICAL_THRESHOLD_NM: float = 0.5
    TCPA_WARNING_MIN: float = 15.0
    TCPA_DANGER_MIN: float = 10.0
    TCPA_CRITICAL_MIN: float = 5.0
    COLLISION_MIN_SPEED_KN: float = 0.5
    MAX_PREDICTION_TIME_MIN: float = 30.0
    # Unresolved collision alerts older than this are auto-resolved
    COLLISION_ALERT_MAX_AGE_MIN: float = 30.0
    QUADTREE_CAPACITY: int = 10
    # Rendezvous detection
    RENDEZVOUS_PROXIMITY_NM: float = 0.5
    RENDEZVOUS_DURATION_SECONDS: float = 300.0
    RENDEZVOUS_SPEED_KN: float = 3.0
    RENDEZVOUS_MIN_SEPARATION_NM: float = 5.0
    RENDEZVOUS_HISTORY_HOURS: float = 2.0
    # Loitering detection
    LOITERING_DURATION_SECONDS: float = 7200.0
    LOITERING_SPEED_KN: float = 3.0
    LOITERING_RADIUS_NM: float = 0.2
    LOITERING_HISTORY_HOURS: float = 4.0
    # Tick intervals (seconds)
    COLLISION_INTERVAL_SECONDS: float = 5.0
    ACTIVITY_INTERVAL_SECONDS: float = 30.0
    CLEANUP_INTERVAL_SECONDS: float = 3600.0
    # Retention used by the scheduled cleanup
    ACTIVITY_RETENTION_HOURS: float = 24.0
    EVENT_RETENTION_HOURS: float = 24.0
    RESOLVED_ALERT_RETENTION_MIN: float = 60.0
    VESSEL_STALE_MINUTES: float = 60.0
    # Traffic simulation
    SIMULATION_VESSELS: int = 100
    SIMULATION_NORTH: float = 60.0
    SIMULATION_SOUTH: float = 50.0
    SIMULATION_EAST: float = 30.0
    SIMULATION_WEST: float = 10.0
    SIMULATION_SPEED_MIN: float = 5.0
    SIMULATION_SPEED_MAX: float = 25.0


settings = Settings()
