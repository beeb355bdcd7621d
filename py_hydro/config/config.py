"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    max_retained_jobs: int = Field(default=100, description="Jobs kept in memory before finished ones are evicted")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Generation limits
    max_map_width: int = Field(default=4000, description="Max allowed map width")
    max_map_height: int = Field(default=4000, description="Max allowed map height")
    max_sampling_grid_cells: int = Field(
        default=1_000_000, description="Largest Poisson-disc acceleration grid allowed"
    )

    # Loop caps and tolerances
    depression_max_passes: int = Field(default=100, description="Hard cap on depression passes")
    pit_raise_epsilon: float = Field(default=0.01, description="Lift above the spill height")
    blob_min_height: float = Field(default=0.01, description="Blob spreading stops at this value")
    coast_snap_epsilon: float = Field(default=1e-3, description="Coastline endpoint snap distance")

    # River thresholds
    source_flux_threshold: float = Field(default=0.6, description="Flux needed to start a river")
    delta_flux_threshold: float = Field(default=15.0, description="Flux needed for a multi-mouth delta")

    class Config:
        env_file = ".env"
        env_prefix = "HYDRO_"
        extra = "ignore"


settings = Settings()
