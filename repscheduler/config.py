"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import WorkingWindow


class DefaultsConfig(BaseModel):
    """Default settings for slot suggestions."""
    duration_minutes: int = 30
    work_start_hour: int = 9
    work_end_hour: int = 17
    slot_step_minutes: int = 15

    @field_validator("duration_minutes", "slot_step_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure durations are positive."""
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("work_start_hour", "work_end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 24."""
        if not 0 <= v <= 24:
            raise ValueError(f"Hour must be between 0 and 24, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DefaultsConfig":
        """Ensure the configured window opens before it closes."""
        if self.work_end_hour <= self.work_start_hour:
            raise ValueError("work_end_hour must be later than work_start_hour")
        return self

    def get_working_window(self) -> WorkingWindow:
        """Get the working window as a domain object."""
        return WorkingWindow.from_hours(
            self.work_start_hour,
            self.work_end_hour,
            step_minutes=self.slot_step_minutes,
        )


class GeocoderConfig(BaseModel):
    """Nominatim geocoder settings."""
    base_url: str = "https://nominatim.openstreetmap.org"
    # Nominatim's usage policy requires an identifying User-Agent
    user_agent: str = "repscheduler/0.1"
    timeout_seconds: float = 8.0


class DriveTimeConfig(BaseModel):
    """Google Distance Matrix settings. Without an API key drive times are skipped."""
    api_key: Optional[str] = None
    base_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    timeout_seconds: float = 10.0


class RateLimitConfig(BaseModel):
    """Sliding-window limit for one operation key."""
    max_calls: int
    window_seconds: float

    @field_validator("max_calls")
    @classmethod
    def validate_max_calls(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_calls must be greater than zero")
        return value

    @field_validator("window_seconds")
    @classmethod
    def validate_window(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("window_seconds must be greater than zero")
        return value


def _default_rate_limits() -> Dict[str, RateLimitConfig]:
    return {
        # Per rep
        "read_appointments": RateLimitConfig(max_calls=5, window_seconds=1),
        "write_appointment": RateLimitConfig(max_calls=1, window_seconds=1),
        # Across all reps
        "total_reads": RateLimitConfig(max_calls=10, window_seconds=10),
        "geocode": RateLimitConfig(max_calls=1, window_seconds=1),
    }


class Rep(BaseModel):
    """Field rep configuration."""
    name: str  # Used as alias
    rep_id: str

    def display_name(self) -> str:
        """Get display name."""
        return self.name


class AppConfig(BaseModel):
    """Application configuration."""
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    timezone: str = "UTC"
    distance_unit: Literal["km", "mi"] = "km"
    nearby_radius_km: float = 2.0
    min_address_length: int = 5
    store_path: Path = Field(default_factory=lambda: Path.home() / ".repscheduler" / "appointments.json")
    geocoder: GeocoderConfig = Field(default_factory=GeocoderConfig)
    drive_time: DriveTimeConfig = Field(default_factory=DriveTimeConfig)
    rate_limits: Dict[str, RateLimitConfig] = Field(default_factory=_default_rate_limits)
    reps: List[Rep] = Field(default_factory=list)

    @field_validator("nearby_radius_km")
    @classmethod
    def validate_radius(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("nearby_radius_km must be greater than zero")
        return value

    @field_validator("store_path")
    @classmethod
    def expand_store_path(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("rate_limits")
    @classmethod
    def merge_rate_limits(cls, value: Dict[str, RateLimitConfig]) -> Dict[str, RateLimitConfig]:
        """Fill in defaults for keys the file leaves out."""
        merged = _default_rate_limits()
        merged.update(value)
        return merged

    @field_validator("reps")
    @classmethod
    def validate_reps(cls, value: List[Rep]) -> List[Rep]:
        """Ensure rep aliases and ids are unique."""
        seen_names: set[str] = set()
        seen_ids: set[str] = set()
        for rep in value:
            name_key = rep.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate rep name detected: {rep.name}")
            if rep.rep_id in seen_ids:
                raise ValueError(f"Duplicate rep id detected: {rep.rep_id}")
            seen_names.add(name_key)
            seen_ids.add(rep.rep_id)
        return value

    @property
    def nearby_radius_for_unit(self) -> float:
        """Nearby radius in km; about one mile when displaying miles."""
        if self.distance_unit == "mi":
            return 1.6
        return self.nearby_radius_km

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_rep_by_name(self, name: str) -> Rep | None:
        """Find a rep by their name (alias)."""
        for rep in self.reps:
            if rep.name.lower() == name.lower():
                return rep
        return None

    def resolve_rep(self, identifier: str | None) -> str:
        """
        Resolve a rep identifier (name/alias or rep id) to a rep id.

        With no identifier the first configured rep is used.

        Raises:
            ValueError: If identifier cannot be resolved
        """
        if not identifier:
            if not self.reps:
                raise ValueError("No rep given and no reps configured.")
            return self.reps[0].rep_id

        rep = self.find_rep_by_name(identifier)
        if rep:
            return rep.rep_id

        for rep in self.reps:
            if rep.rep_id == identifier:
                return rep.rep_id

        raise ValueError(
            f"Unknown rep identifier: '{identifier}'. "
            f"Use a rep id or a configured name."
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
