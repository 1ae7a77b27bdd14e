from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Mapping, Optional, Union
import logging
import os

import yaml

from ..common.colors import lookup_ambient_pattern, lookup_color
from ..common.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SystemDefaults:
    """Network endpoints and timing constants for the orchestrator"""

    # Feed endpoints
    DEFAULT_TELEMETRY_URL: ClassVar[str] = "ws://localhost:49122"
    DEFAULT_PUBSUB_URL: ClassVar[str] = "wss://pubsub-edge.twitch.tv"
    DEFAULT_DONATIONS_URL: ClassVar[str] = "https://realtime.streamelements.com"

    # Feed timing (seconds)
    DEFAULT_RECONNECT_DELAY: ClassVar[float] = 3.0
    DEFAULT_HEARTBEAT_INTERVAL: ClassVar[float] = 60.0
    DEFAULT_SUBSCRIBE_DELAY: ClassVar[float] = 3.0

    # Devices
    DEFAULT_STRIP_HOST: ClassVar[str] = "10.0.0.21"
    DEFAULT_STRIP_PORT: ClassVar[int] = 5577
    DEFAULT_PANEL_URL: ClassVar[str] = "http://10.0.0.19:9123"
    DEFAULT_DEVICE_TIMEOUT: ClassVar[float] = 2.0

    # Effect timing (milliseconds)
    DEFAULT_STROBE_MS: ClassVar[int] = 3000
    DEFAULT_DEMO_MS: ClassVar[int] = 1000
    DEFAULT_POWER_DELAY_MS: ClassVar[int] = 100
    DEFAULT_GOAL_DELAY_MS: ClassVar[int] = 100

    # Inbound surface
    DEFAULT_API_HOST: ClassVar[str] = "0.0.0.0"
    DEFAULT_API_PORT: ClassVar[int] = 5000

    @classmethod
    def get_all_defaults(cls) -> Dict[str, Any]:
        """Get all default values as a dictionary"""
        return {
            name: value
            for name, value in cls.__dict__.items()
            if (
                not name.startswith("_")
                and isinstance(value, (int, float, str, bool))
                and name.startswith("DEFAULT_")
            )
        }


@dataclass
class DeviceConfig:
    """Output device settings"""

    backend: str = "live"  # "live" or "mock"
    strip_host: str = SystemDefaults.DEFAULT_STRIP_HOST
    strip_port: int = SystemDefaults.DEFAULT_STRIP_PORT
    panel_url: str = SystemDefaults.DEFAULT_PANEL_URL
    timeout: float = SystemDefaults.DEFAULT_DEVICE_TIMEOUT

    def validate(self) -> None:
        if self.backend not in ("live", "mock"):
            raise ValidationError(f"Unknown device backend: {self.backend}")
        if not 1 <= self.strip_port <= 65535:
            raise ValidationError("Strip port must be between 1 and 65535")
        if self.timeout <= 0:
            raise ValidationError("Device timeout must be positive")


@dataclass
class TelemetryConfig:
    """Game telemetry feed settings"""

    enabled: bool = True
    url: str = SystemDefaults.DEFAULT_TELEMETRY_URL
    reconnect_delay: float = SystemDefaults.DEFAULT_RECONNECT_DELAY

    def validate(self) -> None:
        if self.reconnect_delay <= 0:
            raise ValidationError("Telemetry reconnect delay must be positive")


@dataclass
class PubSubConfig:
    """Stream platform pub/sub feed settings"""

    enabled: bool = True
    url: str = SystemDefaults.DEFAULT_PUBSUB_URL
    channel_id: str = ""
    auth_token: str = ""
    reconnect_delay: float = SystemDefaults.DEFAULT_RECONNECT_DELAY
    heartbeat_interval: float = SystemDefaults.DEFAULT_HEARTBEAT_INTERVAL
    subscribe_delay: float = SystemDefaults.DEFAULT_SUBSCRIBE_DELAY

    def validate(self) -> None:
        if self.reconnect_delay <= 0:
            raise ValidationError("Pub/sub reconnect delay must be positive")
        if self.heartbeat_interval < 1:
            raise ValidationError("Heartbeat interval must be at least 1s")
        if self.subscribe_delay < 0:
            raise ValidationError("Subscribe delay must not be negative")
        if self.enabled and not self.channel_id:
            logger.warning("Pub/sub enabled without a channel id")


@dataclass
class DonationConfig:
    """Donation feed settings"""

    enabled: bool = True
    url: str = SystemDefaults.DEFAULT_DONATIONS_URL
    token: str = ""
    reconnect_delay: float = SystemDefaults.DEFAULT_RECONNECT_DELAY

    def validate(self) -> None:
        if self.reconnect_delay <= 0:
            raise ValidationError("Donation reconnect delay must be positive")


@dataclass
class EffectConfig:
    """Effect sequencing durations, all in milliseconds"""

    strobe_ms: int = SystemDefaults.DEFAULT_STROBE_MS
    demo_ms: int = SystemDefaults.DEFAULT_DEMO_MS
    power_delay_ms: int = SystemDefaults.DEFAULT_POWER_DELAY_MS
    goal_delay_ms: int = SystemDefaults.DEFAULT_GOAL_DELAY_MS
    default_stream_color: str = "purple"

    def validate(self) -> None:
        for name in ("strobe_ms", "demo_ms", "power_delay_ms", "goal_delay_ms"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must not be negative")
        name = self.default_stream_color
        if not (lookup_color(name) or lookup_ambient_pattern(name)):
            raise ValidationError(f"Unknown stream color: {name}")


@dataclass
class ApiConfig:
    """Inbound request surface settings"""

    host: str = SystemDefaults.DEFAULT_API_HOST
    port: int = SystemDefaults.DEFAULT_API_PORT
    auth_token: str = ""
    song_file: str = "song.txt"

    def validate(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValidationError("API port must be between 1 and 65535")


@dataclass
class LedgerConfig:
    """Prize pool ledger settings"""

    url: str = ""
    auth_token: str = ""
    timeout: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass
class SystemConfig:
    """Main system configuration"""

    devices: DeviceConfig = field(default_factory=DeviceConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    pubsub: PubSubConfig = field(default_factory=PubSubConfig)
    donations: DonationConfig = field(default_factory=DonationConfig)
    effects: EffectConfig = field(default_factory=EffectConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)

    # Environment variable -> (section, attribute)
    ENV_OVERRIDES: ClassVar[Dict[str, tuple]] = {
        "STREAMGLOW_AUTH_TOKEN": ("api", "auth_token"),
        "STREAMGLOW_CHANNEL_ID": ("pubsub", "channel_id"),
        "STREAMGLOW_PUBSUB_TOKEN": ("pubsub", "auth_token"),
        "STREAMGLOW_DONATIONS_TOKEN": ("donations", "token"),
        "STREAMGLOW_TELEMETRY_URL": ("telemetry", "url"),
        "STREAMGLOW_STRIP_HOST": ("devices", "strip_host"),
        "STREAMGLOW_PANEL_URL": ("devices", "panel_url"),
        "STREAMGLOW_LEDGER_URL": ("ledger", "url"),
    }

    def __post_init__(self):
        """Validate entire configuration"""
        try:
            self.validate()
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def validate(self) -> None:
        for section in fields(self):
            value = getattr(self, section.name)
            validate = getattr(value, "validate", None)
            if validate:
                validate()

    @classmethod
    def create_default(cls) -> "SystemConfig":
        """Create default configuration"""
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SystemConfig":
        """Build configuration from nested section dictionaries"""
        sections = {}
        for section in fields(cls):
            raw = data.get(section.name) or {}
            if not isinstance(raw, Mapping):
                raise ConfigurationError(f"Section '{section.name}' must be a mapping")
            section_type = section.default_factory
            known = {f.name for f in fields(section_type)}
            unknown = set(raw) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown keys in '{section.name}': {', '.join(sorted(unknown))}"
                )
            sections[section.name] = section_type(**raw)
        unknown_sections = set(data) - set(sections)
        if unknown_sections:
            raise ConfigurationError(
                f"Unknown configuration sections: {', '.join(sorted(unknown_sections))}"
            )
        return cls(**sections)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SystemConfig":
        """Load configuration from a YAML file"""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        logger.info(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SystemConfig":
        """Load optional YAML file then apply STREAMGLOW_* overrides"""
        config = cls.from_yaml(path) if path else cls.create_default()
        config.apply_env(os.environ if environ is None else environ)
        return config

    def apply_env(self, environ: Mapping[str, str]) -> None:
        for var, (section, attr) in self.ENV_OVERRIDES.items():
            if environ.get(var):
                setattr(getattr(self, section), attr, environ[var])
                logger.debug(f"{section}.{attr} set from {var}")
        self.validate()

    def update(self, updates: Dict[str, Any]) -> None:
        """Update configuration sections with new values"""
        for name, values in updates.items():
            section = getattr(self, name, None)
            if not is_dataclass(section):
                raise ConfigurationError(f"Unknown configuration section: {name}")
            setattr(self, name, type(section)(**values))

        # Revalidate after updates
        self.validate()
