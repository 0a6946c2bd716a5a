"""Persistent TOML configuration."""

import os
import re
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

import tomli_w

CONFIG_ENV_VAR = "YTSPLIT_CONFIG"

# One pass: substituted values are never rescanned for placeholders
_PLACEHOLDER_RE = re.compile(r"%([ntaA])")
_DIR_PLACEHOLDER_RE = re.compile(r"%([aA])")


class ConfigError(ValueError):
    pass


@dataclass
class SilenceConfig:
    """Silence detection used when no chapter list is available."""

    threshold_db: float = -30.0
    min_duration: float = 2.0


@dataclass
class RefineConfig:
    """Boundary refinement against nearby silence."""

    enabled: bool = True
    window: float = 5.0
    threshold_db: float = -35.0
    min_duration: float = 1.0


@dataclass
class DownloadConfig:
    """yt-dlp invocation limits, in seconds. 0 disables a timeout."""

    timeout: float = 0.0
    info_timeout: float = 60.0


@dataclass
class Config:
    """Top-level configuration."""

    output_dir: str = ""
    download_cover: bool = True
    filename_format: str = "%n - %t"
    directory_format: str = "%a - %A"
    audio_quality: int = 192
    overwrite_existing: bool = False
    keep_audio: bool = False
    silence: SilenceConfig = field(default_factory=SilenceConfig)
    refine: RefineConfig = field(default_factory=RefineConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)

    def get_output_dir(self) -> Path:
        if self.output_dir:
            return Path(self.output_dir).expanduser()
        music = Path.home() / "Music"
        return music if music.is_dir() else Path.home()

    def format_filename(self, track_number: int, title: str, artist: str, album: str) -> str:
        values = {"n": f"{track_number:02d}", "t": title, "a": artist, "A": album}
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], self.filename_format)

    def format_directory(self, artist: str, album: str) -> str:
        values = {"a": artist, "A": album}
        return _DIR_PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], self.directory_format)


_SECTIONS = {
    "silence": SilenceConfig,
    "refine": RefineConfig,
    "download": DownloadConfig,
}


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "ytsplit" / "config.toml"


def _build(cls, data: dict, section: str):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        where = f"[{section}]" if section else "top level"
        raise ConfigError(f"Unknown config key(s) at {where}: {', '.join(sorted(unknown))}")
    return cls(**data)


def config_from_dict(data: dict) -> Config:
    data = dict(data)
    sections = {}
    for name, cls in _SECTIONS.items():
        raw = data.pop(name, {})
        if not isinstance(raw, dict):
            raise ConfigError(f"[{name}] must be a table")
        sections[name] = _build(cls, raw, name)
    return _build(Config, {**data, **sections}, "")


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from TOML, falling back to defaults if the file is missing."""
    path = Path(path) if path else config_path()
    if not path.exists():
        return Config()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    return config_from_dict(data)


def save_config(config: Config, path: str | Path | None = None) -> Path:
    path = Path(path) if path else config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(asdict(config)), encoding="utf-8")
    return path


def parse_bool(value) -> bool:
    """Accept a real bool or one of the usual true/false spellings."""
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("true", "yes", "on", "1"):
        return True
    if lowered in ("false", "no", "off", "0"):
        return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


def _coerce(raw: str, current):
    if isinstance(current, bool):
        return parse_bool(raw)
    try:
        if isinstance(current, int):
            return int(raw)
        if isinstance(current, float):
            return float(raw)
    except ValueError:
        raise ConfigError(f"Expected a {type(current).__name__}, got {raw!r}") from None
    return raw


def set_config_value(config: Config, key: str, raw: str) -> None:
    """Set a dotted key (``refine.window``) from its string form."""
    target = config
    *parents, name = key.split(".")
    for part in parents:
        if part not in _SECTIONS or target is not config:
            raise ConfigError(f"Unknown config key: {key}")
        target = getattr(config, part)

    if name in _SECTIONS or name not in {f.name for f in fields(target)}:
        raise ConfigError(f"Unknown config key: {key}")
    setattr(target, name, _coerce(raw, getattr(target, name)))
