import configparser
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CACHE_FILE = str(Path.home() / ".simple-gdrive" / "path-cache.json")

_TRUE_VALUES = ("true", "1", "yes")


@dataclass
class GoogleDriveConfig:
    token_file: str | None = None  # Authorized user token JSON
    root_folder_id: str = "root"


@dataclass
class PathCacheConfig:
    persistent: bool = False
    path: str = DEFAULT_CACHE_FILE


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30  # Socket timeout of the HTTP transport
    retry_attempts: int = 5
    retry_delay_seconds: float = 0.2
    page_size: int = 1000


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = ""
    console: bool = True


@dataclass
class AppConfig:
    gdrive: GoogleDriveConfig = field(default_factory=GoogleDriveConfig)
    cache: PathCacheConfig = field(default_factory=PathCacheConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def _parse_number(section: configparser.SectionProxy, key: str, kind: type):
    raw = section.get(key)
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} value in config: '{raw}' - must be {'an integer' if kind is int else 'a number'}"
        )


def _parse_bool(section: configparser.SectionProxy, key: str, default: str) -> bool:
    return section.get(key, default).lower() in _TRUE_VALUES


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments
            (token_file, root_folder, cache_file, debug).

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If a numeric field cannot be parsed.
    """
    gdrive_config = {
        "token_file": None,
        "root_folder_id": "root",
    }
    cache_config = {
        "persistent": False,
        "path": DEFAULT_CACHE_FILE,
    }
    connection_config = {
        "timeout_seconds": 30,
        "retry_attempts": 5,
        "retry_delay_seconds": 0.2,
        "page_size": 1000,
    }
    log_config = {
        "level": "INFO",
        "file": "",
        "console": True,
    }

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        # Load [gdrive] section
        if parser.has_section("gdrive"):
            gdrive_section = parser["gdrive"]
            if gdrive_section.get("token_file"):
                gdrive_config["token_file"] = gdrive_section.get("token_file")
            if gdrive_section.get("root_folder_id"):
                gdrive_config["root_folder_id"] = gdrive_section.get("root_folder_id")

        # Load [cache] section
        if parser.has_section("cache"):
            cache_section = parser["cache"]
            if cache_section.get("persistent"):
                cache_config["persistent"] = _parse_bool(cache_section, "persistent", "false")
            if cache_section.get("path"):
                cache_config["path"] = cache_section.get("path")

        # Load [connection] section
        if parser.has_section("connection"):
            conn_section = parser["connection"]
            for key in ("timeout_seconds", "retry_attempts", "page_size"):
                if conn_section.get(key):
                    connection_config[key] = _parse_number(conn_section, key, int)
            if conn_section.get("retry_delay_seconds"):
                connection_config["retry_delay_seconds"] = _parse_number(
                    conn_section, "retry_delay_seconds", float
                )

        # Load [logging] section
        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            if log_section.get("file"):
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = _parse_bool(log_section, "console", "false")

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("token_file") is not None:
        gdrive_config["token_file"] = cli_args["token_file"]
    if cli_args.get("root_folder") is not None:
        gdrive_config["root_folder_id"] = cli_args["root_folder"]
    if cli_args.get("cache_file") is not None:
        cache_config["path"] = cli_args["cache_file"]
        cache_config["persistent"] = True
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    if connection_config["retry_attempts"] < 1:
        raise ValueError("retry_attempts must be at least 1")
    if not 1 <= connection_config["page_size"] <= 1000:
        raise ValueError("page_size must be between 1 and 1000")

    return AppConfig(
        gdrive=GoogleDriveConfig(**gdrive_config),
        cache=PathCacheConfig(
            persistent=cache_config["persistent"],
            path=str(Path(cache_config["path"]).expanduser()),
        ),
        connection=ConnectionConfig(**connection_config),
        logging=LogConfig(**log_config),
    )
