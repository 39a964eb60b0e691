"""
Configuration module for AcFun Live Directory.
Loads settings from YAML file and provides typed configuration.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .logger import setup_logging
from .retry import RetryPolicy


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/83.0.4103.97 Safari/537.36"
)


@dataclass
class AcFunConfig:
    """Upstream endpoints and transport settings."""
    channel_list_url: str = "https://live.acfun.cn/api/channel/list"
    profile_url: str = "https://www.acfun.cn/rest/pc-direct/user/userInfo"
    live_page_url: str = "https://live.acfun.cn/live/"
    visitor_login_url: str = "https://id.app.acfun.cn/rest/app/visitor/login"
    play_url: str = "https://api.kuaishouzt.com/rest/zt/live/web/startPlay"
    user_agent: str = DEFAULT_USER_AGENT  # profile endpoint rejects non-browser clients
    request_timeout: float = 30.0  # seconds, whole request


@dataclass
class RetryConfig:
    """Retry policy for network operations."""
    delay: float = 2.0            # seconds between attempts
    max_attempts: Optional[int] = None  # None = retry forever
    backoff: float = 1.0          # delay multiplier, 1.0 = fixed delay
    max_delay: float = 60.0

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            delay=self.delay,
            max_attempts=self.max_attempts,
            backoff=self.backoff,
            max_delay=self.max_delay
        )


@dataclass
class DirectoryConfig:
    """Live directory refresh settings."""
    refresh_interval: int = 60    # seconds between full scans


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    file: str = ""                # empty = console only
    max_size_mb: int = 10
    backup_count: int = 5

    def apply(self) -> logging.Logger:
        """Configure the application logger from these settings."""
        return setup_logging(
            level=self.level,
            log_file=self.file or None,
            max_size_mb=self.max_size_mb,
            backup_count=self.backup_count
        )


@dataclass
class Config:
    """Main configuration container."""
    acfun: AcFunConfig = field(default_factory=AcFunConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def as_float(value: Any, default: float) -> float:
    """Parse float from YAML value with safe fallbacks."""
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", "."))
        except ValueError:
            return default
    return default


def as_int(value: Any, default: Optional[int]) -> Optional[int]:
    """Parse int from YAML value with safe fallbacks."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            return int(float(text.replace(",", ".")))
        except ValueError:
            return default
    return default


def load_config(config_path: str = "config.yaml") -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file.

    Returns:
        Config object with all settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If the file is empty or a value is out of range.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            f"Please create a config.yaml file. See config.example.yaml for reference."
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError("Configuration file is empty")

    defaults = AcFunConfig()
    acfun_data = data.get('acfun') or {}
    acfun_config = AcFunConfig(
        channel_list_url=acfun_data.get('channel_list_url', defaults.channel_list_url),
        profile_url=acfun_data.get('profile_url', defaults.profile_url),
        live_page_url=acfun_data.get('live_page_url', defaults.live_page_url),
        visitor_login_url=acfun_data.get('visitor_login_url', defaults.visitor_login_url),
        play_url=acfun_data.get('play_url', defaults.play_url),
        user_agent=acfun_data.get('user_agent', defaults.user_agent),
        request_timeout=as_float(acfun_data.get('request_timeout'), defaults.request_timeout)
    )

    retry_data = data.get('retry') or {}
    retry_config = RetryConfig(
        delay=max(0.0, as_float(retry_data.get('delay'), 2.0)),
        max_attempts=as_int(retry_data.get('max_attempts'), None),
        backoff=max(1.0, as_float(retry_data.get('backoff'), 1.0)),
        max_delay=as_float(retry_data.get('max_delay'), 60.0)
    )
    if retry_config.max_attempts is not None and retry_config.max_attempts < 1:
        raise ValueError("retry.max_attempts must be at least 1")

    directory_data = data.get('directory') or {}
    directory_config = DirectoryConfig(
        refresh_interval=max(1, as_int(directory_data.get('refresh_interval'), 60))
    )

    logging_data = data.get('logging') or {}
    logging_config = LoggingConfig(
        level=logging_data.get('level', 'INFO'),
        file=logging_data.get('file', '') or '',
        max_size_mb=as_int(logging_data.get('max_size_mb'), 10),
        backup_count=as_int(logging_data.get('backup_count'), 5)
    )

    return Config(
        acfun=acfun_config,
        retry=retry_config,
        directory=directory_config,
        logging=logging_config
    )


def load_config_or_default(config_path: str = "config.yaml") -> Config:
    """Load config.yaml if there is one, production defaults otherwise."""
    if not Path(config_path).exists():
        return Config()
    return load_config(config_path)


def create_example_config(path: str = "config.example.yaml") -> None:
    """Create an example configuration file."""
    example = """# AcFun Live Directory Configuration

acfun:
  # Endpoints default to the production AcFun services
  # channel_list_url: https://live.acfun.cn/api/channel/list
  # profile_url: https://www.acfun.cn/rest/pc-direct/user/userInfo
  # live_page_url: https://live.acfun.cn/live/
  # visitor_login_url: https://id.app.acfun.cn/rest/app/visitor/login
  # play_url: https://api.kuaishouzt.com/rest/zt/live/web/startPlay
  request_timeout: 30  # Seconds per HTTP request

retry:
  delay: 2           # Seconds to wait before re-running a failed request
  max_attempts:      # Empty = retry forever
  backoff: 1.0       # Delay multiplier per attempt, 1.0 = fixed delay
  max_delay: 60

directory:
  refresh_interval: 60  # Seconds between full scans of the live list

logging:
  level: INFO  # DEBUG, INFO, WARNING, ERROR
  file: ./logs/acfunlive.log
  max_size_mb: 10
  backup_count: 5
"""
    with open(path, 'w', encoding='utf-8') as f:
        f.write(example)


if __name__ == '__main__':
    create_example_config()
    print("Created config.example.yaml")
