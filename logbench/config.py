"""Configuration loading from CLI args, env vars, and optional YAML file."""

import os
import logging
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

LOGGER_TYPES = ("lograge", "semantic_logger")


@dataclass(frozen=True)
class Config:
    log_file: str = "log/development.log"
    logger_type: str = "lograge"        # "lograge" (JSON) or "semantic_logger" (human-readable)
    poll_interval: float = 0.5
    job_table_limit: int = 0            # 0 = unbounded
    debug_log: str | None = None

    @property
    def human_readable(self) -> bool:
        return self.logger_type == "semantic_logger"


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        logger.warning("Invalid YAML in %s (%s), using defaults", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


def _validate(config: Config) -> Config:
    if config.logger_type not in LOGGER_TYPES:
        raise ValueError(
            f"Unknown logger_type {config.logger_type!r} (expected one of {', '.join(LOGGER_TYPES)})"
        )
    if config.poll_interval <= 0:
        raise ValueError(f"poll_interval must be positive, got {config.poll_interval}")
    if config.job_table_limit < 0:
        raise ValueError(f"job_table_limit must be >= 0, got {config.job_table_limit}")
    return config


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    yaml_data = yaml_data or {}

    kwargs: dict = {
        "log_file": yaml_data.get("log_file", Config.log_file),
        "logger_type": yaml_data.get("logger_type", Config.logger_type),
        "poll_interval": yaml_data.get("poll_interval", Config.poll_interval),
        "job_table_limit": yaml_data.get("job_table_limit", Config.job_table_limit),
        "debug_log": yaml_data.get("debug_log", Config.debug_log),
    }

    env = os.environ
    if "LOGBENCH_LOG_FILE" in env:
        kwargs["log_file"] = env["LOGBENCH_LOG_FILE"]
    if "LOGBENCH_LOGGER_TYPE" in env:
        kwargs["logger_type"] = env["LOGBENCH_LOGGER_TYPE"]
    if "LOGBENCH_POLL_INTERVAL" in env:
        kwargs["poll_interval"] = env["LOGBENCH_POLL_INTERVAL"]
    if "LOGBENCH_JOB_TABLE_LIMIT" in env:
        kwargs["job_table_limit"] = env["LOGBENCH_JOB_TABLE_LIMIT"]
    if "LOGBENCH_DEBUG_LOG" in env:
        kwargs["debug_log"] = env["LOGBENCH_DEBUG_LOG"]

    if cli_args is not None:
        for key in kwargs:
            value = getattr(cli_args, key, None)
            if value is not None:
                kwargs[key] = value

    kwargs["logger_type"] = str(kwargs["logger_type"])
    kwargs["poll_interval"] = float(kwargs["poll_interval"])
    kwargs["job_table_limit"] = int(kwargs["job_table_limit"])

    return _validate(Config(**kwargs))
