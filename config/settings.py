"""
Configuration loader for the SQS job trigger.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class ProfileConfig:
    access_key_id: str = ""
    secret_access_key: str = ""
    sqs_queue: str = ""                 # queue name or full https://sqs.<region>... URL
    region: str = "us-east-1"


@dataclass
class ConsumerConfig:
    max_messages: int = 10              # SQS caps a batch at 10
    wait_seconds: int = 20              # long-poll wait, SQS caps at 20
    concurrency: int = 4                # max messages processed at once per consumer
    idle_sleep_seconds: float = 1.0     # back-off after a receive error


@dataclass
class ActivityConfig:
    log_path: str = "./data/sqs-activity.log"
    polling_log_dir: str = "./data/jobs"
    follow_interval_seconds: float = 0.5


@dataclass
class PollingConfig:
    enabled: bool = False
    interval_seconds: int = 60


@dataclass
class JobConfig:
    name: str
    parameterized: bool = True
    triggers: list[str] = field(default_factory=lambda: ["sqs"])
    disabled: bool = False
    poll_path: str = ""                 # watched file for polling mode, empty = none


@dataclass
class Settings:
    app_name: str = "SqsJobTrigger"
    debug: bool = False
    trigger_kind: str = "sqs"
    queue_backend: str = "memory"       # "memory" for dev, "sqs" for production
    profiles: list[ProfileConfig] = field(default_factory=list)
    consumer: ConsumerConfig = field(default_factory=ConsumerConfig)
    activity: ActivityConfig = field(default_factory=ActivityConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    jobs: list[JobConfig] = field(default_factory=list)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "SQS_TRIGGER_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)
        settings.trigger_kind = raw.get("trigger_kind", settings.trigger_kind)
        settings.queue_backend = raw.get("queue_backend", settings.queue_backend)

        for p in raw.get("profiles", []) or []:
            settings.profiles.append(ProfileConfig(
                access_key_id=p.get("access_key_id", ""),
                secret_access_key=p.get("secret_access_key", ""),
                sqs_queue=p.get("sqs_queue", ""),
                region=p.get("region", "us-east-1"),
            ))

        if "consumer" in raw:
            c = raw["consumer"]
            settings.consumer = ConsumerConfig(
                max_messages=c.get("max_messages", 10),
                wait_seconds=c.get("wait_seconds", 20),
                concurrency=c.get("concurrency", 4),
                idle_sleep_seconds=c.get("idle_sleep_seconds", 1.0),
            )

        if "activity" in raw:
            a = raw["activity"]
            settings.activity = ActivityConfig(
                log_path=a.get("log_path", settings.activity.log_path),
                polling_log_dir=a.get("polling_log_dir", settings.activity.polling_log_dir),
                follow_interval_seconds=a.get("follow_interval_seconds", 0.5),
            )

        if "polling" in raw:
            pl = raw["polling"]
            settings.polling = PollingConfig(
                enabled=pl.get("enabled", False),
                interval_seconds=pl.get("interval_seconds", 60),
            )

        for j in raw.get("jobs", []) or []:
            settings.jobs.append(JobConfig(
                name=j["name"],
                parameterized=j.get("parameterized", True),
                triggers=j.get("triggers", [settings.trigger_kind]),
                disabled=j.get("disabled", False),
                poll_path=j.get("poll_path", ""),
            ))

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
