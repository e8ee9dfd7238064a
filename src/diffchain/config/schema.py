"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

OutputFormat = Literal["terminal", "json"]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class StoreConfig:
    url: str = "sqlite:///diffchain.db"
    echo: bool = False  # log every SQL statement


@dataclass
class CommitConfig:
    hash_length: int = 40
    max_retries: int = 3  # whole-commit retries after a chain conflict


@dataclass
class ClassifierConfig:
    extra_extensions: List[str] = field(default_factory=list)
    extensions_file: str = ""  # YAML list of additional code extensions


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class DiffchainConfig:
    version: str = "1.0"
    store: StoreConfig = field(default_factory=StoreConfig)
    commit: CommitConfig = field(default_factory=CommitConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
