"""
Configuration module for Avenue PD.
"""

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class StatutesConfig(BaseModel):
    """
    Configuration for the penal code table.
    """

    path: Optional[str] = None  # Alternate table file (defaults to the bundled table)


class ReportsConfig(BaseModel):
    """
    Configuration for reports.
    """

    ranking_limit: int = 10  # Entries in officer/attorney rankings
    top_statutes_limit: int = 10  # Entries in the statute leaderboard
    recent_limit: int = 20  # Entries in the recent arrests list


class OutputConfig(BaseModel):
    """
    Configuration for output.
    """

    json_path: Optional[str] = "./out/arrests.json"  # JSON output path
    csv_path: Optional[str] = "./out/arrests.csv"  # CSV output path
    ndjson_path: Optional[str] = None  # NDJSON output path (disabled by default)
    pretty_json: bool = True  # Whether to pretty-print JSON


class LoggingConfig(BaseModel):
    """
    Configuration for logging.
    """

    level: str = "INFO"  # Logging level (DEBUG/INFO/WARN/ERROR)


class MongoDBConfig(BaseModel):
    """
    Configuration for MongoDB storage.
    """

    enabled: bool = False  # Whether MongoDB storage is enabled
    uri: str = "mongodb://localhost:27017"  # MongoDB connection URI
    database: str = "avenue_pd"  # Database name
    arrests_collection: str = "arrest_reports"
    officers_collection: str = "officers"
    statutes_collection: str = "statutes"
    counter_collection: str = "counters"  # Holds the report number sequence


class Config(BaseModel):
    """
    Main configuration.
    """

    statutes: StatutesConfig = Field(default_factory=StatutesConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    mongodb: Optional[MongoDBConfig] = None  # MongoDB config (optional)


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from a file.

    Args:
        path: Path to the configuration file

    Returns:
        Configuration object
    """
    if path:
        with open(path, "r") as f:
            if path.endswith(".yaml") or path.endswith(".yml"):
                config_dict = yaml.safe_load(f)
            elif path.endswith(".json"):
                import json

                config_dict = json.load(f)
            else:
                raise ValueError(f"Unsupported configuration file format: {path}")

        return Config(**(config_dict or {}))
    else:
        default_locations = [
            "./config.yaml",
            "./config.yml",
            "./config.json",
            os.path.expanduser("~/.config/avenuepd/config.yaml"),
        ]

        for loc in default_locations:
            if os.path.exists(loc):
                return load_config(loc)

        return Config()
