"""Configuration module for ssrbridge."""

from ssrbridge.config.loader import load_client_config
from ssrbridge.config.schema import ClientConfig, WorkerSettings

__all__ = ["ClientConfig", "WorkerSettings", "load_client_config"]
