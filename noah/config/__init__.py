"""Configuration module."""

from noah.config.settings import LLMConfig, Settings, TaskType, get_settings

__all__ = ["LLMConfig", "Settings", "TaskType", "get_settings"]
