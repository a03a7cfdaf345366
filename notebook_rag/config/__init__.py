"""Configuration module -- exports Settings and load_config."""

from notebook_rag.config.loader import load_config
from notebook_rag.config.settings import Settings

__all__ = ["Settings", "load_config"]
