"""Configuration — Settings loaded from environment variables and YAML."""

from docmapper.config.settings import Settings

__all__ = ["Settings"]
