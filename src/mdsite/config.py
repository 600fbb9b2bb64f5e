"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


CONFIG_FILE = "config.yaml"


class Settings(BaseModel):
    app_name:       str = "mdsite"
    site_title:     str = Field(default="My Site",  description="Site title passed to the default theme")
    content_dir:    str = Field(default="content",  description="Directory holding markdown content")
    output_dir:     str = Field(default="public",   description="Directory for rendered artifacts")
    page_size:      int = Field(default=10, ge=0,   description="Documents per list page; 0 = single page")
    sections:       list[str] = Field(default_factory=list, description="Allowed sections; empty = any")
    taxonomies:     list[str] = Field(default_factory=lambda: ["tags", "categories"], description="Front matter keys indexed as taxonomies")
    parser_config:  str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    workers:        int = Field(default=4, ge=1,    description="Parallel render workers")
    source_retries: int = Field(default=0, ge=0,    description="Retries when the content source is unavailable")
    strict:         bool = Field(default=False,     description="Treat warnings as build failures")

    @field_validator("sections", "taxonomies", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:
        """Accept 'a,b' strings (env vars, CLI) for list fields."""
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value

    @property
    def content_name(self) -> str:
        """Leading path segment of source paths produced from content_dir."""
        return Path(self.content_dir).name or "content"


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDSITE_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping")

    for name in Settings.model_fields:
        if val := os.getenv(f"MDSITE_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValueError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
