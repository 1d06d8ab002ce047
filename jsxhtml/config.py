"""
Plugin configuration.

Settings come from an optional `jsx-to-html.json` next to the project, and
CLI flags override them. Unknown keys are rejected so typos fail loudly.
"""
import json
import os
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from jsxhtml.errors import ConfigurationError

CONFIG_FILE = "jsx-to-html.json"

STYLE_EXTENSIONS = (".css", ".scss", ".sass", ".less", ".styl", ".stylus")
SCRIPT_EXTENSIONS = (".js", ".mjs")


class PluginConfig(BaseModel):
    """Resolved settings shared by every pipeline stage."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    root: str = "."
    out_dir: str = "dist"
    cache_dir: Optional[str] = None
    entry_extension: str = ".jsx"
    style_extensions: Tuple[str, ...] = STYLE_EXTENSIONS
    script_extensions: Tuple[str, ...] = SCRIPT_EXTENSIONS
    namespace: str = "jsx-to-html"
    create_element_module: str = "react"
    render_module: str = "react-dom/server"
    node: str = "node"
    keep_scratch: bool = False
    indent: int = 2

    @field_validator("entry_extension")
    @classmethod
    def _dotted(cls, value):
        if not value.startswith("."):
            value = "." + value
        return value

    @field_validator("style_extensions", "script_extensions")
    @classmethod
    def _dotted_all(cls, value):
        return tuple(v if v.startswith(".") else "." + v for v in value)

    @field_validator("indent")
    @classmethod
    def _non_negative(cls, value):
        if value < 0:
            raise ValueError("indent must be >= 0")
        return value

    @property
    def root_path(self):
        return os.path.abspath(self.root)

    @property
    def cache_path(self):
        """Scratch parent; defaults to the bundler's cache dir so node can resolve the project's node_modules."""
        if self.cache_dir:
            return os.path.abspath(self.cache_dir)
        return os.path.abspath(os.path.join("node_modules", ".vite"))

    def is_style(self, path):
        return path.endswith(self.style_extensions)

    def is_script(self, path):
        return path.endswith(self.script_extensions)

    def is_entry(self, path):
        return path.endswith(self.entry_extension)


def load_config(config_path=None, **overrides):
    """
    Load configuration from disk and apply overrides.

    Args:
        config_path: Path to a JSON config file. A missing file yields defaults.
        **overrides: Values that win over the file (None values are ignored).

    Raises:
        ConfigurationError: If the file is not valid JSON or has invalid keys.
    """
    data = {}
    path = config_path or CONFIG_FILE
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read config file: {e}",
                path=path,
                line_number=getattr(e, "lineno", None),
                suggestion="The config file must be a JSON object",
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Config file must contain a JSON object",
                path=path,
            )

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return PluginConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.errors()[0]['msg']}",
            path=path,
            context=", ".join(str(loc) for err in e.errors() for loc in err["loc"]),
            suggestion="Check key names and value types against PluginConfig",
        )


def default_config_json():
    """Serialized defaults, used by `jsx2html init`."""
    return json.dumps(PluginConfig().model_dump(), indent=2)
