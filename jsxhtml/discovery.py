"""
Entry discovery.

Scans the top level of the source root for component entry files and turns
them into the bundler's named input map.
"""
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from jsxhtml.errors import ConfigurationError


class ComponentEntry(BaseModel):
    """One component source file that becomes one HTML document."""
    model_config = ConfigDict(frozen=True)

    source_path: Path
    logical_name: str


def discover_entries(root, extension=".jsx"):
    """
    List the component entry files directly under `root`.

    Args:
        root: Source root directory
        extension: Entry file extension, including the dot

    Returns:
        ComponentEntry list sorted by file name

    Raises:
        ConfigurationError: If the root is missing, not a directory or unreadable
    """
    abs_root = os.path.abspath(root)

    if not os.path.exists(abs_root):
        raise ConfigurationError(
            "Source root does not exist",
            path=abs_root,
            suggestion="Set 'root' in jsx-to-html.json or pass --root",
        )
    if not os.path.isdir(abs_root):
        raise ConfigurationError("Source root is not a directory", path=abs_root)

    try:
        names = sorted(os.listdir(abs_root))
    except OSError as e:
        raise ConfigurationError(f"Source root is not readable: {e.strerror}", path=abs_root)

    entries = []
    for name in names:
        full_path = os.path.join(abs_root, name)
        if name.endswith(extension) and os.path.isfile(full_path):
            entries.append(ComponentEntry(
                source_path=Path(full_path),
                logical_name=name[: -len(extension)],
            ))
    return entries


def build_input_map(entries):
    """Map each entry's logical name to its source path for the bundler."""
    return {entry.logical_name: str(entry.source_path) for entry in entries}
