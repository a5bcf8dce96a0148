"""YAML output for messenger vectors."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class VectorDumper(yaml.SafeDumper):
    """SafeDumper that keeps message text readable."""


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    # Multi-line message bodies are written as literal blocks.
    style = "|" if "\n" in data else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


VectorDumper.add_representer(str, _str_representer)


def dump_yaml(data: dict[str, Any]) -> str:
    return yaml.dump(data, Dumper=VectorDumper, sort_keys=False, width=4096, allow_unicode=True)


def write_yaml(path: Path, data: dict[str, Any]) -> None:
    path.write_text(dump_yaml(data), encoding="utf-8")


def load_yaml(path: Path) -> Any:
    return yaml.safe_load(path.read_text(encoding="utf-8"))
