"""
Config Loader

Builds a PipelineConfig from up to three layers, later ones winning:

    1. a YAML file (a bundled profile or any path)
    2. flat dot-notation overrides from the command line
    3. a nested dict of programmatic overrides
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging

import yaml

from loan_default.config.schema import PipelineConfig
from loan_default.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

PROFILE_DIR = Path(__file__).resolve().parent / "profiles"

INPUT_PATH_KEYS = ("train_path", "test_path")


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file is not valid YAML: {path}", cause=e) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Config file must hold a mapping: {path}",
            details={"found": type(raw).__name__},
        )
    return raw


def _anchor_input_paths(raw: Dict[str, Any], base_dir: Path) -> None:
    """Point relative train/test paths at files next to the YAML, if they exist there.

    Paths that do not exist relative to the YAML stay relative to the
    working directory.
    """
    data = raw.get("data") or {}
    for key in INPUT_PATH_KEYS:
        value = data.get(key)
        if not value or Path(value).is_absolute():
            continue
        candidate = (base_dir / value).resolve()
        if candidate.exists():
            data[key] = str(candidate)


def _apply_dotted(raw: Dict[str, Any], dotted: Dict[str, Any]) -> None:
    """Apply {"section.key": value} pairs; None means 'not given'."""
    for dotted_key, value in dotted.items():
        if value is None:
            continue
        *sections, leaf = dotted_key.split(".")
        node = raw
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Merge override into base in place, descending into nested dicts."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge(current, value)
        else:
            base[key] = value


def list_profiles() -> List[str]:
    """Names of the bundled configuration profiles."""
    return sorted(p.stem for p in PROFILE_DIR.glob("*.yaml"))


def profile_path(name: str) -> Path:
    """
    Path of a bundled profile YAML.

    Raises:
        ConfigurationError: If no profile with that name is bundled.
    """
    path = PROFILE_DIR / f"{name}.yaml"
    if not path.exists():
        raise ConfigurationError(
            f"Unknown profile '{name}'",
            details={"available": list_profiles()},
        )
    return path


def load_config(
    yaml_path: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> PipelineConfig:
    """
    Load the pipeline configuration.

    Args:
        yaml_path: YAML file to start from; schema defaults when None.
        cli_overrides: Flat dot-notation keys, e.g.
            {"data.train_path": "/data/train.csv"}. None values are skipped.
        overrides: Nested dict merged on top of everything else.

    Returns:
        Frozen PipelineConfig.

    Raises:
        ConfigurationError: If the YAML file is missing or unreadable.
        pydantic.ValidationError: If the merged values are invalid.
    """
    raw: Dict[str, Any] = {}
    if yaml_path is not None:
        path = Path(yaml_path)
        raw = _read_yaml(path)
        _anchor_input_paths(raw, path.parent)
        logger.info(f"CONFIG | Loaded {path}")

    _apply_dotted(raw, cli_overrides or {})
    _merge(raw, overrides or {})

    config = PipelineConfig(**raw)
    logger.debug(f"CONFIG | profile={config.profile}, top_n={config.selection.top_n}")
    return config


def load_profile(
    name: str,
    cli_overrides: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> PipelineConfig:
    """Load a bundled profile ('baseline', 'outlier_flagged') with overrides."""
    return load_config(str(profile_path(name)), cli_overrides, overrides)


def save_config(config: PipelineConfig, path: str) -> None:
    """Write a config as YAML (.yaml/.yml) or JSON (any other suffix)."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")

    with out_path.open("w", encoding="utf-8") as f:
        if out_path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)

    logger.info(f"CONFIG | Saved {out_path}")
