# detector_pipeline/utils/pipeline_config.py
#
# =============================================================================
# DETECTOR PIPELINE: SINGLE SOURCE OF TRUTH FOR CONFIGURATION
# =============================================================================
# Built-in defaults, the key=value configuration file, and the merge of both
# with command-line overrides into one EffectiveConfig.
# Precedence, lowest to highest: default -> configuration file -> CLI flag.

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from detector_pipeline.errors import ConfigError

logger = logging.getLogger(__name__)

# --- Files and directories ---
DEFAULT_CONFIG_FILE = "detector.cfg"
LOGS_DIR = Path("logs")
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s - %(message)s"

# --- External tools (found under PROJECTPATH + LIBPATH) ---
PARTITION_TOOL = "partition_data_two_class.sh"
FEATURE_TOOL = "HoG.R"
SCORE_TOOL = "score.R"
SUMMARY_FILE = "summary.csv"

# Subset lists written by the partition tool; features are extracted per subset.
SUBSETS = ("train", "test")

# --- Configuration file keys -> EffectiveConfig fields ---
FILE_KEYS = {
    "PROJECTPATH": "project_path",
    "DATAPATH": "data_path",
    "LIBPATH": "lib_path",
    "CELLS": "cells",
    "BINS": "bins",
    "DATASET": "dataset",
    "KEYWORD": "keyword",
    "FRACTION": "fraction",
}

DEFAULTS: Dict[str, Any] = {
    "config_file": DEFAULT_CONFIG_FILE,
    "project_path": "",
    "data_path": "",
    "lib_path": "",
    "cells": "8",
    "bins": "8",
    "dataset": "",
    "keyword": "disc",
    "fraction": "0.80",
    "label_file": "",
    "dry_run": False,
    "do_partition": False,
    "do_extract_features": False,
    "do_classify": False,
}


class ConfigStore:
    """Read-only view over a file of ``key=value`` lines; the last occurrence of a key wins.

    A missing file is not an error, every lookup simply returns ``None``.
    An unreadable file is logged and treated the same way.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._values: Dict[str, str] = {}
        try:
            self._values = self._parse(self.path)
        except ConfigError as e:
            logger.warning("%s Falling back to defaults and command-line values.", e)

    @staticmethod
    def _parse(path: Path) -> Dict[str, str]:
        if not path.is_file():
            logger.info("Configuration file %s not found; using defaults.", path)
            return {}
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Could not read configuration file {path}: {e}") from e

        values: Dict[str, str] = {}
        for lineno, line in enumerate(text.splitlines(), start=1):
            key, sep, value = line.partition("=")
            if not sep or not key:
                logger.debug("Skipping line %d of %s: no key=value pair.", lineno, path)
                continue
            # Later lines override earlier ones.
            values[key] = value
        return values

    def read(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._values


@dataclass(frozen=True)
class EffectiveConfig:
    """The resolved configuration for one invocation. Never mutated after resolution."""

    config_file: str
    project_path: str
    data_path: str
    lib_path: str
    cells: str
    bins: str
    dataset: str
    keyword: str
    fraction: str
    label_file: str
    dry_run: bool
    do_partition: bool
    do_extract_features: bool
    do_classify: bool


FIELD_NAMES = tuple(f.name for f in fields(EffectiveConfig))


def file_values(store: ConfigStore) -> Dict[str, str]:
    """Map the keys the store actually defines onto EffectiveConfig field names."""
    return {field: store.read(key) for key, field in FILE_KEYS.items() if key in store}


def resolve_config(
    defaults: Mapping[str, Any],
    file_layer: Mapping[str, Any],
    cli_overrides: Mapping[str, Any],
) -> EffectiveConfig:
    """Merge the three layers; a layer only applies where it supplies a value.

    ``None`` in a layer means "not supplied". No cross-field validation is done
    here, each stage validates what it needs at dispatch time.
    """
    unknown = (set(file_layer) | set(cli_overrides)) - set(FIELD_NAMES)
    if unknown:
        raise ConfigError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

    resolved: Dict[str, Any] = {}
    for name in FIELD_NAMES:
        value = defaults.get(name)
        for layer in (file_layer, cli_overrides):
            if layer.get(name) is not None:
                value = layer[name]
        resolved[name] = value
    return EffectiveConfig(**resolved)


def load_config(cli_overrides: Mapping[str, Any]) -> EffectiveConfig:
    """Read the configuration file named on the command line (or the default) and resolve."""
    config_file = cli_overrides.get("config_file") or DEFAULTS["config_file"]
    store = ConfigStore(config_file)
    return resolve_config(DEFAULTS, file_values(store), cli_overrides)
