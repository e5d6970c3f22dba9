# detector_pipeline/stages.py
# Purpose: Decides which stages were requested, checks that each one has the
# inputs it needs, and builds the argument vectors for the external tools.
# Stages always run Partition -> ExtractFeatures -> Classify, whatever the
# order of the flags on the command line.

import glob
import os
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from detector_pipeline.errors import (
    LabelFileNotFound,
    MissingLabelFile,
    MissingParameter,
    ValidationError,
)
from detector_pipeline.utils import paths
from detector_pipeline.utils.pipeline_config import SUBSETS, SUMMARY_FILE, EffectiveConfig


class Stage(Enum):
    PARTITION = "partition"
    EXTRACT_FEATURES = "extract_features"
    CLASSIFY = "classify"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]


STAGE_LABELS = {
    Stage.PARTITION: "Partition dataset",
    Stage.EXTRACT_FEATURES: "Make HoGs",
    Stage.CLASSIFY: "Classify images",
}

STAGE_FLAGS = (
    (Stage.PARTITION, "do_partition"),
    (Stage.EXTRACT_FEATURES, "do_extract_features"),
    (Stage.CLASSIFY, "do_classify"),
)

StagePlan = Tuple[Stage, ...]


def plan(config: EffectiveConfig) -> StagePlan:
    """Active stages in fixed execution order."""
    return tuple(stage for stage, flag in STAGE_FLAGS if getattr(config, flag))


# --- Validation ---

def _validate_partition(config: EffectiveConfig) -> None:
    stage = Stage.PARTITION.value
    if not config.label_file:
        raise MissingLabelFile(stage)
    label_file = Path(config.label_file)
    if not label_file.is_file() or not os.access(label_file, os.R_OK):
        raise LabelFileNotFound(config.label_file, stage)
    if not config.keyword:
        raise MissingParameter("keyword", stage)
    if not config.fraction:
        raise MissingParameter("fraction", stage)
    paths.parse_fraction(config.fraction, stage)


def _validate_extract_features(config: EffectiveConfig) -> None:
    stage = Stage.EXTRACT_FEATURES.value
    if not config.cells:
        raise MissingParameter("cells", stage)
    if not config.bins:
        raise MissingParameter("bins", stage)
    paths.derive_destination(config.keyword, config.fraction, stage)


def _validate_classify(config: EffectiveConfig) -> None:
    feature_pattern(config, Stage.CLASSIFY.value)


_VALIDATORS = {
    Stage.PARTITION: _validate_partition,
    Stage.EXTRACT_FEATURES: _validate_extract_features,
    Stage.CLASSIFY: _validate_classify,
}


def validate(stage: Stage, config: EffectiveConfig) -> Optional[ValidationError]:
    """Return the first problem that stops ``stage`` from running, or None."""
    try:
        _VALIDATORS[stage](config)
    except ValidationError as e:
        return e
    return None


# --- Command builders ---

def feature_pattern(config: EffectiveConfig, stage: Optional[str] = None) -> str:
    destination = paths.derive_destination(config.keyword, config.fraction, stage)
    return paths.derive_feature_pattern(config.dataset, destination, config.cells, config.bins, stage)


def partition_command(config: EffectiveConfig) -> List[str]:
    return [paths.partition_tool(config), config.keyword, config.label_file, config.fraction]


def feature_commands(config: EffectiveConfig) -> List[List[str]]:
    """One feature-tool invocation per subset list written by the partition tool."""
    destination = paths.derive_destination(config.keyword, config.fraction)
    group = paths.group_dir(config, destination)
    subgroup = paths.subgroup_dir(config, destination)
    return [
        [
            paths.feature_tool(config),
            "-d", paths.image_dir(config),
            f"--cells={config.cells}",
            f"--bins={config.bins}",
            "-o", paths.join_path(subgroup, f"{subset}.csv"),
            paths.join_path(group, f"{subset}.txt"),
        ]
        for subset in SUBSETS
    ]


def discover_result_dirs(pattern: str, root: str = "") -> List[str]:
    """Existing directories under ``root`` whose path starts with ``pattern`` (which may itself hold ``*``).

    ``root`` is the project path the feature stage writes under; an empty root
    means the working directory.
    """
    return sorted(p for p in glob.glob(paths.join_path(root, pattern) + "*") if os.path.isdir(p))


def classify_commands(config: EffectiveConfig, result_dirs: List[str]) -> List[List[str]]:
    tool = paths.score_tool(config)
    return [
        [tool, f"--lib_path={config.lib_path}", f"--summary_file={SUMMARY_FILE}", result_dir]
        for result_dir in result_dirs
    ]
