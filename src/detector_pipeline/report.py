# detector_pipeline/report.py
# Purpose: Renders the resolved configuration and the planned stages as plain
# text. Always shown before any stage runs, dry run included.

from rich.console import Console

from detector_pipeline.errors import ValidationError
from detector_pipeline.stages import StagePlan
from detector_pipeline.utils import paths
from detector_pipeline.utils.pipeline_config import EffectiveConfig

SEPARATOR = "-------------"

# (label, field) in display order
CONFIG_ROWS = (
    ("PROJECTPATH", "project_path"),
    ("DATAPATH", "data_path"),
    ("LIBPATH", "lib_path"),
    ("DATASET", "dataset"),
    ("KEYWORD", "keyword"),
    ("FRACTION", "fraction"),
    ("CELLS", "cells"),
    ("BINS", "bins"),
    ("LABEL FILE", "label_file"),
    ("DRY RUN", "dry_run"),
    ("PARTITION", "do_partition"),
    ("HOGS", "do_extract_features"),
    ("CLASSIFY", "do_classify"),
)

LABEL_WIDTH = max(len(label) for label, _ in CONFIG_ROWS)


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _row(label: str, value) -> str:
    return f"{label:<{LABEL_WIDTH}} : {_format_value(value)}".rstrip()


def action_summary(stage_plan: StagePlan) -> str:
    """``Begin -> Partition dataset -> Classify images -> End``"""
    return " -> ".join(["Begin", *(stage.label for stage in stage_plan), "End"])


def render(config: EffectiveConfig, stage_plan: StagePlan) -> str:
    lines = [_row("CONFIG FILE", config.config_file), SEPARATOR]
    lines += [_row(label, getattr(config, name)) for label, name in CONFIG_ROWS]
    try:
        destination = paths.derive_destination(config.keyword, config.fraction)
    except ValidationError as e:
        destination = f"(unavailable: {e})"
    lines += [_row("DESTINATION", destination), SEPARATOR, "", action_summary(stage_plan), ""]
    return "\n".join(lines)


def show_configuration(config: EffectiveConfig, stage_plan: StagePlan, console: Console) -> None:
    console.rule("[bold magenta]Detector Pipeline Configuration[/]")
    console.print(render(config, stage_plan), markup=False, highlight=False, emoji=False, soft_wrap=True)
