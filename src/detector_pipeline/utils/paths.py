# detector_pipeline/utils/paths.py
# Purpose: Derives every identifier and location the stages need from the
# resolved configuration: the destination name (keyword + rounded training
# percentage), the feature pattern used to find result directories, and the
# paths of the external tools.

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from detector_pipeline.errors import EmptyFeaturePattern, InvalidFraction, MissingParameter
from detector_pipeline.utils.pipeline_config import (
    FEATURE_TOOL,
    PARTITION_TOOL,
    SCORE_TOOL,
    EffectiveConfig,
)


def join_path(*parts: str) -> str:
    """Join path fragments with exactly one ``/`` between them.

    Empty fragments are dropped. A leading ``/`` on the first non-empty
    fragment is kept so absolute roots stay absolute.
    """
    pieces = [p for p in parts if p]
    if not pieces:
        return ""
    absolute = pieces[0].startswith("/")
    stripped = [p.strip("/") for p in pieces]
    joined = "/".join(p for p in stripped if p)
    return "/" + joined if absolute else joined


def parse_fraction(fraction: str, stage: Optional[str] = None) -> Decimal:
    """Parse the training fraction exactly; it must lie in (0, 1]."""
    try:
        value = Decimal(str(fraction).strip())
    except InvalidOperation:
        raise InvalidFraction(fraction, stage) from None
    if not value.is_finite() or not (0 < value <= 1):
        raise InvalidFraction(fraction, stage)
    return value


def percentage(fraction: str, stage: Optional[str] = None) -> int:
    # Half values round away from zero: 0.745 -> 75, 0.125 -> 13.
    scaled = parse_fraction(fraction, stage) * 100
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def derive_destination(keyword: str, fraction: str, stage: Optional[str] = None) -> str:
    """``("disc", "0.75") -> "disc75"``."""
    if not keyword:
        raise MissingParameter("keyword", stage)
    return f"{keyword}{percentage(fraction, stage)}"


def derive_feature_pattern(
    dataset: str, destination: str, cells: str, bins: str, stage: Optional[str] = None
) -> str:
    """``dataset/destination/cells<C>_bins<B>``; a ``*`` for cells or bins is kept verbatim."""
    for field, value in (("dataset", dataset), ("destination", destination),
                         ("cells", cells), ("bins", bins)):
        if not value:
            raise EmptyFeaturePattern(field, stage)
    return join_path(dataset, destination, subgroup_name(cells, bins))


def subgroup_name(cells: str, bins: str) -> str:
    return f"cells{cells}_bins{bins}"


# --- Locations built from the project root ---

def image_dir(config: EffectiveConfig) -> str:
    return join_path(config.project_path, config.data_path)


def tool_path(config: EffectiveConfig, tool: str) -> str:
    return join_path(config.project_path, config.lib_path, tool)


def partition_tool(config: EffectiveConfig) -> str:
    return tool_path(config, PARTITION_TOOL)


def feature_tool(config: EffectiveConfig) -> str:
    return tool_path(config, FEATURE_TOOL)


def score_tool(config: EffectiveConfig) -> str:
    return tool_path(config, SCORE_TOOL)


def group_dir(config: EffectiveConfig, destination: str) -> str:
    return join_path(config.project_path, config.dataset, destination)


def subgroup_dir(config: EffectiveConfig, destination: str) -> str:
    return join_path(group_dir(config, destination), subgroup_name(config.cells, config.bins))
