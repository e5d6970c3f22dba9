# detector_pipeline/__main__.py
# DETECTOR PIPELINE ORCHESTRATOR
#
# Do one or more of:
#  PARTITION  make dataset
#  FEATURES   extract features (histograms of oriented gradients)
#  CLASSIFY   classify images and evaluate the classifier performance

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from rich.console import Console
from rich.markup import escape

from detector_pipeline.errors import EXIT_OK, EXIT_USAGE, UsageError
from detector_pipeline.report import show_configuration
from detector_pipeline.runner import PipelineRunner, RunStatus
from detector_pipeline.stages import STAGE_FLAGS, plan
from detector_pipeline.utils.pipeline_config import DEFAULT_CONFIG_FILE, LOG_FORMAT, LOGS_DIR, load_config

console = Console(emoji=False)
logger = logging.getLogger(__name__)

DESCRIPTION = """\
Do one or more of:
  * PARTITION  make dataset
  * FEATURES   extract features
  * CLASSIFY   classify images

One or more of -p, -x, -c is required for anything to happen.
Keyword and fraction name the dataset; the label file is required for partitioning.
"""

EXAMPLES = """\
Examples:
  Create a new dataset of images depicting a disc (or not), using 75% of the images for training
    detector --partition --keyword disc --fraction .75 --label_file labels.txt

  Extract features (histograms of oriented gradients) using 8 cells and 9 bins
    detector --hogs --cells 8 --bins 9

  Classify images and evaluate classifier performance
    detector --classify --dataset data
    detector -c -d data

  Any number of cells; specific number of bins
    detector -c -d data --cells "*" --bins 8 -f .8
"""


class DetectorArgumentParser(argparse.ArgumentParser):
    """Raises UsageError instead of exiting so main() owns the exit status."""

    def error(self, message: str):
        raise UsageError(message)


def build_parser() -> DetectorArgumentParser:
    parser = DetectorArgumentParser(
        prog="detector",
        description=DESCRIPTION,
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    # Every option defaults to None so that an absent flag never overrides
    # the configuration file.
    parser.add_argument("-cfg", "--config_file", metavar="FILE",
                        help=f"Configuration file of KEY=value lines (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("-l", "--label_file", metavar="FILE", help="Contains class labels; required for --partition")

    stages = parser.add_argument_group("stages")
    stages.add_argument("-p", "--partition", "--partition_dataset", dest="do_partition",
                        action="store_true", default=None,
                        help="Create a new dataset, given keyword and training fraction")
    stages.add_argument("-x", "--hogs", "--extract_features", dest="do_extract_features",
                        action="store_true", default=None,
                        help="Make Histograms of Oriented Gradients (HoGs), given cells and bins")
    stages.add_argument("-c", "--classify", dest="do_classify", action="store_true", default=None,
                        help="Classify images and evaluate the performance of the classifier")

    params = parser.add_argument_group("parameters")
    params.add_argument("-d", "--dataset", help="Dataset group to operate on; required for --classify")
    params.add_argument("-k", "--keyword", help="Class label, i.e., disc, player, jump, throw, catch, etc.")
    params.add_argument("-f", "--fraction", help="Training fraction, portion of overall number of records for training")
    params.add_argument("-w", "--cells", help='Number of cells, or "*" for any')
    params.add_argument("-b", "--bins", help='Number of bins, or "*" for any')

    parser.add_argument("-n", "--dry_run", "--dry-run", dest="dry_run", action="store_true", default=None,
                        help="Don't do anything; just see what would be done")
    return parser


def split_passthrough(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Everything after a literal ``--`` belongs to the external tools, not to us."""
    argv = list(argv)
    if "--" in argv:
        i = argv.index("--")
        return argv[:i], argv[i + 1:]
    return argv, []


def configure_logging(to_file: bool) -> Optional[Path]:
    """Log to a timestamped file for real runs; dry runs and idle runs write nothing to disk."""
    if not to_file:
        logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
        return None
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOGS_DIR / f"detector_{time.strftime('%Y%m%d-%H%M%S')}.log"
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, filename=log_file)
    return log_file


def main(argv: Optional[Sequence[str]] = None) -> int:
    own_args, passthrough = split_passthrough(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    try:
        args = parser.parse_args(own_args)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        console.print(f"[bold red]Usage error:[/] {escape(str(e))}", highlight=False, emoji=False)
        return EXIT_USAGE

    # Stage flags only come from the command line, so the plan is known before the file is read.
    stages_requested = any(getattr(args, flag) for _, flag in STAGE_FLAGS)
    log_file = configure_logging(stages_requested and not args.dry_run)
    if passthrough:
        logger.debug("Ignoring pass-through arguments: %s", passthrough)

    overrides = {name: value for name, value in vars(args).items() if value is not None}
    config = load_config(overrides)
    stage_plan = plan(config)

    show_configuration(config, stage_plan, console)
    if log_file is not None:
        console.print(f"[dim]Logging to {escape(str(log_file))}[/]")

    if not stage_plan:
        console.print("No stage requested; nothing to do. See --help.")
        return EXIT_OK

    result = PipelineRunner(console=console).run(config, stage_plan)
    if result.status is RunStatus.COMPLETED:
        console.rule("[bold green]Detector Pipeline Run Completed Successfully![/]")
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
