# detector_pipeline/runner.py
# Purpose: Executes (or previews) the stages of a plan in order.
# Every external tool is run synchronously with the terminal's stdout/stderr.
# A dry run prints the first stage's command line(s) and halts the whole run
# without starting any process.

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from detector_pipeline import stages
from detector_pipeline.errors import (
    EXIT_EXECUTION,
    EXIT_OK,
    EXIT_VALIDATION,
    DetectorError,
    ExecutionError,
    ValidationError,
)
from detector_pipeline.report import action_summary
from detector_pipeline.stages import Stage, StagePlan
from detector_pipeline.utils import paths
from detector_pipeline.utils.pipeline_config import EffectiveConfig

logger = logging.getLogger(__name__)

Executor = Callable[[List[str]], int]


class RunStatus(Enum):
    COMPLETED = "completed"
    HALTED = "halted"
    FAILED = "failed"


class HaltReason(Enum):
    DRY_RUN = "dry_run"


@dataclass
class RunResult:
    status: RunStatus
    stage: Optional[Stage] = None
    reason: Optional[HaltReason] = None
    error: Optional[DetectorError] = None
    commands: List[List[str]] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.status is RunStatus.FAILED:
            return EXIT_VALIDATION if isinstance(self.error, ValidationError) else EXIT_EXECUTION
        return EXIT_OK


def format_command(command: Sequence[str]) -> str:
    return shlex.join(command)


def run_command(command: List[str]) -> int:
    """Run one external tool to completion and return its exit status."""
    try:
        result = subprocess.run(command)
    except OSError as e:
        raise ExecutionError(f"Could not start {command[0]}: {e}", command) from e
    return result.returncode


def make_directory_if_not_existing(path: str, console: Console) -> None:
    directory = Path(path)
    if directory.is_dir():
        console.print(f"Using existing subdirectory {directory}", markup=False, highlight=False, emoji=False)
    else:
        console.print(f"Creating subdirectory {directory}", markup=False, highlight=False, emoji=False)
        directory.mkdir(parents=True, exist_ok=True)


class PipelineRunner:
    """Validates the whole plan, then runs each stage in order."""

    def __init__(self, executor: Optional[Executor] = None, console: Optional[Console] = None):
        self.executor = executor or run_command
        self.console = console or Console(emoji=False)

    def run(self, config: EffectiveConfig, stage_plan: StagePlan) -> RunResult:
        for stage in stage_plan:
            error = stages.validate(stage, config)
            if error is not None:
                logger.error("Validation failed for stage '%s': %s", stage.value, error)
                self.console.print(f"[bold red]{escape(str(error))}[/]", highlight=False, emoji=False)
                return RunResult(RunStatus.FAILED, stage=stage, error=error)

        commands: List[List[str]] = []
        handlers = {
            Stage.PARTITION: self._partition,
            Stage.EXTRACT_FEATURES: self._extract_features,
            Stage.CLASSIFY: self._classify,
        }
        for stage in stage_plan:
            self.console.rule(f"Stage: {stage.label}")
            outcome = handlers[stage](config, stage_plan, commands)
            if outcome is not None:
                return outcome
            self.console.print(f"[bold green]Stage '{stage.label}' completed successfully.[/]")

        return RunResult(RunStatus.COMPLETED, commands=commands)

    # --- Shared helpers ---

    def _preview(self, stage: Stage, stage_plan: StagePlan, planned: List[List[str]],
                 commands: List[List[str]]) -> RunResult:
        self.console.print(f"DRY RUN: {action_summary(stage_plan)}", markup=False, highlight=False, emoji=False)
        for command in planned:
            self.console.print(format_command(command), markup=False, highlight=False, emoji=False, soft_wrap=True)
        commands.extend(planned)
        logger.info("Dry run halted at stage '%s'.", stage.value)
        return RunResult(RunStatus.HALTED, stage=stage, reason=HaltReason.DRY_RUN, commands=commands)

    def _execute(self, command: List[str], commands: List[List[str]]) -> None:
        """Run one command; raises ExecutionError on failure to start or non-zero exit."""
        line = format_command(command)
        commands.append(command)
        self.console.print("[bold cyan]Executing:[/bold cyan] ", end="")
        self.console.print(line, style="yellow", markup=False, highlight=False, emoji=False, soft_wrap=True)
        logger.info("Running command: %s", line)
        returncode = self.executor(command)
        logger.info("Command exited with status %s: %s", returncode, line)
        if returncode != 0:
            raise ExecutionError(f"Command failed with exit code {returncode}: {line}", command, returncode)

    def _fail(self, stage: Stage, error: ExecutionError, commands: List[List[str]]) -> RunResult:
        logger.error("Stage '%s' failed: %s", stage.value, error)
        self.console.print(Panel(f"[bold red]Pipeline HALTED.[/] {escape(str(error))}", expand=False))
        return RunResult(RunStatus.FAILED, stage=stage, error=error, commands=commands)

    # --- Stages ---

    def _partition(self, config: EffectiveConfig, stage_plan: StagePlan,
                   commands: List[List[str]]) -> Optional[RunResult]:
        command = stages.partition_command(config)
        if config.dry_run:
            return self._preview(Stage.PARTITION, stage_plan, [command], commands)
        self.console.print("Call partition...")
        try:
            self._execute(command, commands)
        except ExecutionError as e:
            return self._fail(Stage.PARTITION, e, commands)
        return None

    def _extract_features(self, config: EffectiveConfig, stage_plan: StagePlan,
                          commands: List[List[str]]) -> Optional[RunResult]:
        planned = stages.feature_commands(config)
        if config.dry_run:
            return self._preview(Stage.EXTRACT_FEATURES, stage_plan, planned, commands)

        destination = paths.derive_destination(config.keyword, config.fraction)
        self.console.print("Call HoGs...")
        make_directory_if_not_existing(paths.subgroup_dir(config, destination), self.console)
        for command in planned:
            self.console.print(f"Producing Histograms of Oriented Gradients for {command[-1]}",
                               markup=False, highlight=False, emoji=False)
            try:
                self._execute(command, commands)
            except ExecutionError as e:
                return self._fail(Stage.EXTRACT_FEATURES, e, commands)
        return None

    def _classify(self, config: EffectiveConfig, stage_plan: StagePlan,
                  commands: List[List[str]]) -> Optional[RunResult]:
        pattern = stages.feature_pattern(config)
        result_dirs = stages.discover_result_dirs(pattern, config.project_path)
        logger.info("Found %d result directories for pattern %s*", len(result_dirs), pattern)
        planned = stages.classify_commands(config, result_dirs)

        if config.dry_run:
            if not planned:
                self.console.print(f"No result directories match {pattern}*",
                                   markup=False, highlight=False, emoji=False, soft_wrap=True)
            return self._preview(Stage.CLASSIFY, stage_plan, planned, commands)

        if not planned:
            return self._fail(Stage.CLASSIFY, ExecutionError(f"No result directories match {pattern}*"), commands)

        # Scoring runs append to one summary file, so they go one at a time.
        failures: List[ExecutionError] = []
        for command in planned:
            try:
                self._execute(command, commands)
            except ExecutionError as e:
                logger.error("%s", e)
                self.console.print(f"[bold red]ERROR[/] {escape(str(e))}", highlight=False, emoji=False)
                failures.append(e)

        if failures:
            error = ExecutionError(f"{len(failures)} of {len(planned)} scoring runs failed.", failures=failures)
            return self._fail(Stage.CLASSIFY, error, commands)
        return None
