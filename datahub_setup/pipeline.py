"""DataHub API setup run orchestrator.

Drives one scaffolding run through its states::

    COLLECTING -> RESOLVED -> MATERIALIZING -> DONE
         \\                          \\
          +-> ABORTED                +-> ABORTED

Usage::

    datahub-setup
    python -m datahub_setup.pipeline
"""

from __future__ import annotations

import sys

from rich.panel import Panel

from datahub_setup.collector import ConfigCollector, ConsolePrompter, Prompter
from datahub_setup.config import Config
from datahub_setup.errors import FilesystemError, ScaffoldError
from datahub_setup.scaffolder.materializer import FilesystemMaterializer, MaterializeReport
from datahub_setup.scaffolder.models import GenerationPlan, RunState, TargetAction
from datahub_setup.scaffolder.resolver import resolve
from datahub_setup.utils import (
    console,
    print_error,
    print_header,
    print_info,
    print_success,
    print_summary_table,
    print_warning,
)

_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.COLLECTING: {RunState.RESOLVED, RunState.ABORTED},
    RunState.RESOLVED: {RunState.MATERIALIZING},
    RunState.MATERIALIZING: {RunState.DONE, RunState.ABORTED},
    RunState.DONE: set(),
    RunState.ABORTED: set(),
}


class ScaffoldRun:
    """One interactive scaffolding run.

    Attributes:
        config: Setup configuration.
        state: Current run state; only legal transitions are accepted.
        plan: The resolved plan once the run reached ``RESOLVED``.
        report: The materializer's report once the run reached ``DONE``.
    """

    def __init__(
        self,
        config: Config | None = None,
        prompter: Prompter | None = None,
        collector: ConfigCollector | None = None,
        materializer: FilesystemMaterializer | None = None,
    ) -> None:
        self.config = config or Config()
        self.prompter = prompter or ConsolePrompter()
        self.collector = collector or ConfigCollector(self.prompter, self.config)
        self.materializer = materializer or FilesystemMaterializer(
            config=self.config, confirm=self.prompter.confirm
        )
        self.state = RunState.COLLECTING
        self.plan: GenerationPlan | None = None
        self.report: MaterializeReport | None = None

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal run transition {self.state.value} -> {new_state.value}")
        self.state = new_state

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def collect(self) -> tuple[GenerationPlan, TargetAction]:
        """Ask every question and resolve the plan.  No filesystem writes."""
        root = self.config.project_root
        print_info(f"Project will be set up at: {root}")
        try:
            action = self.collector.collect_target_action(root)
            connection = self.collector.collect_connection()
        except ScaffoldError:
            self._transition(RunState.ABORTED)
            raise
        self.plan = resolve(connection, root)
        self._transition(RunState.RESOLVED)
        return self.plan, action

    def materialize(self, plan: GenerationPlan, action: TargetAction) -> MaterializeReport:
        self._transition(RunState.MATERIALIZING)
        try:
            self.materializer.check_templates()
            self.materializer.prepare_target(plan.target_root, action)
            print_info("Creating project directory structure...")
            self.report = self.materializer.materialize(plan)
        except FilesystemError:
            self._transition(RunState.ABORTED)
            raise
        self._transition(RunState.DONE)
        return self.report

    def run(self) -> MaterializeReport:
        """Run every stage and print the summary."""
        print_header("DataHub API setup")
        plan, action = self.collect()
        report = self.materialize(plan, action)
        self._print_summary(plan, report)
        return report

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _print_summary(self, plan: GenerationPlan, report: MaterializeReport) -> None:
        print_success("Setup completed successfully!")
        console.print()
        print_summary_table(
            {
                "Project root": str(plan.target_root),
                "Database": plan.profile.label,
                "Connection URL": plan.connection_url,
                "Compose variant": plan.compose_variant.value,
                "Driver package": plan.extra_driver_dependency or "(none)",
                "Directories created": str(len(report.created_dirs)),
                "Files created": str(len(report.created_files)),
                "Files updated": str(len(report.updated_files)),
            },
            title="Setup Summary",
        )
        console.print(
            Panel(
                "\n".join(
                    [
                        f"cd {plan.target_root.name}",
                        "python -m venv venv",
                        "source venv/bin/activate",
                        "pip install -r requirements.txt",
                        "alembic upgrade head",
                        "uvicorn app.main:app --reload",
                    ]
                ),
                title="Next steps",
                style="cyan",
            )
        )
        if plan.port is not None:
            print_warning(f"Remember to start your {plan.engine.value} server on port {plan.port}.")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``datahub-setup`` / ``python -m datahub_setup.pipeline``."""
    try:
        config = Config.from_env()
    except ValueError as exc:
        print_error(f"Invalid environment configuration: {exc}")
        sys.exit(1)

    run = ScaffoldRun(config)
    try:
        run.run()
    except ScaffoldError as exc:
        print_error(str(exc))
        sys.exit(exc.exit_code)


if __name__ == "__main__":
    main()
