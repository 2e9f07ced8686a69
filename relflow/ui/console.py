"""Console output for workflow runs.

The ConsoleManager adapts output to:
- Rich-rendered tables and panels when rich output is enabled
- JSON lines for machine-readable output (CI/CD)
- Plain-text fallback otherwise
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime
from typing import IO, Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..orchestration.workflow_engine.executors import ExecutionResult
from ..orchestration.workflow_engine.graph import GraphStatistics


class ThreadSafeConsole:
    """Thread-safe wrapper around Rich Console."""

    def __init__(self, console: Console):
        self._console = console
        self._lock = threading.RLock()  # Reentrant lock for nested calls

    @property
    def raw(self) -> Console:
        return self._console

    def print(self, *args, **kwargs):
        """Thread-safe print method."""
        with self._lock:
            self._console.print(*args, **kwargs)


def result_summary(result: ExecutionResult) -> Dict[str, Any]:
    """Plain-data summary of an execution result."""
    return {
        "success": result.success,
        "executed_tasks": list(result.executed_tasks),
        "skipped_tasks": list(result.skipped_tasks),
        "failed_task": result.failed_task,
        "error": result.error.message if result.error else None,
        "rollback_executed": result.rollback_executed,
        "rollback_errors": [
            {"task": task_id, "error": str(error)} for task_id, error in result.rollback_errors
        ],
        "execution_time_ms": round(result.execution_time_ms, 3),
    }


class ConsoleManager:
    """Manages console output with Rich integration."""

    def __init__(
        self,
        verbose: bool = False,
        json_output: bool = False,
        rich_output: bool = True,
        console: Optional[Console] = None,
        stream: Optional[IO[str]] = None,
    ):
        self.verbose = verbose
        self.json_output = json_output
        self.stream = stream or sys.stderr

        if self.json_output or not rich_output:
            self.console = None
        else:
            self.console = ThreadSafeConsole(console or Console(stderr=True))

    def setup_logging(self, logger: logging.Logger) -> logging.Handler:
        """Attach a Rich (or plain) handler to ``logger`` and set its level from ``verbose``.

        Calling it twice does not add a second handler.
        """
        handler_type = RichHandler if self.console else logging.StreamHandler
        for existing in logger.handlers:
            if type(existing) is handler_type:
                return existing

        handler = self.create_log_handler()
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)
        return handler

    def create_log_handler(self) -> logging.Handler:
        """Build the console log handler matching this manager's output mode."""
        if self.console:
            return RichHandler(
                console=self.console.raw,
                show_time=True,
                show_path=self.verbose,
                rich_tracebacks=True,
            )
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler

    def render_execution_result(self, result: ExecutionResult, title: str = "Workflow") -> None:
        """Print the outcome of a run."""
        summary = result_summary(result)
        if self.json_output:
            self._print_json("result", summary)
            return

        if not self.console:
            status = "SUCCESS" if result.success else "FAILED"
            print(f"{title}: {status} ({result.execution_time_ms:.1f}ms)", file=self.stream)
            print(f"  Executed: {', '.join(result.executed_tasks) or '-'}", file=self.stream)
            print(f"  Skipped: {', '.join(result.skipped_tasks) or '-'}", file=self.stream)
            if result.failed_task:
                print(f"  Failed task: {result.failed_task}", file=self.stream)
                print(f"  Error: {summary['error']}", file=self.stream)
                print(f"  Rolled back: {'yes' if result.rollback_executed else 'no'}", file=self.stream)
            for item in summary["rollback_errors"]:
                print(f"  Rollback error in {item['task']}: {item['error']}", file=self.stream)
            return

        table = Table(title=f"{title} tasks")
        table.add_column("Task", style="cyan")
        table.add_column("Status", style="bold")
        for task_id in result.executed_tasks:
            table.add_row(task_id, "[green]executed[/green]")
        for task_id in result.skipped_tasks:
            table.add_row(task_id, "[yellow]skipped[/yellow]")
        if result.failed_task:
            table.add_row(result.failed_task, "[red]failed[/red]")
        self.console.print(table)

        if result.success:
            self.console.print(
                Panel(f"[bold]{title} completed in {result.execution_time_ms:.1f}ms[/bold]", style="green")
            )
            return

        lines = [f"[bold]{title} failed at {result.failed_task}[/bold]", summary["error"] or ""]
        if result.rollback_executed:
            lines.append("Rollback completed")
        for item in summary["rollback_errors"]:
            lines.append(f"Rollback error in {item['task']}: {item['error']}")
        self.console.print(Panel("\n".join(lines), style="red"))

    def render_graph_statistics(self, stats: GraphStatistics) -> None:
        """Print diagnostic statistics about a task graph."""
        rows = [
            ("Total tasks", str(stats.total_tasks)),
            ("Root tasks", ", ".join(stats.root_tasks) or "-"),
            ("Leaf tasks", ", ".join(stats.leaf_tasks) or "-"),
            ("Max depth", str(stats.max_depth)),
            ("Total edges", str(stats.total_edges)),
            ("Avg dependencies", f"{stats.avg_dependencies:.2f}"),
            ("Most dependencies", ", ".join(stats.max_fan_in_tasks) or "-"),
            ("Most dependents", ", ".join(stats.max_fan_out_tasks) or "-"),
        ]
        if self.json_output:
            self._print_json("graph_statistics", dict(rows))
        elif self.console:
            table = Table(title="Task Graph")
            table.add_column("Metric", style="cyan")
            table.add_column("Value", style="green")
            for name, value in rows:
                table.add_row(name, value)
            self.console.print(table)
        else:
            print("Task Graph:", file=self.stream)
            for name, value in rows:
                print(f"  {name}: {value}", file=self.stream)

    def print_error(self, message: str) -> None:
        if self.json_output:
            self._print_json("error", {"message": message})
        elif self.console:
            self.console.print(f"[red]ERROR: {message}[/red]")
        else:
            print(f"ERROR: {message}", file=self.stream)

    def _print_json(self, kind: str, payload: Dict[str, Any]) -> None:
        print(
            json.dumps({"timestamp": datetime.now().isoformat(), "type": kind, **payload}),
            file=self.stream,
        )
