# src/kubepipe/cli/formatter.py
import difflib

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

# stdout carries the YAML stream; everything meant for humans goes to stderr
console = Console(stderr=True)


class PipeFormatter:
    """
    Terminal rendering for the CLI: errors, diffs and the run report.
    """

    def __init__(self, target: Console = None):
        self.console = target or console

    def print_error(self, error: Exception):
        """Renders a failed run. The message may embed the offending document."""
        self.console.print(Panel(
            Text(str(error)),
            title="[bold red]KubePipe run failed[/bold red]",
            subtitle="no output written",
            border_style="red"
        ))

    def display_diff(self, original_text: str, result_text: str, name: str = "stdin"):
        """
        Renders a colorized unified diff between the input stream and the
        transformed output.
        """
        diff = difflib.unified_diff(
            original_text.splitlines(),
            result_text.splitlines(),
            fromfile=f"input: {name}",
            tofile="output",
            lineterm=""
        )

        diff_list = list(diff)

        if not diff_list:
            self.console.print(f"[dim]ℹ No changes for {name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(syntax, title=f"Changes: {name}", border_style="green"))

    def print_report(self, context):
        """Summary table of a finished run."""
        table = Table(title="KubePipe Run Report", show_header=True, header_style="bold magenta")
        table.add_column("State")
        table.add_column("Stages")
        table.add_column("Read", justify="right")
        table.add_column("Written", justify="right")

        table.add_row(
            context.state.value,
            ", ".join(context.stage_names) or "-",
            str(context.documents_read),
            str(context.documents_written)
        )

        self.console.print(table)
