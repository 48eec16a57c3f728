# src/kubebind/cli/formatter.py
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from kubebind.export.exporter import flatten_binding
from kubebind.resolution.definitions import Definition

# Initialize the Rich console for high-quality terminal output
console = Console()


class BindingFormatter:
    """
    Renders resolution results, definition listings and the binding
    Secret manifest.
    """

    def __init__(self, show_values: bool = False):
        self.show_values = show_values

    def _mask(self, value: Any) -> str:
        if self.show_values:
            return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)
        return "••••••"

    def print_binding_table(self, data: Dict[str, Any], source_name: str):
        table = Table(title=f"Binding data for {source_name}", show_header=True, header_style="bold magenta")
        table.add_column("Key", style="cyan")
        table.add_column("Value")

        flat = flatten_binding(data)
        for key in sorted(flat):
            table.add_row(key, self._mask(flat[key]))

        console.print(table)

    def print_definitions(self, definitions: List[Definition]):
        table = Table(title="Binding Definitions", show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Path")
        table.add_column("Output Name")

        for i, d in enumerate(definitions):
            table.add_row(str(i), d.type_tag, d.path or "-", d.output_name or "[dim]<flattened>[/dim]")

        console.print(table)

    def print_error(self, report: Dict[str, Any]):
        console.print(Panel(
            f"[bold red]{report.get('error_kind')}[/bold red]\n{report.get('error')}",
            title="Resolution Failed",
            border_style="red"
        ))

    def print_manifest(self, manifest_yaml: str):
        syntax = Syntax(manifest_yaml.rstrip(), "yaml", theme="monokai", line_numbers=False)
        console.print(Panel(syntax, title="Binding Secret", border_style="green"))
