"""Rendering of command results as rich tables, JSON or YAML."""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormat(Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


# status -> (rich style, symbol) for table output
STATUS_MARKERS = {
    "success": ("green", "✓"),
    "warning": ("yellow", "⚠"),
    "error": ("red", "✗"),
}


class OutputFormatter:
    """Prints command results in the format chosen with --output."""

    def __init__(self, format_type: str = "table", console: Optional[Console] = None):
        self.console = console or Console()
        try:
            self.format = OutputFormat(format_type.lower())
        except ValueError:
            self.format = OutputFormat.TABLE

    @property
    def is_structured(self) -> bool:
        """True for machine-readable formats."""
        return self.format is not OutputFormat.TABLE

    def print_detail(self, item: Dict[str, Any], title: Optional[str] = None):
        """
        Print one record.

        Args:
            item: Field name to value
            title: Heading shown above table output
        """
        if self.is_structured:
            self._dump(item)
            return

        if title:
            self.console.print(f"[bold]{title}[/bold]\n")

        width = max((len(key) for key in item), default=0)
        for key, value in item.items():
            label = key.replace("_", " ").capitalize()
            self.console.print(f"[cyan]{label:<{width}}[/cyan]  {self._format_value(value)}")

    def print_table(self, rows: List[Dict[str, Any]], columns: List[str], title: Optional[str] = None):
        """Print several records, one per row."""
        if self.is_structured:
            self._dump(rows)
            return

        table = Table(title=title)
        for column in columns:
            table.add_column(column.replace("_", " ").title(), style="cyan" if column == columns[0] else None)
        for row in rows:
            table.add_row(*(self._format_value(row.get(column)) for column in columns))
        self.console.print(table)

    def print_success(self, message: str):
        self.print_status("success", message)

    def print_warning(self, message: str):
        self.print_status("warning", message)

    def print_error(self, message: str):
        self.print_status("error", message)

    def print_status(self, status: str, message: str):
        if self.is_structured:
            self._dump({"status": status, "message": message})
            return

        style, symbol = STATUS_MARKERS[status]
        self.console.print(f"[{style}]{symbol}[/{style}] {message}", highlight=False)

    def _dump(self, data: Any):
        # Round-trip through JSON so paths and enums become plain strings
        plain = json.loads(json.dumps(data, default=str))
        if self.format is OutputFormat.JSON:
            self.console.print_json(data=plain)
        else:
            self.console.print(
                yaml.safe_dump(plain, default_flow_style=False, sort_keys=False).rstrip(),
                markup=False,
                highlight=False,
            )

    @staticmethod
    def _format_value(value: Any) -> str:
        if value is None:
            return "[dim]-[/dim]"
        if isinstance(value, bool):
            return "[green]yes[/green]" if value else "[red]no[/red]"
        if isinstance(value, (list, dict)):
            return escape(json.dumps(value, default=str))
        return escape(str(value))
