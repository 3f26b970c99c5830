"""Output formatting utilities."""

from studio_metrics.formatters.console import format_results_for_console

__all__ = ["format_results_for_console"]
