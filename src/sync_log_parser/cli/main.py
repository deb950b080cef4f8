"""Main CLI entry point for the sync-log-parser command-line tool.

Loads harness log records from a JSON file (or a built-in scenario), reconstructs
the sync history, and prints the full result, the sync table, or the dashboard
metrics.
"""

import argparse
import csv
import io
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sync_log_parser import __version__
from sync_log_parser.api.parser import SyncLogParser, load_log_records
from sync_log_parser.shared.config import ConfigError, ParserConfig
from sync_log_parser.shared.logging import get_logger
from sync_log_parser.shared.records import LogRecord
from sync_log_parser.shared.result import ParsedResult
from sync_log_parser.tools.scenarios import get_scenario, list_scenarios

PRESETS = {
    "default": ParserConfig.default,
    "lenient": ParserConfig.lenient,
}

SYNC_CSV_COLUMNS = [
    "sourceEntityId",
    "targetEntityId",
    "revisionId",
    "startSyncTime",
    "finishedSyncTime",
    "completed",
    "sourceXmlCaptured",
    "transformedXmlCaptured",
]


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self):
        self.parser_config = ParserConfig.default()
        self.output_format = "json"
        self.include_diagnostics = False

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        Recognised keys: ``parser_preset`` (default or lenient), ``parser`` (a full
        ParserConfig dictionary, applied after the preset), ``output_format`` and
        ``include_diagnostics``.
        """
        config = cls()
        if config_path.exists():
            try:
                with config_path.open(encoding="utf-8") as f:
                    data = json.load(f)

                preset = data.get("parser_preset")
                if preset in PRESETS:
                    config.parser_config = PRESETS[preset]()
                elif preset is not None:
                    print(f"Warning: Unknown parser preset: {preset}", file=sys.stderr)

                if "parser" in data:
                    base = config.parser_config.to_dict()
                    for section, values in data["parser"].items():
                        if isinstance(values, dict) and isinstance(base.get(section), dict):
                            base[section].update(values)
                        else:
                            base[section] = values
                    config.parser_config = ParserConfig.from_dict(base)

                config.output_format = data.get("output_format", config.output_format)
                config.include_diagnostics = data.get(
                    "include_diagnostics", config.include_diagnostics
                )

            except (OSError, ValueError, ConfigError) as e:
                print(f"Warning: Could not load config file: {e}", file=sys.stderr)

        return config


class LogProcessor:
    """Core log processing logic for CLI operations."""

    def __init__(self, config: CLIConfig):
        self.config = config
        self.parser = SyncLogParser(config.parser_config)
        self.logger = get_logger(__name__, None, "cli_processor")

    def load(self, input_path: Optional[Path], scenario: Optional[str]) -> List[LogRecord]:
        """Load records from a file, or generate a named scenario.

        Raises:
            OSError: If the input file cannot be read
            ValueError: If the input is invalid or the scenario is unknown
        """
        if scenario:
            return get_scenario(scenario)
        if input_path is None:
            raise ValueError("An input file or --scenario is required")
        return load_log_records(input_path)

    def process(self, records: List[LogRecord]) -> Optional[ParsedResult]:
        result = self.parser.parse(records)
        if result is None:
            self.logger.warning(
                "No testcase marker found", extra={"record_count": len(records)}
            )
        return result


def _add_common_arguments(subparser: argparse.ArgumentParser, formats: List[str]) -> None:
    subparser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="JSON array or JSON-lines file of harness log records"
    )
    subparser.add_argument(
        "--scenario", "-s",
        choices=list_scenarios(),
        help="Use a built-in log scenario instead of an input file"
    )
    subparser.add_argument(
        "--format", "-f",
        choices=formats,
        default=formats[0],
        help=f"Output format (default: {formats[0]})"
    )
    subparser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    subparser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path"
    )
    subparser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        help="Parser configuration preset"
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="sync-log-parser",
        description="Reconstruct entity synchronization history from integration test logs"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Print the full parse result")
    _add_common_arguments(parse_parser, ["json", "text"])
    parse_parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Include parser diagnostics and statistics in JSON output"
    )

    # Syncs command
    syncs_parser = subparsers.add_parser("syncs", help="Print the sync history table")
    _add_common_arguments(syncs_parser, ["json", "csv", "text"])

    # Metrics command
    metrics_parser = subparsers.add_parser("metrics", help="Print dashboard widget metrics")
    _add_common_arguments(metrics_parser, ["json", "text"])

    # Scenarios command
    scenarios_parser = subparsers.add_parser(
        "scenarios", help="List built-in scenarios or dump one as JSON log records"
    )
    scenarios_parser.add_argument(
        "name",
        nargs="?",
        help="Scenario to dump (omit to list the available scenarios)"
    )
    scenarios_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def format_parse_result(
    result: ParsedResult,
    format_type: str,
    include_diagnostics: bool = False
) -> str:
    """Format a full parse result for output."""
    if format_type == "text":
        context = result.entity_context
        details = result.entity_details
        lines = [
            f"Source: {context.source_system} {context.source_entity_type} "
            f"({context.source_project})",
            f"Target: {context.target_system} {context.target_entity_type} "
            f"({context.target_project})",
            f"Entity: {details.source_entity_id} -> {details.target_entity_id}, "
            f"created {details.entity_creation_time or '-'}",
            "-" * 60,
            format_metrics(result, "text"),
            "-" * 60,
            format_syncs(result, "text"),
        ]
        warnings = [d for d in result.diagnostics if d.severity.name in ("WARNING", "ERROR")]
        if warnings:
            lines.append("")
            for diagnostic in warnings[:5]:
                lines.append(f"   Warning: {diagnostic.message}")
            if len(warnings) > 5:
                lines.append(f"   ... and {len(warnings) - 5} more warnings")
        return "\n".join(lines)

    return json.dumps(result.to_dict(include_diagnostics=include_diagnostics), indent=2)


def format_syncs(result: ParsedResult, format_type: str) -> str:
    """Format the sync history for output."""
    syncs = result.sync_status_list

    if format_type == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(SYNC_CSV_COLUMNS)
        for sync in syncs:
            writer.writerow([
                sync.source_entity_id,
                sync.target_entity_id,
                sync.revision_id,
                sync.start_sync_time,
                sync.finished_sync_time,
                sync.completed,
                bool(sync.source_event_xml),
                bool(sync.transformed_event_xml),
            ])
        return buffer.getvalue().rstrip("\n")

    elif format_type == "text":
        if not syncs:
            return "No syncs found."

        lines = []
        for sync in syncs:
            status = "✓" if sync.completed else "✗"
            finished = sync.finished_sync_time if sync.completed else "never finished"
            lines.append(
                f"{status} {sync.source_entity_id} rev {sync.revision_id} "
                f"-> {sync.target_entity_id}"
            )
            lines.append(f"   Started: {sync.start_sync_time}, Finished: {finished}")
            lines.append(
                f"   Source XML: {len(sync.source_event_xml)} chars, "
                f"Transformed XML: {len(sync.transformed_event_xml)} chars"
            )
        return "\n".join(lines)

    return json.dumps([sync.to_dict() for sync in syncs], indent=2)


def format_metrics(result: ParsedResult, format_type: str) -> str:
    """Format the dashboard widget metrics for output."""
    metrics = result.widget_metrics

    if format_type == "text":
        return "\n".join([
            f"Total syncs: {metrics.total_syncs}",
            f"Successful: {metrics.successful_syncs}, Failed: {metrics.failed_syncs} "
            f"({metrics.success_rate:.1%} success)",
            f"Error log lines: {metrics.error_level_logs_count}",
            f"Execution time: {metrics.execution_time_ms} ms",
        ])

    return json.dumps(metrics.to_dict(), indent=2)


def _write_output(formatted_output: str, output: Optional[Path]) -> int:
    if output:
        try:
            output.write_text(formatted_output + "\n", encoding="utf-8")
            print(f"Results written to {output}", file=sys.stderr)
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1
    else:
        print(formatted_output)
    return 0


def _build_config(args: argparse.Namespace) -> CLIConfig:
    config = CLIConfig()
    if args.config and args.config.exists():
        config = CLIConfig.from_file(args.config)

    # Apply command-line overrides
    if args.preset:
        config.parser_config = PRESETS[args.preset]()

    config.output_format = args.format
    if getattr(args, "diagnostics", False):
        config.include_diagnostics = True
    return config


def _run_parse(args: argparse.Namespace) -> Tuple[CLIConfig, Optional[ParsedResult]]:
    config = _build_config(args)
    processor = LogProcessor(config)
    try:
        records = processor.load(args.input, args.scenario)
    except (OSError, ValueError) as e:
        print(f"Error loading logs: {e}", file=sys.stderr)
        return config, None

    result = processor.process(records)
    if result is None:
        print("No testcase marker found in the logs", file=sys.stderr)
    return config, result


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    config, result = _run_parse(args)
    if result is None:
        return 1
    return _write_output(
        format_parse_result(result, args.format, config.include_diagnostics), args.output
    )


def cmd_syncs(args: argparse.Namespace) -> int:
    """Handle syncs command."""
    _, result = _run_parse(args)
    if result is None:
        return 1
    return _write_output(format_syncs(result, args.format), args.output)


def cmd_metrics(args: argparse.Namespace) -> int:
    """Handle metrics command."""
    _, result = _run_parse(args)
    if result is None:
        return 1
    return _write_output(format_metrics(result, args.format), args.output)


def cmd_scenarios(args: argparse.Namespace) -> int:
    """Handle scenarios command."""
    if not args.name:
        return _write_output("\n".join(list_scenarios()), args.output)

    try:
        scenario = get_scenario(args.name)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    records: List[Dict[str, Any]] = [record.to_dict() for record in scenario]
    return _write_output(json.dumps(records, indent=2), args.output)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        import logging
        logging.basicConfig(level=logging.ERROR)

    # Route to appropriate command handler
    try:
        if args.command == "parse":
            return cmd_parse(args)
        elif args.command == "syncs":
            return cmd_syncs(args)
        elif args.command == "metrics":
            return cmd_metrics(args)
        elif args.command == "scenarios":
            return cmd_scenarios(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
