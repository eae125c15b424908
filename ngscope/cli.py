"""CLI entrypoints for ngscope commands."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import ConfigError, available_profiles
from .logging import configure_logging
from .orchestrator import AnalysisRun, Orchestrator
from .project import AnalysisCancelled
from .report import FORMATS, SEARCH_FORMATS, render_report, render_search
from .rules import BUILTIN_RULES, RULE_CATEGORIES, Severity
from .search import SearchEngine, SearchMode

# Per-analyzer commands and the rule categories they run.
ANALYZER_COMMANDS = {
    "component": ("component",),
    "deps": ("dependency",),
    "state": ("state",),
    "performance": ("performance",),
}


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Only log warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write debug-level logs to this file.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _add_report_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--profile",
        choices=available_profiles(),
        help="Rule profile to apply (overrides .ngscope.yml).",
    )
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=FORMATS,
        help="Report format; repeat for several. Defaults to the configured formats.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the report to this file instead of stdout.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of extraction worker threads.",
    )
    parser.add_argument(
        "--fail-on",
        choices=[severity.value for severity in Severity],
        default=Severity.ERROR.value,
        help="Exit with status 1 when issues at or above this severity exist.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ngscope",
        description="Analyze Angular/TypeScript projects: entities, import graph and rule checks.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Build the project model, run graph analysis and rules.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_path_argument(analyze_parser)
    _add_report_options(analyze_parser)

    analyzer_help = {
        "component": "Run the component rules only.",
        "deps": "Run the dependency rules only.",
        "state": "Run the state management rules only.",
        "performance": "Run the performance rules only.",
    }
    for command, help_text in analyzer_help.items():
        analyzer_parser = subparsers.add_parser(command, help=help_text)
        _add_verbose_option(analyzer_parser, suppress_default=True)
        _add_path_argument(analyzer_parser)
        _add_report_options(analyzer_parser)

    audit_parser = subparsers.add_parser(
        "audit",
        help="Run several rule categories at once (all of them by default).",
    )
    _add_verbose_option(audit_parser, suppress_default=True)
    _add_path_argument(audit_parser)
    _add_report_options(audit_parser)
    audit_parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        choices=RULE_CATEGORIES,
        help="Rule category to include; repeat for several.",
    )
    audit_parser.add_argument(
        "--min-severity",
        choices=[severity.value for severity in Severity],
        help="Drop issues below this severity from the report.",
    )

    graph_parser = subparsers.add_parser(
        "graph",
        help="Print the file dependency graph and its analysis.",
    )
    _add_verbose_option(graph_parser, suppress_default=True)
    _add_path_argument(graph_parser)
    graph_parser.add_argument(
        "--format",
        choices=FORMATS,
        default="table",
        help="Output format for the graph.",
    )
    graph_parser.add_argument(
        "--top",
        type=int,
        help="Number of entries in the most-imported / most-dependent rankings.",
    )

    search_parser = subparsers.add_parser(
        "search",
        help="Search sources and templates for a keyword.",
    )
    _add_verbose_option(search_parser, suppress_default=True)
    search_parser.add_argument("keyword", help="Text, pattern or name to look for.")
    _add_path_argument(search_parser)
    search_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SearchMode],
        default=SearchMode.TEXT.value,
        help="What to match: plain text, a regex, HTML class values, HTML text or function names.",
    )
    search_parser.add_argument(
        "--file-type",
        dest="file_types",
        action="append",
        help="File extension to search (e.g. ts, html); repeat for several.",
    )
    search_parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Match case exactly.",
    )
    search_parser.add_argument(
        "-C",
        "--context",
        type=int,
        default=0,
        help="Lines of context to show around each match.",
    )
    search_parser.add_argument(
        "--no-line-numbers",
        dest="line_numbers",
        action="store_false",
        help="Omit line and column numbers from text output.",
    )
    search_parser.add_argument(
        "--format",
        choices=SEARCH_FORMATS,
        default="text",
        help="Output format for matches.",
    )

    rules_parser = subparsers.add_parser("rules", help="List built-in rules.")
    _add_verbose_option(rules_parser, suppress_default=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for ngscope commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file)

    if args.command == "rules":
        for name, rule in BUILTIN_RULES.items():
            print(f"{name:<34} {rule.category:<12} {rule.default_severity.value:<8} {rule.description}")
        return 0

    if args.command == "serve":  # pragma: no cover - blocks on the server loop
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return 0

    orchestrator = Orchestrator()
    try:
        if args.command == "search":
            engine = SearchEngine(
                args.keyword,
                SearchMode(args.mode),
                case_sensitive=args.case_sensitive,
                context=args.context,
                file_types=args.file_types or (),
            )
            report = engine.search(args.path)
            sys.stdout.write(render_search(args.format, report, line_numbers=args.line_numbers))
            return 0
        if args.command == "graph":
            run = orchestrator.run(args.path, top_n=args.top, with_rules=False)
            _emit(run, [args.format], None)
            return 0

        if args.workers is not None and args.workers < 1:
            parser.exit(1, "--workers must be a positive integer\n")
        if args.command == "analyze":
            categories = None
        elif args.command == "audit":
            categories = args.categories or list(RULE_CATEGORIES)
        else:
            categories = list(ANALYZER_COMMANDS[args.command])
        run = orchestrator.run(args.path, profile=args.profile, workers=args.workers, categories=categories)
        if args.command == "audit" and args.min_severity:
            run = replace(run, issues=tuple(run.issues_at_least(Severity(args.min_severity))))
        formats = args.formats or run.config.output.formats
        _emit(run, formats, args.output or run.config.output.path)
        failing = run.issues_at_least(Severity(args.fail_on))
        return 1 if failing else 0
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    except AnalysisCancelled as exc:
        parser.exit(1, f"{exc}\n")
    except ValueError as exc:
        parser.exit(1, f"ngscope {args.command} failed: {exc}\n")


def _emit(run: AnalysisRun, formats: list[str], output: Path | None) -> None:
    rendered = "".join(render_report(fmt, run) for fmt in formats)
    if output is None:
        sys.stdout.write(rendered)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    print(f"Report written to {_relativize(output)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
