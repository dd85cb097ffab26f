"""CLI entrypoints for archdoc commands."""

from __future__ import annotations

import argparse
from pathlib import Path

from .analyzers.graph import ResolutionError
from .assembly import AssemblyError
from .config import ConfigError
from .logging import configure_logging
from .orchestrator import GenerationCancelled, NoParseableFilesError, Orchestrator
from .validators import RequirementsError, ValidationError


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to an .archdoc.yml file (defaults to the one in the source root).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archdoc",
        description="Generate architecture documentation and diagrams for TypeScript/React projects.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Analyze a source tree and write Markdown documents and Mermaid diagrams.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_config_option(generate_parser)
    generate_parser.add_argument(
        "--root",
        default=".",
        help="Path to the source root (defaults to current directory).",
    )
    generate_parser.add_argument(
        "--output",
        default=None,
        help="Output directory (defaults to <root>/docs/generated or output_dir from config).",
    )
    generate_parser.add_argument(
        "--log-file",
        default=None,
        help="Also write debug logs to this file.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check documentation links, expected documents and requirement coverage.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    _add_config_option(validate_parser)
    validate_parser.add_argument(
        "--docs",
        default=None,
        help="Documentation directory to validate (defaults to the configured output directory).",
    )
    validate_parser.add_argument(
        "--requirements",
        default=None,
        help="Requirements file (YAML or Markdown); built-in requirements are used otherwise.",
    )
    validate_parser.add_argument(
        "--report",
        default=None,
        help="Where to write the JSON report (defaults to <docs>/validation-report.json).",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for archdoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = getattr(args, "log_file", None)
    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(log_file).expanduser() if log_file else None,
    )

    orchestrator = Orchestrator()

    if args.command == "generate":
        try:
            result = orchestrator.run_generate(
                args.root,
                output=args.output,
                config_path=args.config,
            )
        except ResolutionError as exc:
            parser.exit(1, f"archdoc generate wrote partial output: {exc}\n")
        except (ConfigError, NoParseableFilesError, GenerationCancelled, AssemblyError) as exc:
            parser.exit(1, f"archdoc generate failed: {exc}\n")
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        print(f"Documentation written to {_relativize(result.output_dir)}")
    elif args.command == "validate":
        try:
            report = orchestrator.run_validate(
                args.docs,
                requirements=args.requirements,
                report=args.report,
                config_path=args.config,
            )
        except ValidationError as exc:
            parser.exit(1, f"{exc}\n")
        except (ConfigError, RequirementsError) as exc:
            parser.exit(1, f"archdoc validate failed: {exc}\n")
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        summary = report.to_dict()["summary"]
        print(
            "Documentation is complete: "
            f"{summary['complete_requirements']} complete, "
            f"{summary['partial_requirements']} partial requirements; "
            f"{summary['anchor_warnings']} anchor warnings"
        )
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":  # pragma: no cover
    main()
