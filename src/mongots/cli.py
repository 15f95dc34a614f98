"""
Command-line interface for mongots.
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console()


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def open_source(config):
    """Build the document source described by ``config``."""
    if config.data_dir is not None:
        from mongots.sources import JsonDocumentSource
        return JsonDocumentSource(config.data_dir)

    from mongots.sources import MongoDocumentSource
    return MongoDocumentSource(config.uri, config.database)


def print_report(result):
    table = Table(title="Inferred Collections")
    table.add_column("Collection", style="cyan")
    table.add_column("Fields", style="magenta", justify="right")
    table.add_column("Documents", style="green", justify="right")
    table.add_column("Skipped", style="yellow", justify="right")
    table.add_column("Status", style="white")

    for report in result.reports:
        fields = result.schema.get(report.name)
        status = "[green]ok[/green]" if report.ok else f"[red]{report.status}[/red]"
        table.add_row(
            report.name,
            str(len(fields)) if fields is not None else "-",
            f"{report.documents:,}",
            f"{report.skipped:,}",
            status,
        )

    console.print(table)


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="mongots",
        description="mongots - Generate TypeScript classes from the documents of MongoDB collections",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    generate_parser = subparsers.add_parser("generate", help="Infer schemas and emit TypeScript classes")
    generate_parser.add_argument(
        "config_file",
        nargs="?",
        default="./config.json",
        help="Config JSON file (default: ./config.json)",
    )
    generate_parser.add_argument(
        "-o", "--output",
        help="Directory for the generated .ts files (default: log them)",
    )
    generate_parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar per collection",
    )

    # Collections command
    collections_parser = subparsers.add_parser("collections", help="List the collections that would be processed")
    collections_parser.add_argument(
        "config_file",
        nargs="?",
        default="./config.json",
        help="Config JSON file (default: ./config.json)",
    )

    args = parser.parse_args(argv)

    if args.version:
        from mongots import __version__
        console.print(f"mongots version {__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.verbose)

    # Import here to avoid slow startup for --help
    from pymongo.errors import PyMongoError

    from mongots import Config, infer_database, render, write_declarations
    from mongots.errors import ConfigError

    try:
        config = Config.load(args.config_file)

        with open_source(config) as source:
            if args.command == "generate":
                result = infer_database(source, config, show_progress=args.progress)
                write_declarations(render(result.schema), args.output)
                print_report(result)
                if result.skipped_documents:
                    console.print(f"[yellow]Skipped {result.skipped_documents:,} undecodable documents.[/yellow]")

            elif args.command == "collections":
                available = source.list_collections() if config.lists_collections else []
                for name in config.select_collections(available):
                    console.print(name)

    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        return 1
    except PyMongoError as e:
        console.print(f"[bold red]Error when fetching collections: {e}[/bold red]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation has been canceled.[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        if args.verbose:
            console.print_exception()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
