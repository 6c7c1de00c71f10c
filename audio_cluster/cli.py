from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .config import Settings, find_config
from .models import AnalysisError, AnalysisResult, AudioClusterError, OrganizeResult
from .service import ClusterService
from .storage import LocalStorageBackend

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ShortPathFormatter(logging.Formatter):
    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def _shorten(self, message: str) -> str:
        for root in self.roots:
            if not message:
                break
            message = message.replace(f"{root}/", "")
            message = message.replace(root, "")
        return message

    def format(self, record: logging.LogRecord) -> str:
        return self._shorten(super().format(record))


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def configure_logging(level_name: str, roots: list[Path]) -> WarningBufferHandler:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(warn_buffer)

    logging.getLogger("mutagen").setLevel(logging.WARNING)
    return warn_buffer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Group and organize audio takes")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--root", type=Path, help="Storage root (overrides library.root)")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    analyze_parser = subparsers.add_parser(
        "analyze", help="Fingerprint a folder and report similar-file clusters"
    )
    analyze_parser.add_argument("folder", nargs="?", default=None, help="Folder to analyze")
    analyze_parser.add_argument(
        "--files", nargs="+", default=None, help="Analyze these files instead of a folder"
    )
    analyze_parser.add_argument(
        "--json", action="store_true", help="Emit machine-readable JSON to stdout"
    )
    analyze_parser.add_argument(
        "--organize",
        action="store_true",
        help="Move every cluster found into its own folder",
    )
    analyze_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="With --organize, only report what would be moved",
    )

    organize_parser = subparsers.add_parser(
        "organize", help="Move the given files into a new cluster folder"
    )
    organize_parser.add_argument("files", nargs="+", help="Files belonging to the cluster")
    organize_parser.add_argument("--cluster-id", default="manual", help="Cluster identifier")
    organize_parser.add_argument("--name", default=None, help="Cluster name used for the folder title")
    organize_parser.add_argument(
        "--destination", default=None, help="Folder to create the cluster folder in"
    )
    organize_parser.add_argument(
        "--dry-run", action="store_true", help="Only report what would be moved"
    )
    organize_parser.add_argument(
        "--json", action="store_true", help="Emit machine-readable JSON to stdout"
    )
    return parser


def print_analysis(result: AnalysisResult) -> None:
    print(result.message)
    for idx, cluster in enumerate(result.clusters, start=1):
        print(
            f"\n[{idx}] {cluster.name} "
            f"({cluster.suggested_category.value}, confidence {cluster.confidence:.2f})"
        )
        for fp in cluster.files:
            print(f"    {fp.file_path}")
    stats = result.statistics
    if stats.threshold is not None:
        print(
            f"\n{stats.analyzed_files} analyzed, {stats.unclustered_files} unclustered, "
            f"threshold {stats.threshold:.2f}"
        )
    for error in result.errors:
        print(f" ! {error}")


def print_organize(result: OrganizeResult) -> None:
    print(result.message)
    for item in result.failed:
        print(f" ! {item.original_path}: {item.error}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config_path = find_config(args.config)
    settings = Settings.load(config_path) if config_path else Settings()
    if args.root:
        settings.library.root = args.root.expanduser().resolve()
    warn_buffer = configure_logging(args.log_level, [settings.library.root])

    service = ClusterService(settings, LocalStorageBackend(settings.library.root))
    try:
        match args.command:
            case "analyze":
                if not args.folder and not args.files:
                    parser.error("analyze needs a folder or --files")
                result = service.analyze(folder_path=args.folder, files=args.files)
                if args.json:
                    print(json.dumps(result.to_record(), indent=2))
                else:
                    print_analysis(result)
                if args.organize:
                    for cluster in result.clusters:
                        print_organize(service.organize(cluster, dry_run=args.dry_run))
            case "organize":
                outcome = service.organize_cluster(
                    args.cluster_id,
                    args.files,
                    args.name,
                    destination=args.destination,
                    dry_run=args.dry_run,
                )
                if args.json:
                    print(json.dumps(outcome.to_record(), indent=2))
                else:
                    print_organize(outcome)
            case _:
                parser.error("Unknown command")
    except AnalysisError as exc:
        print(f"Error: {exc}")
        for error in exc.errors:
            print(f" - {error}")
        return 1
    except AudioClusterError as exc:
        print(f"Error: {exc}")
        return 1
    finally:
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
