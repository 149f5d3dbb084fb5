"""Command line interface for bulk export and import jobs."""

import argparse
import logging
import sys
from typing import List, Optional

from .errors import BulkJobError, ValidationError
from .jobs.submitter import ExportPayload, load_variables_file
from .models.config import JobConfig
from .models.job import JobRun
from .orchestrator import BulkJobOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bulkjob",
        description="Bulk Job Client - Export and import platform data asynchronously"
    )
    parser.add_argument("--api-url", help="Platform base URL (default: $BULKJOB_API_URL)")
    parser.add_argument("--api-key", help="API key (default: $BULKJOB_API_KEY)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Export
    export_parser = subparsers.add_parser("export", help="Export data with a GraphQL query")
    query_group = export_parser.add_mutually_exclusive_group(required=True)
    query_group.add_argument("--query", help="GraphQL query")
    query_group.add_argument("--query-file", help="File containing the GraphQL query")
    variables_group = export_parser.add_mutually_exclusive_group()
    variables_group.add_argument("--variables", help="Query variables as a JSON string")
    variables_group.add_argument("--variables-file", help="File containing query variables")
    export_parser.add_argument("--object-type", help="Only download this object type")
    export_parser.add_argument("--wait", action="store_true", help="Wait for the job to complete")
    export_parser.add_argument("--download", action="store_true", help="Download results (implies --wait)")
    export_parser.add_argument("--output", help="Output file path")
    export_parser.add_argument("--timeout", type=float, help="Timeout in seconds (default: 300, max: 3600)")
    export_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Import
    import_parser = subparsers.add_parser("import", help="Import data from files")
    import_parser.add_argument(
        "--object-type", action="append", default=[],
        help="Object type of the matching --file (repeatable)"
    )
    import_parser.add_argument(
        "--file", action="append", default=[],
        help="Input file (repeatable, one per --object-type)"
    )
    import_parser.add_argument("--format", choices=["json", "csv", "jsonl"], help="Input file format")
    import_parser.add_argument("--export-job-id", help="Import files downloaded from this export job")
    import_parser.add_argument("--all-objects", action="store_true", help="Import every object of the export job")
    import_parser.add_argument("--dir", default=".", help="Directory with downloaded export files")
    import_parser.add_argument("--import-operation", help="Import operation (default: upsert)")
    import_parser.add_argument("--wait", action="store_true", help="Wait for the job to complete")
    import_parser.add_argument("--timeout", type=float, help="Timeout in seconds (default: 300, max: 3600)")
    import_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output; keeps staged files")

    # Download
    download_parser = subparsers.add_parser("download", help="Download results of an export job")
    download_parser.add_argument("job_id", help="Export job ID")
    download_parser.add_argument("--object-type", help="Only download this object type")
    download_parser.add_argument("--output", help="Output file path")
    download_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    config = JobConfig.from_env(
        base_url=args.api_url,
        api_key=args.api_key,
        import_operation=getattr(args, "import_operation", None),
        verbose=getattr(args, "verbose", False),
    )

    try:
        if args.command == "export":
            run = run_export(args, config)
        elif args.command == "import":
            run = run_import(args, config)
        else:
            run = run_download(args, config)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    except BulkJobError as e:
        logger.error(str(e))
        return 1

    print_summary(run)
    return 0


def run_export(args, config: JobConfig) -> JobRun:
    """Run an export from command line arguments."""
    if args.query_file:
        payload = ExportPayload.from_files(args.query_file, args.variables_file)
    else:
        payload = ExportPayload.from_strings(args.query, args.variables)
        if args.variables_file:
            payload.variables = load_variables_file(args.variables_file)

    orchestrator = BulkJobOrchestrator(config)
    return orchestrator.run_export(
        payload,
        object_type=args.object_type,
        wait=args.wait or args.download,
        download=args.download,
        output=args.output,
        timeout=args.timeout,
    )


def run_import(args, config: JobConfig) -> JobRun:
    """Run an import from command line arguments."""
    orchestrator = BulkJobOrchestrator(config)

    if args.export_job_id:
        if args.file:
            raise ValidationError("Use either --file or --export-job-id, not both")
        object_type = args.object_type[0] if args.object_type else None
        return orchestrator.import_from_export_job(
            args.export_job_id,
            object_type=object_type,
            all_objects=args.all_objects,
            directory=args.dir,
            wait=args.wait,
            timeout=args.timeout,
        )

    if not args.file:
        raise ValidationError("Specify --file with --object-type, or --export-job-id")
    if len(args.file) != len(args.object_type):
        raise ValidationError("Each --file needs a matching --object-type")

    return orchestrator.run_import(
        list(zip(args.file, args.object_type)),
        source_format=args.format,
        wait=args.wait,
        timeout=args.timeout,
    )


def run_download(args, config: JobConfig) -> JobRun:
    """Download the results of an existing export job."""
    orchestrator = BulkJobOrchestrator(config)
    return orchestrator.download_job(args.job_id, object_type=args.object_type, output=args.output)


def print_summary(run: JobRun) -> None:
    """Print a short summary of a finished run."""
    print("\n" + "=" * 60)
    print(f"{run.kind.value.upper()} {run.phase.value.upper()}")
    print("=" * 60)
    print(f"Job ID: {run.job_id}")
    if run.object_types:
        print(f"Objects: {', '.join(run.object_types)}")
    if run.outcome:
        for obj in run.outcome.objects:
            print(f"  {obj.describe()}")
    for path in run.downloaded_files:
        print(f"Downloaded: {path}")
    for warning in run.warnings:
        print(f"Warning: {warning}")
    for error in run.errors:
        label = f"{error['object']}: " if error.get("object") else ""
        print(f"Error: {label}{error['error']}")
    if run.duration_seconds:
        print(f"Duration: {run.duration_seconds:.2f} seconds")


if __name__ == "__main__":
    sys.exit(main())
