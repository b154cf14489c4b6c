from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .compliance import STANDARDS, format_standard, get_standard
from .config import AppConfig, S3Settings, StreamingPolicy
from .controller import LoudnessAnalyzer, ReportUpload
from .measurement.base import LoudnessQCError
from .sources import is_url


def _stream_index(value: str) -> int:
    try:
        index = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid audio stream index: {value}") from None
    if index < 0:
        raise argparse.ArgumentTypeError(f"Invalid audio stream index: {value}")
    return index


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loudness-qc",
        description="Check audio and video files for EBU R128 loudness compliance.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: WARNING, or INFO with --verbose).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser(
        "analyze",
        help="Analyze a file for EBU R128 compliance.",
    )
    analyze.add_argument(
        "input",
        help="Path to an audio/video file, an s3:// URL or an HTTP(S) URL.",
    )
    analyze.add_argument("-o", "--output", type=Path, default=None, help="Write the JSON report here.")
    analyze.add_argument("-s", "--s3-bucket", default=None, help="S3 bucket to upload the report to.")
    analyze.add_argument("-k", "--s3-key", default=None, help="S3 key for the report (optional).")
    analyze.add_argument("-r", "--s3-region", default=None, help="S3 region (default: us-east-1).")
    analyze.add_argument("--s3-endpoint", default=None, help="S3 endpoint URL (MinIO etc.).")
    analyze.add_argument("--s3-access-key", default=None, help="S3 access key ID.")
    analyze.add_argument("--s3-secret-key", default=None, help="S3 secret access key.")
    analyze.add_argument("--s3-session-token", default=None, help="S3 session token.")
    analyze.add_argument(
        "--s3-force-path-style",
        action="store_true",
        default=None,
        help="Force path-style addressing for S3.",
    )
    analyze.add_argument(
        "-a",
        "--audio-stream",
        type=_stream_index,
        default=0,
        help="Audio stream index to analyze (default: 0).",
    )
    analyze.add_argument(
        "-t",
        "--type",
        default="broadcast",
        choices=sorted(STANDARDS),
        help="Content type whose limits apply (default: broadcast).",
    )
    analyze.add_argument(
        "--streaming",
        default=StreamingPolicy.AUTO.value,
        choices=[policy.value for policy in StreamingPolicy],
        help=(
            "How to read remote inputs: 'auto' streams formats known to stream well, "
            "'verify' probes the URL first, 'download' always fetches a local copy."
        ),
    )
    analyze.add_argument(
        "--staging-dir",
        type=Path,
        default=None,
        help="Directory for temporary downloads (default: $STAGING_DIR or the system temp dir).",
    )
    analyze.add_argument("-v", "--verbose", action="store_true", help="Show container and stream details.")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON.")
    analyze.add_argument(
        "--list-streams",
        action="store_true",
        help="List the available audio streams and exit.",
    )

    standards = subparsers.add_parser("standards", help="Show the EBU R128 limits.")
    standards.add_argument(
        "-t",
        "--type",
        default="both",
        choices=sorted(STANDARDS) + ["both"],
        help="Content type to show (default: both).",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_config(args: argparse.Namespace) -> AppConfig:
    s3 = S3Settings.from_env(
        region=args.s3_region,
        endpoint=args.s3_endpoint,
        access_key_id=args.s3_access_key,
        secret_access_key=args.s3_secret_key,
        session_token=args.s3_session_token,
        force_path_style=args.s3_force_path_style,
    )
    return AppConfig.from_env(
        staging_dir=args.staging_dir,
        streaming_policy=StreamingPolicy(args.streaming),
        s3=s3,
    )


def run_list_streams(analyzer: LoudnessAnalyzer, locator: str) -> int:
    streams = analyzer.list_streams(locator)
    if not streams:
        print("No audio streams found in file.")
        return 1
    print(f"Audio streams in {locator}:")
    for position, stream in enumerate(streams):
        print(f"  Stream {position}: {stream.describe()}")
    return 0


def run_analyze(args: argparse.Namespace) -> int:
    if not is_url(args.input) and not Path(args.input).exists():
        logging.error("Input file does not exist: %s", args.input)
        return 1

    analyzer = LoudnessAnalyzer(build_config(args))
    if args.list_streams:
        return run_list_streams(analyzer, args.input)

    upload = ReportUpload(bucket=args.s3_bucket, key=args.s3_key) if args.s3_bucket else None
    result = analyzer.analyze(
        args.input,
        standard=get_standard(args.type),
        audio_stream_index=args.audio_stream,
        inspect_streams=args.verbose,
        output_file=args.output,
        upload=upload,
    )
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.format_report())
    # Compliance status is reported in the output, not the exit code.
    return 0


def run_standards(args: argparse.Namespace) -> int:
    names: List[str] = sorted(STANDARDS) if args.type == "both" else [args.type]
    # broadcast first, as it is the default
    names.sort(key=lambda name: name != "broadcast")
    print("\n\n".join(format_standard(STANDARDS[name]) for name in names))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    verbose = getattr(args, "verbose", False)
    configure_logging(args.log_level or ("INFO" if verbose else "WARNING"))
    start_time = time.perf_counter()
    try:
        if args.command == "standards":
            return run_standards(args)
        return run_analyze(args)
    except (LoudnessQCError, OSError) as exc:
        logging.error("%s", exc)
        return 1
    finally:
        elapsed = time.perf_counter() - start_time
        logging.info("Total execution time: %.2f seconds", elapsed)


if __name__ == "__main__":
    sys.exit(main())
