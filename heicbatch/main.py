"""Command-line entry point: heicbatch -i <inputs...> -o <output_dir> [--to format] [-q quality]."""
import argparse
import logging
import sys
import uuid
from pathlib import Path
from typing import Optional, Sequence, TextIO

from sqlalchemy.exc import SQLAlchemyError

from heicbatch import config, db
from heicbatch.batch import BatchResult, WorkerPool
from heicbatch.conversion.codec import CodecGateway
from heicbatch.conversion.errors import CodecUnavailableError
from heicbatch.conversion.finalize import OutputFinalizer
from heicbatch.conversion.models import TargetFormat
from heicbatch.fs import LocalFilesystem, build_tasks, discover_inputs
from heicbatch.progress import ProgressReporter

logger = logging.getLogger("heicbatch.main")

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_CODEC_UNAVAILABLE = 3
EXIT_OUTPUT_DIR = 4
EXIT_NO_INPUTS = 5

MODE_BANNERS = {
    TargetFormat.HEIC: "Mode: Image -> HEIC",
    TargetFormat.JPEG: "Mode: HEIC -> JPEG",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="heicbatch",
        description="Converts images to/from HEIC using all CPU cores.",
        epilog=(
            "Examples:\n"
            "  heicbatch -i ~/pics -o ~/heic_output\n"
            "  heicbatch -i ~/heic_pics -o ~/jpeg_output --to jpeg -q 90"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-i", "--input", nargs="+", required=True, type=Path, help="One or more input files or directories.")
    p.add_argument("-o", "--output", required=True, type=Path, help="The directory where converted files will be saved.")
    p.add_argument(
        "--to",
        type=str.lower,
        choices=config.TARGET_FORMAT_NAMES,
        default=config.DEFAULT_TARGET_FORMAT,
        help="Output format (default: %(default)s).",
    )
    p.add_argument("-q", "--quality", default=None, help="Quality of the output image (0-100). Default lets the encoder choose.")
    p.add_argument("--history", action="store_true", help="Record the run and per-file outcomes in the history database.")
    return p


def parse_quality(value: Optional[str]) -> Optional[float]:
    """Percent string -> quality in [0, 1]. Invalid or out-of-range values fall back to the encoder default."""
    if value is None:
        return None
    try:
        quality = float(value) / 100.0
    except ValueError:
        logger.warning("Invalid quality value %r. It must be a number. Using default quality.", value)
        return None
    if not 0.0 <= quality <= 1.0:
        logger.warning("Quality must be between 0 and 100, got %s. Using default quality.", value)
        return None
    return quality


def check_codec(codec) -> None:
    """Fail before any task is scheduled if the codec cannot encode HEIC."""
    if not codec.probe_availability():
        raise CodecUnavailableError(
            "HEIC/HEVC encoding is unavailable on this system. "
            "Install a pillow-heif build with libheif HEVC support and run again."
        )


def _start_history(run_id: str, pool: WorkerPool, output_dir: Path) -> bool:
    try:
        db.init_db()
        db.save_run(
            run_id,
            pool.target.value,
            len(pool.tasks),
            pool.worker_count,
            quality=pool.quality,
            output_dir=str(output_dir),
        )
        return True
    except SQLAlchemyError as e:
        logger.warning("History database unavailable, run will not be recorded: %s", e)
        return False


def _finish_history(run_id: str, pool: WorkerPool, result: BatchResult) -> None:
    try:
        db.record_outcomes(run_id, pool.tasks, result.outcomes)
        db.finish_run(run_id, result.succeeded, result.failed)
        logger.info("Run %s recorded in history", run_id)
    except SQLAlchemyError as e:
        logger.warning("Could not record run %s: %s", run_id, e)


def run(
    args: argparse.Namespace,
    codec: Optional[CodecGateway] = None,
    fs: Optional[LocalFilesystem] = None,
    stream: Optional[TextIO] = None,
) -> int:
    codec = codec or CodecGateway()
    fs = fs or LocalFilesystem()
    target = TargetFormat.from_name(args.to)
    quality = parse_quality(args.quality)

    try:
        check_codec(codec)
    except CodecUnavailableError as e:
        logger.error("%s", e)
        return EXIT_CODEC_UNAVAILABLE

    output_dir = Path(args.output)
    try:
        fs.create_directory(output_dir)
    except OSError as e:
        logger.error("Failed to create output directory %s: %s", output_dir, e)
        return EXIT_OUTPUT_DIR

    sources = discover_inputs(args.input, target)
    if not sources:
        logger.error("No supported image files found to process for the selected mode.")
        return EXIT_NO_INPUTS

    tasks = build_tasks(sources, output_dir, target)
    reporter = ProgressReporter(len(tasks), stream=stream)
    pool = WorkerPool(tasks, codec, OutputFinalizer(fs), target, quality=quality, reporter=reporter)

    run_id = uuid.uuid4().hex
    recording = args.history and _start_history(run_id, pool, output_dir)

    reporter.message(MODE_BANNERS[target])
    reporter.message(f"Found {len(tasks)} files. Starting conversion on {pool.worker_count} threads...")
    result = pool.run()
    reporter.message(f"Conversion finished. {result.succeeded} successful, {result.failed} failed.")
    for kind, count in sorted(result.failures_by_kind().items(), key=lambda kv: kv[0].value):
        reporter.message(f"  {kind.value}: {count}")
    if result.unprocessed:
        reporter.message(f"  not processed: {result.unprocessed}")

    if recording:
        _finish_history(run_id, pool, result)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
