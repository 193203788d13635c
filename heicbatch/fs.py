"""Local filesystem collaborator: path operations and input discovery."""
import logging
import os
from pathlib import Path
from typing import Iterable

from heicbatch.config import STAGING_SUFFIX
from heicbatch.conversion.models import TargetFormat, Task

logger = logging.getLogger("heicbatch.fs")


class LocalFilesystem:
    """Fallible, blocking filesystem operations used by the conversion core."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def create_directory(self, path: Path) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def delete_if_exists(self, path: Path) -> None:
        Path(path).unlink(missing_ok=True)

    def atomic_rename(self, src: Path, dst: Path) -> None:
        os.replace(src, dst)

    @staticmethod
    def staging_path_for(final_path: Path) -> Path:
        final_path = Path(final_path)
        return final_path.with_name(final_path.name + STAGING_SUFFIX)


def is_supported_input(path: Path, target: TargetFormat) -> bool:
    return Path(path).suffix.lower() in target.input_extensions


def discover_inputs(inputs: Iterable[Path], target: TargetFormat) -> list[Path]:
    """Expand files and directories into the list of convertible source files.

    Directories are not searched recursively. Missing paths and unsupported
    files are skipped with a warning.
    """
    found: list[Path] = []
    for raw in inputs:
        path = Path(raw)
        if not path.exists():
            logger.warning("Input path not found, skipping: %s", path)
            continue
        if path.is_dir():
            for child in sorted(path.iterdir(), key=lambda p: p.name):
                if child.is_file() and is_supported_input(child, target):
                    found.append(child)
        elif is_supported_input(path, target):
            found.append(path)
        else:
            logger.warning("Unsupported input file for this mode, skipping: %s", path)
    return found


def build_tasks(sources: Iterable[Path], output_dir: Path, target: TargetFormat) -> tuple[Task, ...]:
    """Build the immutable task list. Sources whose output name is already taken
    by an earlier source (same stem, different extension) are skipped with a warning."""
    output_dir = Path(output_dir)
    tasks: list[Task] = []
    claimed: dict[str, Path] = {}
    for src in sources:
        final_path = output_dir / f"{src.stem}{target.extension}"
        # Compare case-insensitively so case-folding filesystems cannot collide either
        key = final_path.name.lower()
        if key in claimed:
            logger.warning(
                "Output %s already produced from %s, skipping: %s", final_path.name, claimed[key].name, src
            )
            continue
        claimed[key] = src
        tasks.append(Task(index=len(tasks), source_path=src, final_output_path=final_path))
    return tuple(tasks)
