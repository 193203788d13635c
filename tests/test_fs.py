"""Tests for input discovery and task construction."""
import logging
from pathlib import Path

from heicbatch.conversion.models import TargetFormat
from heicbatch.fs import LocalFilesystem, build_tasks, discover_inputs, is_supported_input


def test_supported_extensions_depend_on_target():
    assert is_supported_input(Path("a.JPG"), TargetFormat.HEIC)
    assert is_supported_input(Path("a.png"), TargetFormat.HEIC)
    assert not is_supported_input(Path("a.heic"), TargetFormat.HEIC)
    assert is_supported_input(Path("a.HEIC"), TargetFormat.JPEG)
    assert not is_supported_input(Path("a.png"), TargetFormat.JPEG)
    assert not is_supported_input(Path("noext"), TargetFormat.HEIC)


def test_discover_expands_directories_non_recursively(tmp_path):
    src = tmp_path / "src"
    (src / "nested").mkdir(parents=True)
    for name in ["b.png", "a.jpg", "notes.txt", "nested/deep.png"]:
        (src / name).write_bytes(b"x")

    found = discover_inputs([src], TargetFormat.HEIC)

    assert [p.name for p in found] == ["a.jpg", "b.png"]


def test_discover_skips_missing_and_unsupported_with_warning(tmp_path, caplog):
    good = tmp_path / "good.png"
    good.write_bytes(b"x")
    unsupported = tmp_path / "clip.mov"
    unsupported.write_bytes(b"x")

    with caplog.at_level(logging.WARNING, logger="heicbatch.fs"):
        found = discover_inputs([tmp_path / "missing.png", unsupported, good], TargetFormat.HEIC)

    assert found == [good]
    assert "not found" in caplog.text
    assert "Unsupported" in caplog.text


def test_build_tasks_assigns_indices_and_output_names(tmp_path):
    sources = [Path("/pics/one.jpg"), Path("/pics/two.png")]

    tasks = build_tasks(sources, tmp_path, TargetFormat.HEIC)

    assert [t.index for t in tasks] == [0, 1]
    assert tasks[0].final_output_path == tmp_path / "one.heic"
    assert tasks[1].final_output_path == tmp_path / "two.heic"
    assert build_tasks([Path("/p/x.heic")], tmp_path, TargetFormat.JPEG)[0].final_output_path == tmp_path / "x.jpg"


def test_target_format_parsing():
    assert TargetFormat.from_name("JPG") is TargetFormat.JPEG
    assert TargetFormat.from_name("jpeg") is TargetFormat.JPEG
    assert TargetFormat.from_name("heic") is TargetFormat.HEIC


def test_build_tasks_skips_sources_sharing_an_output_name(tmp_path, caplog):
    sources = [Path("/pics/photo.png"), Path("/pics/photo.jpg"), Path("/pics/PHOTO.bmp"), Path("/pics/other.png")]

    with caplog.at_level(logging.WARNING, logger="heicbatch.fs"):
        tasks = build_tasks(sources, tmp_path, TargetFormat.HEIC)

    assert [t.source_path.name for t in tasks] == ["photo.png", "other.png"]
    assert [t.index for t in tasks] == [0, 1]
    assert len({t.final_output_path for t in tasks}) == 2
    assert "already produced from photo.png" in caplog.text


def test_local_filesystem_operations(tmp_path):
    fs = LocalFilesystem()
    target = tmp_path / "a" / "b"

    assert not fs.exists(target)
    fs.create_directory(target)
    fs.create_directory(target)
    assert fs.exists(target)

    src = target / "x.tmp"
    src.write_bytes(b"data")
    fs.atomic_rename(src, target / "x")
    assert not fs.exists(src)
    assert fs.exists(target / "x")

    fs.delete_if_exists(target / "x")
    fs.delete_if_exists(target / "x")
    assert not fs.exists(target / "x")
