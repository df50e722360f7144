from pathlib import Path

import pytest

from image_folder_classifier.dataset_builder import (
    label_from_filename,
    load_images_from_directory,
)

from .conftest import BLUE, RED, write_image


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("cat.jpg", "cat"),
        ("Dog_01.png", "Dog"),
        ("horse12.png", "horse"),
        ("zebra-crossing.jpg", "zebra"),
        ("7up.png", ""),
        ("_hidden.jpg", ""),
        ("élan.png", "élan"),
    ],
)
def test_label_from_filename_takes_leading_letters(filename, expected):
    assert label_from_filename(filename) == expected


def test_folder_name_is_the_label(tmp_path: Path):
    write_image(tmp_path / "cat" / "a.jpg", RED)
    write_image(tmp_path / "dog" / "nested" / "b.png", BLUE)

    records = list(load_images_from_directory(tmp_path))

    labels = {Path(r.image_path).name: r.label for r in records}
    assert labels == {"a.jpg": "cat", "b.png": "nested"}


def test_filename_prefix_is_the_label(tmp_path: Path):
    write_image(tmp_path / "mixed" / "cat1.jpg", RED)
    write_image(tmp_path / "mixed" / "dog.2.png", BLUE)
    write_image(tmp_path / "9lives.png", RED)

    records = list(
        load_images_from_directory(tmp_path, use_folder_name_as_label=False)
    )

    labels = {Path(r.image_path).name: r.label for r in records}
    assert labels == {"cat1.jpg": "cat", "dog.2.png": "dog", "9lives.png": ""}


def test_unsupported_extensions_are_skipped(tmp_path: Path):
    write_image(tmp_path / "cat" / "a.jpg", RED)
    write_image(tmp_path / "cat" / "b.png", RED)
    (tmp_path / "cat" / "c.gif").write_bytes(b"GIF89a")
    (tmp_path / "cat" / "d.jpeg").write_bytes(b"not really")
    (tmp_path / "cat" / "notes.txt").write_text("hello")
    write_image(tmp_path / "cat" / "E.JPG", RED)

    names = sorted(
        Path(r.image_path).name for r in load_images_from_directory(tmp_path)
    )

    assert names == ["a.jpg", "b.png"]


def test_case_insensitive_extensions_accept_upper_case(tmp_path: Path):
    write_image(tmp_path / "cat" / "a.jpg", RED)
    write_image(tmp_path / "cat" / "E.JPG", RED)
    write_image(tmp_path / "cat" / "F.Png", RED)
    (tmp_path / "cat" / "c.GIF").write_bytes(b"GIF89a")

    names = sorted(
        Path(r.image_path).name
        for r in load_images_from_directory(tmp_path, case_sensitive_extensions=False)
    )

    assert names == ["E.JPG", "F.Png", "a.jpg"]


def test_empty_and_missing_folders_yield_nothing(tmp_path: Path):
    assert list(load_images_from_directory(tmp_path)) == []
    assert list(load_images_from_directory(tmp_path / "missing")) == []


def test_enumeration_is_lazy_and_restartable(tmp_path: Path):
    write_image(tmp_path / "cat" / "a.jpg", RED)
    records = load_images_from_directory(tmp_path)

    assert not isinstance(records, list)
    first = list(records)
    write_image(tmp_path / "dog" / "b.png", BLUE)
    second = list(load_images_from_directory(tmp_path))

    assert len(first) == 1
    assert [r.label for r in second] == ["cat", "dog"]
