import json
from pathlib import Path

import pytest

from image_folder_classifier.dataset_builder import (
    LabelKeyMapper,
    load_image_bytes,
    load_images_from_directory,
    preprocess,
)
from image_folder_classifier.lib import ImageRecord

from .conftest import BLUE, RED, write_image


def test_distinct_labels_get_distinct_sorted_keys():
    records = [
        ImageRecord(image_path="x/dog/1.png", label="dog"),
        ImageRecord(image_path="x/cat/2.png", label="cat"),
        ImageRecord(image_path="x/dog/3.png", label="dog"),
        ImageRecord(image_path="x/bird/4.png", label="bird"),
    ]

    mapper = LabelKeyMapper.fit(records)

    assert mapper.label_mapping == {"bird": 0, "cat": 1, "dog": 2}
    assert len(mapper) == 3


def test_mapping_does_not_depend_on_record_order():
    records = [
        ImageRecord(image_path=f"{label}.png", label=label)
        for label in ["dog", "cat", "emu"]
    ]

    assert (
        LabelKeyMapper.fit(records).label_mapping
        == LabelKeyMapper.fit(reversed(records)).label_mapping
    )


def test_mapping_round_trips_through_json(tmp_path: Path):
    path = tmp_path / "nested" / "label_mapping.json"
    LabelKeyMapper({"cat": 0, "dog": 1}).save(path)

    assert json.loads(path.read_text()) == {"cat": 0, "dog": 1}
    assert LabelKeyMapper.load(path).label_mapping == {"cat": 0, "dog": 1}


def test_unknown_label_is_rejected():
    mapper = LabelKeyMapper({"cat": 0})

    with pytest.raises(ValueError, match="horse"):
        mapper.key_for("horse")


def test_preprocess_loads_bytes_and_keys(tmp_path: Path):
    cat = write_image(tmp_path / "cat" / "a.jpg", RED)
    dog = write_image(tmp_path / "dog" / "b.png", BLUE)
    records = list(load_images_from_directory(tmp_path))
    mapper = LabelKeyMapper.fit(records)

    items = preprocess(records, mapper, image_folder=tmp_path)

    by_name = {Path(item.image_path).name: item for item in items}
    assert by_name["a.jpg"].image == cat.read_bytes()
    assert by_name["b.png"].image == dog.read_bytes()
    assert by_name["a.jpg"].label_id != by_name["b.png"].label_id


def test_relative_paths_resolve_against_image_folder(tmp_path: Path):
    image = write_image(tmp_path / "cat" / "a.png", RED)

    assert load_image_bytes("cat/a.png", tmp_path) == image.read_bytes()


def test_unreadable_image_fails_the_stage(tmp_path: Path):
    write_image(tmp_path / "cat" / "a.png", RED)
    records = [
        ImageRecord(image_path=str(tmp_path / "cat" / "a.png"), label="cat"),
        ImageRecord(image_path=str(tmp_path / "cat" / "gone.png"), label="cat"),
    ]

    with pytest.raises(FileNotFoundError):
        preprocess(records, LabelKeyMapper({"cat": 0}), image_folder=tmp_path)


def test_image_bytes_are_not_serialised(tmp_path: Path):
    write_image(tmp_path / "cat" / "a.png", RED)
    records = list(load_images_from_directory(tmp_path))
    (item,) = preprocess(records, LabelKeyMapper.fit(records))

    dumped = json.loads(item.model_dump_json())

    assert dumped == {
        "image_path": str(tmp_path / "cat" / "a.png"),
        "label": "cat",
        "label_id": 0,
    }
