import os
import sys
import types

import numpy as np
import pytest

tf = pytest.importorskip("tensorflow")

from compression_leaderboard.benchmarker.benchmarker import Benchmarker  # noqa: E402
from compression_leaderboard.benchmarker.model_info import ModelInfo  # noqa: E402
from compression_leaderboard.benchmarker.runners import KerasRunner, load_runner  # noqa: E402
from compression_leaderboard.dataset_manager import DatasetManager, KaggleDatasetManager  # noqa: E402
from compression_leaderboard.errors import DatasetError, MetricError  # noqa: E402
from compression_leaderboard.evaluator import evaluate, tf_dataset_factory  # noqa: E402


def write_images(root, classes=("0", "1"), per_class=3, size=8, wrapper=None):
    if wrapper is not None:
        root = os.path.join(root, wrapper)
    for index, class_name in enumerate(classes):
        folder = os.path.join(root, class_name)
        os.makedirs(folder)
        for i in range(per_class):
            value = 255 if index % 2 else 0
            image = np.full((size, size, 3), value, dtype=np.uint8)
            tf.io.write_file(os.path.join(folder, f"{i}.png"), tf.io.encode_png(image))


def stub_kaggle(monkeypatch, download):
    """
    Replace the kaggle client, download(slug, path) plays the role of the API call
    """
    calls = []

    class KaggleApi:
        def authenticate(self):
            calls.append("authenticate")

        def dataset_download_files(self, slug, path, unzip):
            calls.append((slug, path, unzip))
            download(slug, path)

    extended = types.ModuleType("kaggle.api.kaggle_api_extended")
    extended.KaggleApi = KaggleApi
    monkeypatch.setitem(sys.modules, "kaggle", types.ModuleType("kaggle"))
    monkeypatch.setitem(sys.modules, "kaggle.api", types.ModuleType("kaggle.api"))
    monkeypatch.setitem(sys.modules, "kaggle.api.kaggle_api_extended", extended)
    return calls


class TestClass:
    def test_labels_from_folders(self, tmp_path) -> None:
        write_images(str(tmp_path), classes=("cat", "dog"))
        dm = DatasetManager(tmp_path, img_size=(4, 4))
        assert len(dm) == 6
        assert dm.get_class_names() == ["cat", "dog"]
        samples = list(dm.samples())
        assert [label for _, label in samples] == [0, 0, 0, 1, 1, 1]
        assert samples[0][0].shape == (4, 4, 3)

    def test_numeric_folders_and_scale(self, tmp_path) -> None:
        write_images(str(tmp_path), classes=("0", "1"), wrapper="validation")
        dm = DatasetManager(tmp_path, img_size=(8, 8), scale=[-1, 1])
        images = {label: image for image, label in dm.samples()}
        assert np.allclose(images[0], -1.0)
        assert np.allclose(images[1], 1.0)

    def test_images_to_take(self, tmp_path) -> None:
        write_images(str(tmp_path), per_class=5)
        first = DatasetManager(tmp_path, img_size=(8, 8), images_to_take=4, random_seed=1)
        second = DatasetManager(tmp_path, img_size=(8, 8), images_to_take=4, random_seed=1)
        assert len(first) == 4
        assert [label for _, label in first.samples()] == [label for _, label in second.samples()]

    def test_missing_folder(self, tmp_path) -> None:
        with pytest.raises(DatasetError):
            len(DatasetManager(tmp_path / "missing", img_size=(8, 8)))

    def test_corrupted_image(self, tmp_path) -> None:
        write_images(str(tmp_path), per_class=1)
        with open(os.path.join(tmp_path, "0", "broken.png"), "wb") as f:
            f.write(b"not an image")
        with pytest.raises(DatasetError):
            list(DatasetManager(tmp_path, img_size=(8, 8)).samples())

    @pytest.mark.skipif("not config.getoption('longrun')")
    def test_keras_submission(self, tmp_path) -> None:
        data_dir = tmp_path / "data"
        write_images(str(data_dir), per_class=4)
        submission = tmp_path / "alice"
        submission.mkdir()

        inputs = tf.keras.Input(shape=(8, 8, 3))
        x = tf.keras.layers.GlobalAveragePooling2D()(inputs)
        outputs = tf.keras.layers.Dense(2, activation="softmax")(x)
        model = tf.keras.Model(inputs, outputs)
        model.save(str(submission / "model.keras"))

        runner = load_runner(ModelInfo(submission / "model.keras"))
        assert isinstance(runner, KerasRunner)
        assert runner.input_size == (8, 8)

        result = evaluate(
            submission,
            data_dir,
            44.70,
            30.00,
            40.76,
            dataset_factory=tf_dataset_factory(),
            benchmarker=Benchmarker(batch_size=2),
        )
        assert result.samples == 8
        assert 0 <= result.accuracy <= 100
        assert result.latency > 0

    def test_kaggle_download(self, tmp_path, monkeypatch) -> None:
        calls = stub_kaggle(monkeypatch, lambda slug, path: write_images(path, wrapper="validation"))
        dm = KaggleDatasetManager("owner/images", tmp_path / "data", img_size=(8, 8))
        assert len(dm) == 6
        assert calls == ["authenticate", ("owner/images", str(tmp_path / "data"), True)]

    def test_kaggle_skipped_when_data_present(self, tmp_path, monkeypatch) -> None:
        write_images(str(tmp_path), per_class=1)
        calls = stub_kaggle(monkeypatch, lambda slug, path: None)
        dm = KaggleDatasetManager("owner/images", tmp_path, img_size=(8, 8))
        assert len(dm) == 2
        assert calls == []

    def test_kaggle_download_failure(self, tmp_path, monkeypatch) -> None:
        def refuse(slug, path):
            raise RuntimeError("401 Unauthorized")

        stub_kaggle(monkeypatch, refuse)
        dm = KaggleDatasetManager("owner/images", tmp_path / "data", img_size=(8, 8))
        with pytest.raises(DatasetError):
            len(dm)

    def test_kaggle_empty_download(self, tmp_path, monkeypatch) -> None:
        stub_kaggle(monkeypatch, lambda slug, path: None)
        dm = KaggleDatasetManager("owner/images", tmp_path / "data", img_size=(8, 8))
        with pytest.raises(DatasetError):
            len(dm)

    def test_corrupted_tflite_model(self, tmp_path) -> None:
        path = tmp_path / "alice" / "model.tflite"
        path.parent.mkdir()
        path.write_bytes(b"not a flatbuffer")
        with pytest.raises(MetricError):
            load_runner(ModelInfo(path))
