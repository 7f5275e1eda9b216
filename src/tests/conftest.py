import numpy as np
import pytest

from compression_leaderboard.benchmarker.runners import ModelRunner
from compression_leaderboard.dataset_provider import ArrayDataset
from compression_leaderboard.leaderboard.document import LeaderboardDocument
from compression_leaderboard.scoring import Baseline


def pytest_addoption(parser):
    parser.addoption(
        "--longrun",
        action="store_true",
        dest="longrun",
        default=False,
        help="enable longrundecorated tests",
    )

    parser.addoption(
        "--totake",
        type=int,
        required=False,
        default=-1,
        help="Images to take (default all)",
    )


class ClassIndexRunner(ModelRunner):
    """
    Fake model: predicts the class stored in the first pixel of the image.
    Images whose first pixel is negative are predicted as class 0
    """

    def __init__(self, num_classes=3, input_size=(4, 4)) -> None:
        self.num_classes = num_classes
        self.input_size = input_size
        self.calls = 0

    def predict(self, batch: np.ndarray) -> np.ndarray:
        self.calls += 1
        out = np.zeros((len(batch), self.num_classes), dtype=np.float32)
        for i, img in enumerate(batch):
            cls = int(img[0, 0, 0])
            out[i, max(cls, 0)] = 1.0
        return out


def make_dataset(labels, predicted=None, size=(4, 4)) -> ArrayDataset:
    """
    Images that ClassIndexRunner classifies as `predicted` (default: correctly)
    """
    if predicted is None:
        predicted = labels
    images = []
    for p in predicted:
        img = np.zeros((size[0], size[1], 3), dtype=np.float32)
        img[0, 0, 0] = p
        images.append(img)
    return ArrayDataset(images, labels)


@pytest.fixture
def baseline() -> Baseline:
    return Baseline(size_mb=44.70, latency_ms=30.00, accuracy_pct=40.76)


@pytest.fixture
def leaderboard_file(tmp_path, baseline):
    path = tmp_path / "LEADERBOARD.md"
    path.write_text(LeaderboardDocument.new(baseline).render(), encoding="utf-8")
    return path
