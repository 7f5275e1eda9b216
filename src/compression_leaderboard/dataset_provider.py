from typing import Iterator, Sequence, Tuple

import numpy as np


class DatasetProvider:
    """
    Source of held-out (image, label) pairs used to evaluate a submission.
    Images are float32 arrays of shape (height, width, channels)
    """

    def __len__(self) -> int:
        raise NotImplementedError

    def samples(self) -> Iterator[Tuple[np.ndarray, int]]:
        raise NotImplementedError


class ArrayDataset(DatasetProvider):
    def __init__(self, images: Sequence[np.ndarray], labels: Sequence[int]) -> None:
        if len(images) != len(labels):
            raise ValueError(f"{len(images)} images but {len(labels)} labels")
        self.images = images
        self.labels = labels

    def __len__(self) -> int:
        return len(self.labels)

    def samples(self) -> Iterator[Tuple[np.ndarray, int]]:
        for image, label in zip(self.images, self.labels):
            yield np.asarray(image, dtype=np.float32), int(label)
