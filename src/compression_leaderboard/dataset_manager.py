import logging
import os
from random import Random
from typing import Iterator, List, Tuple

import numpy as np
import tensorflow as tf

from compression_leaderboard.dataset_provider import DatasetProvider
from compression_leaderboard.errors import DatasetError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".gif")


class DatasetManager(DatasetProvider):
    """
    Validation images laid out one folder per class: <dataset_path>/<class>/<image>
    """

    def __init__(
            self,
            dataset_path,
            img_size,
            scale=[0, 1],
            random_seed: int = 42,
            images_to_take=-1,
            channels: int = 3,
    ) -> None:
        self.dataset_path = str(dataset_path)
        self.scale = scale
        self.img_size = img_size
        self.channels = channels
        self.__random_seed__ = random_seed
        self.__images_to_take__ = images_to_take
        self.__files__ = None
        self.__class_names__ = None

    def prepare(self) -> None:
        if not os.path.isdir(self.dataset_path):
            raise DatasetError(f"Dataset directory {self.dataset_path} not found")

    @staticmethod
    def find_class_root(path: str) -> str:
        # Archives often wrap the class folders in one or more extra directories
        while True:
            entries = [e for e in os.listdir(path) if not e.startswith(".")]
            dirs = [e for e in entries if os.path.isdir(os.path.join(path, e))]
            if len(entries) == 1 and len(dirs) == 1:
                inner = os.path.join(path, dirs[0])
                inner_entries = os.listdir(inner)
                if any(os.path.isdir(os.path.join(inner, e)) for e in inner_entries):
                    path = inner
                    continue
            return path

    def get_class_names(self) -> List[str]:
        self.__generate_list_of_file__()
        return self.__class_names__

    def __label_of__(self, class_name: str) -> int:
        # Numeric folders are the label themselves, otherwise the sorted index
        if all(c.isdigit() for c in self.__class_names__):
            return int(class_name)
        return self.__class_names__.index(class_name)

    def __generate_list_of_file__(self) -> List[Tuple[str, int]]:
        if self.__files__ is not None:
            return self.__files__
        self.prepare()
        try:
            root = DatasetManager.find_class_root(self.dataset_path)
            self.__class_names__ = sorted(
                d for d in os.listdir(root)
                if os.path.isdir(os.path.join(root, d)) and not d.startswith(".")
            )
            files = []
            for class_name in self.__class_names__:
                class_folder = os.path.join(root, class_name)
                for image in sorted(os.listdir(class_folder)):
                    if image.lower().endswith(IMAGE_EXTENSIONS):
                        files.append(
                            (os.path.join(class_folder, image), self.__label_of__(class_name))
                        )
        except OSError as e:
            raise DatasetError(f"Cannot read dataset {self.dataset_path}: {e}") from e

        if self.__images_to_take__ > 0:
            Random(self.__random_seed__).shuffle(files)
            files = files[: self.__images_to_take__]
        logger.info(f"Dataset {self.dataset_path}: {len(files)} images, {len(self.__class_names__)} classes")
        self.__files__ = files
        return files

    def __len__(self) -> int:
        return len(self.__generate_list_of_file__())

    def generate_dataset(self) -> tf.data.Dataset:
        interval_min = self.scale[0]
        interval_max = self.scale[1]
        interval_range = interval_max - interval_min

        def gen_element(filename):
            file = tf.io.read_file(filename)
            image = tf.io.decode_image(file, channels=self.channels, expand_animations=False)
            image = tf.image.resize(image, self.img_size)
            image = interval_min + (interval_range * tf.cast(image, tf.float32) / 255.0)
            return image

        files = self.__generate_list_of_file__()
        paths = [f[0] for f in files]
        labels = [f[1] for f in files]
        ds = tf.data.Dataset.from_tensor_slices((paths, labels))
        return ds.map(lambda x, y: (gen_element(x), y))

    def samples(self) -> Iterator[Tuple[np.ndarray, int]]:
        if len(self) == 0:
            return
        iterator = self.generate_dataset().as_numpy_iterator()
        while True:
            try:
                image, label = next(iterator)
            except StopIteration:
                return
            except tf.errors.OpError as e:
                raise DatasetError(f"Cannot decode validation image: {e.message}") from e
            yield image, int(label)

    def get_path(self) -> str:
        return self.dataset_path


class KaggleDatasetManager(DatasetManager):
    """
    Download the validation set from Kaggle when dataset_path is empty.
    Credentials are read by the kaggle client (~/.kaggle/kaggle.json or
    KAGGLE_USERNAME / KAGGLE_KEY)
    """

    def __init__(self, dataset_slug: str, dataset_path, img_size, **kwargs) -> None:
        super().__init__(dataset_path, img_size, **kwargs)
        self.dataset_slug = dataset_slug

    def prepare(self) -> None:
        if os.path.isdir(self.dataset_path) and len(os.listdir(self.dataset_path)) > 0:
            return
        os.makedirs(self.dataset_path, exist_ok=True)
        logger.info(f"Downloading {self.dataset_slug} into {self.dataset_path}")
        try:
            from kaggle.api.kaggle_api_extended import KaggleApi

            api = KaggleApi()
            api.authenticate()
            api.dataset_download_files(self.dataset_slug, path=self.dataset_path, unzip=True)
        except Exception as e:
            raise DatasetError(f"Failed to download dataset {self.dataset_slug}: {e}") from e
        if len(os.listdir(self.dataset_path)) == 0:
            raise DatasetError("Dataset directory is empty after download")
