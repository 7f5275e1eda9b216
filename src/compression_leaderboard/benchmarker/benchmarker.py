import logging
import math
import sys
from time import perf_counter
from typing import Iterator, List, Tuple

import numpy as np
from termcolor import colored

from compression_leaderboard.benchmarker.model_info import ModelInfo
from compression_leaderboard.benchmarker.result import Result
from compression_leaderboard.benchmarker.runners import ModelRunner
from compression_leaderboard.dataset_provider import DatasetProvider
from compression_leaderboard.errors import DatasetError, MetricError

logger = logging.getLogger(__name__)


class Benchmarker:
    """
    Measure average inference latency and top-1 accuracy of a model
    """

    class Callback:
        def progress_callback(
                self, acc: float, progress: float, took_time: float, model_name: str = ""
        ) -> None:
            pass

    class OfflineProgressBar(Callback):
        def progress_callback(
                self, acc: float, progress: float, took_time: float, model_name: str = ""
        ) -> None:
            current_accuracy = "{0:.2f}".format(acc)
            formatted_took_time = "{0:.2f}".format(took_time)
            print(
                f"\rBenchmarking: {colored(model_name, 'cyan')} - progress: {int(progress)}% "
                + f"- accuracy: {current_accuracy}% - speed: {formatted_took_time} ms",
                end="",
            )
            sys.stdout.flush()

    def __init__(
            self,
            batch_size: int = 1,
            warmup_runs: int = 1,
            latency_samples: int = -1,
    ) -> None:
        """
        :param int batch_size: images per inference call
        :param int warmup_runs: untimed inferences before measuring
        :param int latency_samples: images used for timing, -1 for the whole dataset
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.warmup_runs = warmup_runs
        self.latency_samples = latency_samples

    def __batches__(self, dataset: DatasetProvider) -> Iterator[Tuple[np.ndarray, List[int]]]:
        images, labels = [], []
        for image, label in dataset.samples():
            images.append(image)
            labels.append(label)
            if len(images) == self.batch_size:
                yield np.stack(images).astype(np.float32), labels
                images, labels = [], []
        if len(images) > 0:
            yield np.stack(images).astype(np.float32), labels

    @staticmethod
    def __predicted_classes__(output: np.ndarray, expected: int) -> np.ndarray:
        output = np.asarray(output)
        if output.shape[0] != expected:
            raise MetricError(f"Model returned {output.shape[0]} predictions for {expected} images")
        if not np.all(np.isfinite(output)):
            raise MetricError("Model returned non finite values")
        output = output.reshape(expected, -1)
        if output.shape[1] == 1:
            # Single sigmoid output
            return (output[:, 0] >= 0.5).astype(np.int64)
        return np.argmax(output, axis=1)

    def __run__(self, runner: ModelRunner, batch: np.ndarray) -> np.ndarray:
        try:
            return runner.predict(batch)
        except MetricError:
            raise
        except Exception as e:
            raise MetricError(f"Inference failed: {e}") from e

    def measure(
            self,
            runner: ModelRunner,
            model: ModelInfo,
            dataset: DatasetProvider,
            callback: Callback = None,
    ) -> Result:
        total = len(dataset)
        if total == 0:
            raise DatasetError("Validation dataset is empty")
        if callback is None:
            callback = Benchmarker.Callback()

        timed_limit = total if self.latency_samples < 0 else min(self.latency_samples, total)
        logger.info(f"Benchmarking {model.name} on {total} images, timing {timed_limit}")

        warmed_up = False
        seen = 0
        correct = 0
        timed_images = 0
        timed_ms = 0.0
        for batch, labels in self.__batches__(dataset):
            if not warmed_up:
                for _ in range(self.warmup_runs):
                    self.__run__(runner, batch[:1])
                warmed_up = True

            start = perf_counter()
            output = self.__run__(runner, batch)
            elapsed_ms = (perf_counter() - start) * 1000

            predictions = Benchmarker.__predicted_classes__(output, len(labels))
            correct += int(np.sum(predictions == np.asarray(labels)))

            if timed_images < timed_limit:
                timed_images += len(labels)
                timed_ms += elapsed_ms
            seen += len(labels)

            callback.progress_callback(
                100 * correct / seen,
                100 * seen / total,
                timed_ms / max(timed_images, 1),
                model.name,
            )

        if seen == 0:
            raise DatasetError("Validation dataset yielded no images")

        latency = timed_ms / timed_images
        if not math.isfinite(latency) or latency <= 0:
            raise MetricError(f"Measured latency {latency} is not valid")

        model.time = latency
        model.accuracy = 100 * correct / seen
        return Result(model, samples=seen)
