import logging
from typing import Callable, Optional, Tuple

from pydantic import BaseModel, Field

from compression_leaderboard.benchmarker.benchmarker import Benchmarker
from compression_leaderboard.benchmarker.model_info import (
    ModelInfo,
    find_model_artifact,
    notes_from_metadata,
    read_metadata,
)
from compression_leaderboard.benchmarker.runners import ModelRunner, load_runner
from compression_leaderboard.configuration import Configuration
from compression_leaderboard.dataset_provider import DatasetProvider
from compression_leaderboard.errors import ArtifactError
from compression_leaderboard.result_sink import ResultSink
from compression_leaderboard.scoring import DEFAULT_WEIGHTS, Baseline, ScoreWeights, compute_scores

logger = logging.getLogger(__name__)

DatasetFactory = Callable[[str, Tuple[int, int]], DatasetProvider]
RunnerLoader = Callable[[ModelInfo, dict], ModelRunner]


class EvaluationResult(BaseModel):
    # Keys read back by the orchestration: model_size, latency, accuracy, total_score
    model_size: float = Field(description="Model size in MB")
    latency: float = Field(description="Average inference latency in ms")
    accuracy: float = Field(description="Top-1 accuracy in %")
    total_score: float = Field(description="Weighted score, rounded to 2 decimals")
    size_score: float
    latency_score: float
    accuracy_score: float
    model_file: str = ""
    samples: int = 0
    notes: str = ""


def tf_dataset_factory(configuration: Configuration = None, kaggle_dataset: str = None) -> DatasetFactory:
    """
    Factory of TensorFlow backed image-folder datasets, tensorflow is imported
    only when an evaluation actually runs
    """
    if configuration is None:
        configuration = Configuration()

    def factory(data_dir: str, img_size: Tuple[int, int]) -> DatasetProvider:
        from compression_leaderboard.dataset_manager import DatasetManager, KaggleDatasetManager

        kwargs = dict(
            scale=configuration.get_range("evaluation", "dataset_range"),
            random_seed=configuration.get_int("evaluation", "random_seed"),
            images_to_take=configuration.get_int("evaluation", "images_to_take"),
        )
        if kaggle_dataset:
            return KaggleDatasetManager(kaggle_dataset, data_dir, img_size, **kwargs)
        return DatasetManager(data_dir, img_size, **kwargs)

    return factory


def evaluate(
        submission_dir,
        data_dir,
        baseline_size: float,
        baseline_latency: float,
        baseline_accuracy: float,
        dataset_factory: Optional[DatasetFactory] = None,
        runner_loader: RunnerLoader = load_runner,
        benchmarker: Optional[Benchmarker] = None,
        sink: Optional[ResultSink] = None,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        callback: Optional[Benchmarker.Callback] = None,
) -> EvaluationResult:
    """
    Evaluate one submission against the baseline
    :param submission_dir: folder holding model.<ext> and metadata.json
    :param data_dir: held-out validation images, one folder per class
    :param float baseline_size: baseline model size in MB
    :param float baseline_latency: baseline latency in ms
    :param float baseline_accuracy: baseline accuracy in %
    :return: raw metrics, sub-scores and the composite score
    """
    baseline = Baseline(
        size_mb=baseline_size, latency_ms=baseline_latency, accuracy_pct=baseline_accuracy
    )
    if dataset_factory is None:
        dataset_factory = tf_dataset_factory()
    if benchmarker is None:
        benchmarker = Benchmarker()

    model_path = find_model_artifact(submission_dir)
    metadata = read_metadata(submission_dir)
    model = ModelInfo(model_path)
    if model.size <= 0:
        raise ArtifactError(f"Model artifact {model_path} is empty")
    logger.info(f"Evaluating {model_path} ({model.size:.2f} MB)")

    runner = runner_loader(model, metadata)
    dataset = dataset_factory(str(data_dir), runner.input_size)
    measured = benchmarker.measure(runner, model, dataset, callback)
    logger.info(f"MEASURED RESULTS {measured}")

    scores = compute_scores(measured.size, measured.time, measured.accuracy, baseline, weights)
    logger.info(f"SCORES {scores}")

    result = EvaluationResult(
        model_size=measured.size,
        latency=measured.time,
        accuracy=measured.accuracy,
        total_score=scores.total_score,
        size_score=scores.size_score,
        latency_score=scores.latency_score,
        accuracy_score=scores.accuracy_score,
        model_file=model_path.name,
        samples=measured.samples,
        notes=notes_from_metadata(metadata),
    )
    if sink is not None:
        sink.write(result)
    return result
