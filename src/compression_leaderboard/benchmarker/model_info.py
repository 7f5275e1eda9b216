import json
import os
from pathlib import Path

from compression_leaderboard.benchmarker import utils
from compression_leaderboard.errors import ArtifactError

MODEL_STEM = "model"
MODEL_EXTENSIONS = ("pt", "pth", "h5", "keras", "pb", "saved_model", "tflite")
METADATA_FILE = "metadata.json"


class ModelInfo:
    size: float = 0
    time: float = 0
    accuracy: float = 0

    def __init__(self, model_path, name: str = None) -> None:
        self.model_path = Path(model_path)
        self.name = name if name is not None else self.model_path.parent.name
        self.extension = self.model_path.suffix.lstrip(".").lower()
        self.size = utils.get_model_size_mb(self.model_path)

    def __str__(self):
        return f"{type(self).__name__} | {vars(self)}"

    def get_model_path(self) -> Path:
        return self.model_path


def find_model_artifact(submission_dir) -> Path:
    """
    Look for the single model.<ext> artifact of a submission
    :param submission_dir: folder of the submission, ex: submissions/<username>
    :return: path of the model file (or SavedModel folder)
    """
    submission_dir = Path(submission_dir)
    if not submission_dir.is_dir():
        raise ArtifactError(f"Submission directory {submission_dir} not found")

    candidates = []
    for entry in sorted(submission_dir.iterdir()):
        if entry.stem != MODEL_STEM:
            continue
        extension = entry.suffix.lstrip(".").lower()
        if extension in MODEL_EXTENSIONS:
            candidates.append(entry)

    if len(candidates) == 0:
        raise ArtifactError(
            f"Model file not found in {submission_dir}, supported formats: "
            + ", ".join(f".{e}" for e in MODEL_EXTENSIONS)
        )
    if len(candidates) > 1:
        names = ", ".join(c.name for c in candidates)
        raise ArtifactError(f"Ambiguous submission in {submission_dir}, found {names}")
    return candidates[0]


def read_metadata(submission_dir) -> dict:
    path = os.path.join(submission_dir, METADATA_FILE)
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            metadata = json.load(f)
    except json.JSONDecodeError as e:
        raise ArtifactError(f"Invalid {METADATA_FILE} format: {e}") from e
    if not isinstance(metadata, dict):
        raise ArtifactError(f"{METADATA_FILE} must contain a JSON object")
    return metadata


def notes_from_metadata(metadata: dict) -> str:
    for key in ("notes", "description"):
        value = metadata.get(key)
        if value:
            return str(value)
    return ""
