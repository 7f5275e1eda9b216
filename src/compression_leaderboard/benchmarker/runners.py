"""
Inference back-ends for the submitted artifacts.

Frameworks are imported when a runner is built, the leaderboard update job
only needs the scoring side of the package.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from compression_leaderboard.benchmarker.model_info import ModelInfo
from compression_leaderboard.errors import MetricError

logger = logging.getLogger(__name__)

DEFAULT_INPUT_SIZE = (224, 224)


class ModelRunner:
    """Run a loaded model on a batch of NHWC float32 images"""

    input_size: Optional[Tuple[int, int]] = None

    def predict(self, batch: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class TFLiteRunner(ModelRunner):
    def __init__(self, model_path: Path) -> None:
        import tensorflow as tf

        self.interpreter = tf.lite.Interpreter(model_path=str(model_path))
        self.interpreter.allocate_tensors()
        self.input_details = self.interpreter.get_input_details()[0]
        self.output_details = self.interpreter.get_output_details()[0]
        shape = self.input_details["shape"]
        self.input_size = (int(shape[1]), int(shape[2]))

    def __quantize_input__(self, img: np.ndarray) -> np.ndarray:
        dtype = self.input_details["dtype"]
        if dtype == np.float32:
            return img.astype(np.float32)
        scale, zero_point = self.input_details["quantization"]
        if scale == 0:
            return img.astype(dtype)
        info = np.iinfo(dtype)
        quantized = np.round(img / scale + zero_point)
        return np.clip(quantized, info.min, info.max).astype(dtype)

    def __dequantize_output__(self, output: np.ndarray) -> np.ndarray:
        scale, zero_point = self.output_details["quantization"]
        if scale == 0:
            return output.astype(np.float32)
        return (output.astype(np.float32) - zero_point) * scale

    def predict(self, batch: np.ndarray) -> np.ndarray:
        input_index = self.input_details["index"]
        output_index = self.output_details["index"]
        outputs = []
        # TFLite models are converted with a batch of one
        for img in batch:
            img = np.expand_dims(self.__quantize_input__(img), axis=0)
            self.interpreter.set_tensor(input_index, img)
            self.interpreter.invoke()
            output = self.interpreter.get_tensor(output_index)
            outputs.append(self.__dequantize_output__(output)[0])
        return np.stack(outputs)


class KerasRunner(ModelRunner):
    def __init__(self, model_path: Path) -> None:
        import tensorflow as tf

        self.model = tf.keras.models.load_model(model_path, compile=False)
        shape = self.model.input_shape
        if shape[1] is not None and shape[2] is not None:
            self.input_size = (int(shape[1]), int(shape[2]))

    def predict(self, batch: np.ndarray) -> np.ndarray:
        return np.asarray(self.model(batch, training=False))


class SavedModelRunner(ModelRunner):
    def __init__(self, model_path: Path) -> None:
        import tensorflow as tf

        self.tf = tf
        loaded = tf.saved_model.load(str(model_path))
        self.loaded = loaded
        self.fn = loaded.signatures["serving_default"]
        input_specs = self.fn.structured_input_signature[1]
        self.input_name, spec = next(iter(input_specs.items()))
        self.input_dtype = spec.dtype
        if spec.shape.rank == 4 and spec.shape[1] is not None and spec.shape[2] is not None:
            self.input_size = (int(spec.shape[1]), int(spec.shape[2]))

    def predict(self, batch: np.ndarray) -> np.ndarray:
        tensor = self.tf.constant(batch, dtype=self.input_dtype)
        outputs = self.fn(**{self.input_name: tensor})
        return np.asarray(next(iter(outputs.values())))


class FrozenGraphRunner(ModelRunner):
    """
    Frozen GraphDef (.pb), tensors are taken from metadata.json
    ("input_tensor", "output_tensor") or guessed from the graph
    """

    def __init__(self, model_path: Path, metadata: dict) -> None:
        import tensorflow as tf

        graph_def = tf.compat.v1.GraphDef()
        with open(model_path, "rb") as f:
            graph_def.ParseFromString(f.read())

        input_name = metadata.get("input_tensor")
        output_name = metadata.get("output_tensor")
        if input_name is None:
            placeholders = [n.name for n in graph_def.node if n.op == "Placeholder"]
            if len(placeholders) != 1:
                raise ValueError("cannot detect the input tensor, set input_tensor in metadata.json")
            input_name = f"{placeholders[0]}:0"
        if output_name is None:
            output_name = f"{graph_def.node[-1].name}:0"

        def _import():
            tf.compat.v1.import_graph_def(graph_def, name="")

        wrapped = tf.compat.v1.wrap_function(_import, [])
        self.fn = wrapped.prune(
            tf.nest.map_structure(wrapped.graph.as_graph_element, input_name),
            tf.nest.map_structure(wrapped.graph.as_graph_element, output_name),
        )
        self.tf = tf
        shape = wrapped.graph.as_graph_element(input_name).shape
        if shape.rank == 4 and shape[1] is not None and shape[2] is not None:
            self.input_size = (int(shape[1]), int(shape[2]))

    def predict(self, batch: np.ndarray) -> np.ndarray:
        return np.asarray(self.fn(self.tf.constant(batch, dtype=self.tf.float32)))


class TorchScriptRunner(ModelRunner):
    def __init__(self, model_path: Path, metadata: dict) -> None:
        import torch

        self.torch = torch
        self.model = torch.jit.load(str(model_path), map_location="cpu")
        self.model.eval()
        size = metadata.get("input_size", DEFAULT_INPUT_SIZE)
        self.input_size = (int(size[0]), int(size[1]))

    def predict(self, batch: np.ndarray) -> np.ndarray:
        # NHWC -> NCHW
        tensor = self.torch.from_numpy(np.ascontiguousarray(batch.transpose(0, 3, 1, 2)))
        with self.torch.no_grad():
            output = self.model(tensor)
        return output.cpu().numpy()


def load_runner(model: ModelInfo, metadata: dict = None) -> ModelRunner:
    """
    Build the runner matching the artifact extension
    :param ModelInfo model: discovered artifact
    :param dict metadata: submission metadata, may override the input size
    """
    metadata = metadata or {}
    path = model.get_model_path()
    extension = model.extension
    logger.info(f"Loading {path} as .{extension} model")
    try:
        if extension == "tflite":
            runner = TFLiteRunner(path)
        elif extension in ("h5", "keras"):
            runner = KerasRunner(path)
        elif extension == "saved_model":
            runner = SavedModelRunner(path)
        elif extension == "pb":
            if path.is_dir():
                runner = SavedModelRunner(path)
            else:
                runner = FrozenGraphRunner(path, metadata)
        elif extension in ("pt", "pth"):
            runner = TorchScriptRunner(path, metadata)
        else:
            raise ValueError(f"unsupported model format .{extension}")
    except Exception as e:
        raise MetricError(f"Cannot load model {path}: {e}") from e

    if "input_size" in metadata:
        size = metadata["input_size"]
        runner.input_size = (int(size[0]), int(size[1]))
    if runner.input_size is None:
        logger.warning(f"Input size not detectable, using {DEFAULT_INPUT_SIZE}")
        runner.input_size = DEFAULT_INPUT_SIZE
    return runner
