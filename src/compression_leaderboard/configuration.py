import os
import re
from configparser import ConfigParser

DEFAULT_CONFIG_FILE = "config.ini"
CONFIG_ENV_VAR = "LEADERBOARD_CONFIG"

DEFAULTS = {
    "baseline": {
        "size_mb": 44.70,
        "latency_ms": 30.00,
        "accuracy_pct": 40.76,
    },
    "scoring": {
        "size_weight": 0.3,
        "latency_weight": 0.3,
        "accuracy_weight": 0.4,
    },
    "evaluation": {
        "batch_size": 1,
        "latency_samples": -1,
        "warmup_runs": 1,
        "dataset_range": "0 1",
        "images_to_take": -1,
        "random_seed": 42,
    },
    "leaderboard": {
        "path": "LEADERBOARD.md",
        "lock_timeout": 300,
    },
    "logging": {
        "level": "INFO",
        "file": "",
    },
}


class Configuration:
    def __init__(self, path: str = None) -> None:
        if path is None:
            path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)
        self.path = path
        self.config = ConfigParser()
        # A missing file leaves only the defaults
        self.config.read(path)

    @staticmethod
    def convert_to_types(input_string):
        if not isinstance(input_string, str):
            return input_string

        if input_string.lower() == "true":
            return True
        elif input_string.lower() == "false":
            return False

        int_pattern = re.compile(r"^[+-]?\d+$")
        float_pattern = re.compile(r"^[+-]?\d+(\.\d+)?$")

        if int_pattern.match(input_string):
            as_int = int(input_string)
            return as_int
        elif float_pattern.match(input_string):
            as_float = float(input_string)
            return as_float
        return input_string

    def getConfig(self, family: str, value: str) -> any:
        if self.config.has_option(family, value):
            v = self.config[family][value]
        else:
            v = DEFAULTS[family][value]
        return Configuration.convert_to_types(v)

    def get_float(self, family: str, value: str) -> float:
        return float(self.getConfig(family, value))

    def get_int(self, family: str, value: str) -> int:
        return int(self.getConfig(family, value))

    def get_range(self, family: str, value: str) -> list[float]:
        """
        Read a "min max" pair, ex: dataset_range = -1 1
        """
        raw = str(self.getConfig(family, value))
        parts = raw.replace(",", " ").split()
        if len(parts) != 2:
            raise ValueError(f"{family}.{value} must contain two numbers, got '{raw}'")
        return [float(p) for p in parts]
