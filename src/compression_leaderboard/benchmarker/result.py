from compression_leaderboard.benchmarker.model_info import ModelInfo


class Result:
    def __init__(self, model: ModelInfo, samples: int = 0) -> None:
        self.model = model
        self.name = model.name
        self.time = model.time
        self.accuracy = model.accuracy
        self.size = model.size
        self.samples = samples

    def __str__(self):
        return (
            f"NAME:{self.name}\tTIME:{self.time:.2f} ms\tSIZE:{self.size:.2f} MB\t"
            + f"ACC:{self.accuracy:.2f}%\tSAMPLES:{self.samples}"
        )
