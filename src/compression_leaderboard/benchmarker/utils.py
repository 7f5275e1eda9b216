import os

BYTES_PER_MB = 1024 * 1024


def get_model_size(path) -> int:
    # Returns on-disk size in bytes, directories (SavedModel) are summed up
    if os.path.isdir(path):
        total = 0
        for root_dir, _, files in os.walk(path):
            for file in files:
                total += os.path.getsize(os.path.join(root_dir, file))
        return total
    return os.path.getsize(path)


def get_model_size_mb(path) -> float:
    return get_model_size(path) / BYTES_PER_MB
