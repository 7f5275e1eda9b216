import logging

LOG_FORMAT = "%(levelname)s: %(asctime)s %(message)s"
DATE_FORMAT = "%m/%d/%Y %I:%M:%S %p"


def setup_logger(logger_name, log_file=None, level=logging.INFO):
    log_setup = logging.getLogger(logger_name)
    log_setup.setLevel(level)
    if log_setup.handlers:
        return log_setup
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    if log_file:
        fileHandler = logging.FileHandler(log_file, mode="a")
        fileHandler.setFormatter(formatter)
        log_setup.addHandler(fileHandler)
    streamHandler = logging.StreamHandler()
    streamHandler.setFormatter(formatter)
    log_setup.addHandler(streamHandler)
    return log_setup


def level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        return logging.INFO
    return level
