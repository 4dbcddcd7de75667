import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every HTTP request or GDAL driver call at INFO
NOISY_LOGGERS = ("urllib3", "pyogrio", "fiona", "matplotlib")


def setup_logger(name: str, log_file: str = None, level=logging.INFO) -> logging.Logger:
    """
    Return a logger writing to stdout and, when ``log_file`` is given, to a UTF-8 file.

    Every stage module of the pipeline shares one ``pipeline.log``; the log
    directory is created on first use. Calling this twice for the same name
    returns the already configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # stage loggers carry their own handlers, no need to bubble to root
    logger.propagate = False
    return logger


def quiet_library_loggers(level=logging.WARNING):
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)
