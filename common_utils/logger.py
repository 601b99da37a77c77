"""
logger.py

Project: Numpy-SCAE
Author: Gabriel Souza
Description: Logging setup for the training scripts: messages go to the console and to a train.log
             file inside the run directory. Library modules log through child loggers of the same name.
Published: 10-19-2026
"""

import logging
import os

def setup_logger(save_dir, name="numpy_scae", level=logging.INFO):
    """
    Configure a logger writing to stdout and to <save_dir>/train.log.

    Args:
        save_dir (str): Run directory, created if needed.
        name (str): Logger name; 'numpy_scae' also captures the engine modules.
        level (int): Logging level.

    Returns:
        logging.Logger: The configured logger.
    """
    os.makedirs(save_dir, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # calling twice (e.g. train then evaluate in one process) must not duplicate lines
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S")
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)
    log_file = logging.FileHandler(os.path.join(save_dir, "train.log"))
    log_file.setFormatter(formatter)
    logger.addHandler(log_file)
    return logger
