import logging
import os
from datetime import datetime

LOG_DIR = 'logs'


def setup_logger(name, log_dir=LOG_DIR):
    """
    Basic Custom Logging formatting and handling

    Parameters
    name (str) : Name of the logger
    log_dir (str) : Folder for the daily log file. Defaults to 'logs'

    Returns:
    logging.Logger : Configured Logger Instance
    """

    # Create Logger
    logger = logging.getLogger(name)

    # Modules are imported more than once by streamlit reruns; configure only once
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    os.makedirs(log_dir, exist_ok=True)

    # Configs for how logs will appear in logs/
    file_format = logging.Formatter(
        '%(levelname)s : %(name)s : %(funcName)s : %(lineno)d : %(message)s'
    )

    log_file = os.path.join(log_dir, f'violence_tracker_{datetime.now().strftime("%m%d%Y")}.log')
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_format)

    # Console logs configs
    console_format = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_format)

    # Add the config to the Logger obj
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
