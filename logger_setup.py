# logger_setup.py

import logging
import os
import json

LOGGER_NAME = "hard_disks"

# Third-party loggers that are chatty at DEBUG (Numba's compiler, pygame's
# font and display setup). They are held at WARNING unless the config says otherwise.
QUIET_LOGGERS = ("numba", "pygame")

def _apply_levels(levels: dict):
    """
    Sets per-module levels. Keys are logger names relative to "hard_disks"
    (e.g. "engine" for the hard_disks.engine logger) or absolute names of
    third-party loggers listed in QUIET_LOGGERS.
    """
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(levels.get(name, logging.WARNING))
    for name, level in levels.items():
        if name in QUIET_LOGGERS:
            continue
        logging.getLogger(f"{LOGGER_NAME}.{name}").setLevel(level)

def setup_logging(config_path='config.json', log_root='runs'):
    """
    Configures the "hard_disks" logger tree from the run configuration.

    Handlers live on the "hard_disks" logger, which does not propagate to the
    root logger. Module loggers such as "hard_disks.engine" inherit them and
    may be given their own level through the optional 'levels' mapping of the
    'logging' section, so per-collision DEBUG output from the engine can be
    switched on without flooding the log with driver frames.

    Data Contract:
    - Inputs:
        - config_path (str): Path to the JSON run configuration.
        - log_root (str): Directory under which the per-run log folder is created.
    - Outputs: The configured "hard_disks" logging.Logger.
    - Side Effects:
        - Replaces any handlers previously attached to the "hard_disks" logger.
        - Sets levels on module loggers and on Numba's and pygame's loggers.
        - Creates runs/<run_id>/ for the log file.
    - Invariants: The config file holds 'run_id' and a 'logging' dictionary
      with 'level' and 'format'; 'levels' is optional.
    """
    with open(config_path, 'r') as f:
        config = json.load(f)

    run_id = config['run_id']
    log_config = config['logging']

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(log_config['level'])
    app_logger.propagate = False
    _apply_levels(log_config.get('levels', {}))

    log_file = os.path.join(log_root, run_id, 'simulation.log')
    os.makedirs(os.path.dirname(log_file), exist_ok=True)

    formatter = logging.Formatter(log_config['format'])
    handlers = [logging.FileHandler(log_file), logging.StreamHandler()]
    for handler in handlers:
        handler.setFormatter(formatter)

    # Calling this twice must not duplicate every line
    for handler in list(app_logger.handlers):
        handler.close()
        app_logger.removeHandler(handler)
    for handler in handlers:
        app_logger.addHandler(handler)

    app_logger.info(
        f"Logging initialized. Run ID: {run_id}. Level: {log_config['level']}. "
        f"Module levels: {log_config.get('levels', {})}. Log file: {log_file}"
    )
    return app_logger
