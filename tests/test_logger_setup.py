import json
import logging

import pytest

import logger_setup


def write_config(path, level="DEBUG", levels=None):
    log_config = {"level": level, "format": "%(name)s %(levelname)s %(message)s"}
    if levels is not None:
        log_config["levels"] = levels
    path.write_text(json.dumps({"run_id": "test_run", "logging": log_config}))
    return path


def test_setup_logging_writes_run_log(tmp_path, app_logger):
    config_path = write_config(tmp_path / "config.json")
    logger = logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / "runs"))

    assert logger is app_logger
    assert logger.level == logging.DEBUG
    assert not logger.propagate
    logger.info("hello disks")

    log_file = tmp_path / "runs" / "test_run" / "simulation.log"
    assert "hello disks" in log_file.read_text()


def test_setup_logging_twice_does_not_duplicate_handlers(tmp_path, app_logger):
    config_path = write_config(tmp_path / "config.json", level="INFO")
    logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / "runs"))
    logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / "runs"))
    assert len(app_logger.handlers) == 2


@pytest.fixture
def module_loggers():
    names = ["hard_disks.engine", "numba", "pygame", "hard_disks.main"]
    for name in names:
        logging.getLogger(name).setLevel(logging.NOTSET)
    yield [logging.getLogger(name) for name in names[:3]]
    for name in names:
        logging.getLogger(name).setLevel(logging.NOTSET)


def test_module_levels_apply_to_child_loggers(tmp_path, app_logger, module_loggers):
    config_path = write_config(
        tmp_path / "config.json", level="INFO", levels={"engine": "DEBUG", "numba": "ERROR"}
    )
    logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / "runs"))
    engine, numba_logger, pygame_logger = module_loggers

    assert engine.level == logging.DEBUG
    assert numba_logger.level == logging.ERROR
    assert pygame_logger.level == logging.WARNING

    # The engine's DEBUG lines reach the run log through the app handlers
    engine.debug("collision 0-1")
    logging.getLogger("hard_disks.main").debug("frame 3")
    log_text = (tmp_path / "runs" / "test_run" / "simulation.log").read_text()
    assert "hard_disks.engine DEBUG collision 0-1" in log_text
    assert "frame 3" not in log_text


def test_third_party_loggers_are_quiet_by_default(tmp_path, app_logger, module_loggers):
    config_path = write_config(tmp_path / "config.json")
    logger_setup.setup_logging(str(config_path), log_root=str(tmp_path / "runs"))
    _, numba_logger, pygame_logger = module_loggers
    assert numba_logger.level == logging.WARNING
    assert pygame_logger.level == logging.WARNING
