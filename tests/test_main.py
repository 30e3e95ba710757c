import json
from pathlib import Path

import numpy as np
import pygame
import pytest

import main
from hard_disks import ConfigurationError
from renderer import PressureTrace, Renderer


def write_config(path, **simulation):
    sim_config = {
        "particle_count": 9,
        "box_width": 6.0,
        "box_height": 6.0,
        "initial_configuration": "regular",
        "plot_interval": 0.5,
    }
    sim_config.update(simulation)
    path.write_text(json.dumps({
        "run_id": "main_test",
        "master_seed": 3,
        "logging": {"level": "INFO", "format": "%(levelname)s %(message)s"},
        "simulation": sim_config,
        "display": {"enabled": False, "headless_frames": 3, "log_every": 1},
        "profiling": {"enabled": False},
    }))
    return path


def test_load_config_reads_shipped_defaults():
    config = main.load_config(str(Path(__file__).parent.parent / "config.json"))
    assert config["simulation"]["particle_count"] == 16
    assert config["simulation"]["box_width"] == 8.0
    assert config["simulation"]["initial_configuration"] == "regular"


def test_run_headless_samples_at_plot_intervals(lattice):
    trace = main.run_headless(lattice, {"plot_interval": 0.5}, frames=4, log_every=2)
    times = [t for t, _ in trace.points()]
    assert len(trace) == 4
    assert all(t >= 0.5 * (k + 1) for k, t in enumerate(times))
    assert times == sorted(times)
    assert all(np.isfinite(p) for _, p in trace.points())


def test_reset_data_clears_statistics(lattice):
    trace = PressureTrace()
    main.record_pressure(lattice, trace, 2.0)
    collisions = lattice.number_of_collisions
    main.reset_data(lattice, trace)
    assert len(trace) == 0
    assert lattice.t == 0.0
    assert lattice.virial_sum == 0.0
    assert lattice.number_of_collisions == collisions


def test_simulation_loop_stops_on_escape(lattice):
    pygame.init()
    try:
        screen = pygame.display.set_mode((400, 500))
        renderer = Renderer(lattice.lx, lattice.ly, width=400, height=500, plot_height=100, margin=10)
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_ESCAPE))
        trace = main.run_simulation_loop(
            lattice, renderer, screen, pygame.time.Clock(),
            {"plot_interval": 1.0}, {"log_every": 1}, max_frames=5
        )
    finally:
        pygame.quit()
    # The frame that saw the key still completes
    assert len(trace) == 1


def test_main_headless_run(tmp_path, monkeypatch, app_logger):
    config_path = write_config(tmp_path / "config.json")
    monkeypatch.chdir(tmp_path)
    main.main(str(config_path))
    log_text = (tmp_path / "runs" / "main_test" / "simulation.log").read_text()
    assert "Final PA/NkT" in log_text
    assert "Application shutting down." in log_text


def test_main_reports_bad_configuration(tmp_path, monkeypatch, app_logger):
    config_path = write_config(tmp_path / "config.json", particle_count=0)
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ConfigurationError):
        main.main(str(config_path))
    log_text = (tmp_path / "runs" / "main_test" / "simulation.log").read_text()
    assert "Could not initialize the hard disks." in log_text
