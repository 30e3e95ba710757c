# main.py

import json
import logging
import numpy as np
import pygame

import constants
import logger_setup
from hard_disks import HardDisks, HardDiskError
from renderer import Renderer, PressureTrace

import cProfile, pstats

# Get the application's dedicated logger
logger = logging.getLogger("hard_disks.main")


def load_config(config_path='config.json') -> dict:
    with open(config_path, 'r') as f:
        return json.load(f)


def record_pressure(hard_disks: HardDisks, trace: PressureTrace, plot_time: float) -> float:
    """Advances the disks to plot_time and appends the pressure estimate to the trace."""
    hard_disks.advance_to(plot_time)
    pressure = hard_disks.pressure()
    trace.append(hard_disks.t, pressure)
    return pressure


def reset_data(hard_disks: HardDisks, trace: PressureTrace):
    """Discards accumulated statistics while the trajectory continues."""
    hard_disks.reset_statistics()
    trace.clear()
    logger.info(f"Statistics reset after {hard_disks.number_of_collisions} collisions.")


def run_headless(hard_disks: HardDisks, sim_config: dict, frames: int, log_every: int = 10) -> PressureTrace:
    """
    Runs the plotting loop without a display.

    Each frame advances the simulation by plot_interval units of time and
    records one pressure sample.
    """
    plot_interval = sim_config.get('plot_interval', 1.0)
    trace = PressureTrace()
    time_to_plot = plot_interval
    for frame in range(frames):
        pressure = record_pressure(hard_disks, trace, time_to_plot)
        time_to_plot += plot_interval
        if frame % log_every == 0:
            logger.info(
                f"Frame={frame}, t={hard_disks.t:.3f}, "
                f"Collisions={hard_disks.number_of_collisions}, PA/NkT={pressure:.4f}"
            )
    return trace


def run_simulation_loop(hard_disks, renderer, screen, clock, sim_config, display_config, max_frames=None):
    """
    The interactive loop. R resets the statistics, Esc or closing the window quits.
    """
    plot_interval = sim_config.get('plot_interval', 1.0)
    log_every = display_config.get('log_every', 10)
    trace = PressureTrace()
    time_to_plot = plot_interval
    running = True
    frame = 0

    while running and (max_frames is None or frame < max_frames):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_r:
                    reset_data(hard_disks, trace)
                    time_to_plot = plot_interval

        # --- Physics: plot at roughly equal intervals of simulation time ---
        pressure = record_pressure(hard_disks, trace, time_to_plot)
        time_to_plot += plot_interval

        # --- Logging (throttled) ---
        if frame % log_every == 0:
            logger.debug(
                f"Frame={frame}, t={hard_disks.t:.3f}, "
                f"Collisions={hard_disks.number_of_collisions}, "
                f"KE={hard_disks.total_kinetic_energy():.6f}, "
                f"PA/NkT={pressure:.4f}"
            )

        # --- Drawing ---
        renderer.draw(screen, hard_disks, trace)
        pygame.display.flip()
        clock.tick(constants.FPS)
        frame += 1
    return trace


def main(config_path='config.json'):
    """
    Main function to initialize and run the hard-disk simulation.
    """
    logger_setup.setup_logging(config_path)
    config = load_config(config_path)
    sim_config = config['simulation']
    display_config = config.get('display', {})
    profiling_config = config.get('profiling', {})

    logger.info("Application starting...")
    logger.info(f"Loaded configuration: {config}")

    # Initialize the master random number generator (RNG)
    rng = np.random.default_rng(config['master_seed'])
    logger.info(f"Master RNG initialized with seed: {config['master_seed']}")

    try:
        hard_disks = HardDisks.from_config(sim_config, rng)
    except HardDiskError:
        logger.exception("Could not initialize the hard disks.")
        raise
    logger.info(f"Temperature = {hard_disks.temperature:.4f}")

    profiler = None
    max_frames = None
    if profiling_config.get('enabled', False):
        profiler = cProfile.Profile()
        max_frames = profiling_config.get('frames', 2000)
        profiler.enable()

    if display_config.get('enabled', True):
        pygame.init()
        screen = pygame.display.set_mode((constants.WIDTH, constants.HEIGHT))
        pygame.display.set_caption(constants.TITLE)
        clock = pygame.time.Clock()
        renderer = Renderer(hard_disks.lx, hard_disks.ly)
        try:
            trace = run_simulation_loop(hard_disks, renderer, screen, clock, sim_config, display_config, max_frames)
        finally:
            pygame.quit()
    else:
        frames = max_frames or display_config.get('headless_frames', 200)
        trace = run_headless(hard_disks, sim_config, frames, display_config.get('log_every', 10))

    if profiler is not None:
        profiler.disable()
        logger.info("Profiling complete. Printing stats...")
        stats = pstats.Stats(profiler).sort_stats('cumtime')
        stats.print_stats(20)  # Print the top 20 time-consuming functions

    if len(trace):
        logger.info(f"Final PA/NkT = {trace.last[1]:.4f} after {hard_disks.number_of_collisions} collisions.")
    logger.info("Application shutting down.")


if __name__ == "__main__":
    main()
