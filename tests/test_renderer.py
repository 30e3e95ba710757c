import numpy as np
import pygame
import pytest

import constants
from renderer import PressureTrace, Renderer


@pytest.fixture
def renderer():
    # 380x380 pixels for an 8x8 box: 47.5 pixels per unit
    return Renderer(8.0, 8.0, width=400, height=500, plot_height=100, margin=10)


def test_world_to_pixel_flips_y(renderer):
    assert renderer.scale == pytest.approx(47.5)
    assert renderer.world_to_pixel(0.0, 0.0) == (10, 390)
    assert renderer.world_to_pixel(8.0, 8.0) == (390, 10)
    assert renderer.world_radius_to_pixel(0.5) == 24


def test_box_keeps_square_aspect():
    renderer = Renderer(16.0, 8.0, width=400, height=500, plot_height=100, margin=10)
    assert renderer.box_rect.width == 2 * renderer.box_rect.height
    assert renderer.box_rect.bottom <= renderer.plot_rect.top


def test_draw_paints_disks(renderer, lattice):
    surface = pygame.Surface((renderer.width, renderer.height))
    renderer.draw(surface, lattice, PressureTrace())
    x, y = lattice.positions[0]
    assert tuple(surface.get_at(renderer.world_to_pixel(x, y)))[:3] == constants.DISK_COLOR
    # A point between lattice sites stays background
    assert tuple(surface.get_at(renderer.world_to_pixel(0.5, 0.1)))[:3] == constants.BACKGROUND_COLOR


def test_draw_plots_pressure_trace(renderer, lattice):
    trace = PressureTrace()
    for t, pressure in [(1.0, 1.2), (2.0, 1.5), (3.0, 1.4)]:
        trace.append(t, pressure)
    surface = pygame.Surface((renderer.width, renderer.height))
    renderer.draw(surface, lattice, trace)
    pixels = pygame.surfarray.array3d(surface)
    assert np.all(pixels == constants.PLOT_LINE_COLOR, axis=-1).sum() > 0


def test_pressure_trace_is_bounded():
    trace = PressureTrace(maxlen=3)
    assert trace.last is None
    for k in range(5):
        trace.append(float(k), 1.0 + k)
    assert len(trace) == 3
    assert trace.points() == [(2.0, 3.0), (3.0, 4.0), (4.0, 5.0)]
    assert trace.last == (4.0, 5.0)
    trace.clear()
    assert len(trace) == 0
