# renderer.py

import os
from collections import deque

os.environ.setdefault('PYGAME_HIDE_SUPPORT_PROMPT', '1')
import pygame

import constants
from hard_disks import DISK_RADIUS


class PressureTrace:
    """Bounded history of (time, pressure) samples for the plot panel."""

    def __init__(self, maxlen: int = constants.PRESSURE_HISTORY):
        self.samples = deque(maxlen=maxlen)

    def append(self, t: float, pressure: float):
        self.samples.append((t, pressure))

    def clear(self):
        self.samples.clear()

    def points(self) -> list:
        return list(self.samples)

    @property
    def last(self):
        return self.samples[-1] if self.samples else None

    def __len__(self):
        return len(self.samples)


class Renderer:
    """
    Draws the hard-disk box and a pressure plot onto a pygame surface.

    The box keeps a square aspect ratio and is centred in the area above the
    plot panel. World y points up, screen y points down.
    """

    def __init__(self, lx: float, ly: float,
                 width: int = constants.WIDTH,
                 height: int = constants.HEIGHT,
                 plot_height: int = constants.PLOT_HEIGHT,
                 margin: int = constants.MARGIN):
        self.lx = lx
        self.ly = ly
        self.width = width
        self.height = height
        self.plot_height = plot_height
        self.margin = margin

        box_area_height = height - plot_height - 2 * margin
        box_area_width = width - 2 * margin
        self.scale = min(box_area_width / lx, box_area_height / ly)  # pixels per unit length
        self.offset_x = margin + (box_area_width - self.scale * lx) / 2
        self.offset_y = margin + (box_area_height - self.scale * ly) / 2
        self.box_rect = pygame.Rect(
            int(self.offset_x), int(self.offset_y),
            int(round(self.scale * lx)), int(round(self.scale * ly))
        )
        self.plot_rect = pygame.Rect(
            margin, height - plot_height + margin,
            width - 2 * margin, plot_height - 2 * margin
        )
        self._font = None

    def world_to_pixel(self, wx: float, wy: float) -> tuple:
        px = int(round(self.offset_x + wx * self.scale))
        py = int(round(self.offset_y + (self.ly - wy) * self.scale))
        return px, py

    def world_radius_to_pixel(self, r: float) -> int:
        return max(1, int(round(r * self.scale)))

    def _get_font(self) -> pygame.font.Font:
        if self._font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            self._font = pygame.font.Font(None, constants.FONT_SIZE)
        return self._font

    def draw(self, surface: pygame.Surface, hard_disks, trace: PressureTrace):
        surface.fill(constants.BACKGROUND_COLOR)
        self._draw_disks(surface, hard_disks)
        pygame.draw.rect(surface, constants.BOX_COLOR, self.box_rect, 1)
        self._draw_message(surface, hard_disks, trace)
        self._draw_pressure_plot(surface, trace)

    def _draw_disks(self, surface: pygame.Surface, hard_disks):
        """
        Draws every disk clipped to the box. A disk crossing an edge is also
        drawn at its periodic image on the opposite side.
        """
        radius_px = self.world_radius_to_pixel(DISK_RADIUS)
        previous_clip = surface.get_clip()
        surface.set_clip(self.box_rect)
        for x, y in hard_disks.positions:
            x_images = [x]
            if x < DISK_RADIUS:
                x_images.append(x + self.lx)
            elif x > self.lx - DISK_RADIUS:
                x_images.append(x - self.lx)
            y_images = [y]
            if y < DISK_RADIUS:
                y_images.append(y + self.ly)
            elif y > self.ly - DISK_RADIUS:
                y_images.append(y - self.ly)
            for ix in x_images:
                for iy in y_images:
                    pygame.draw.circle(surface, constants.DISK_COLOR, self.world_to_pixel(ix, iy), radius_px)
        surface.set_clip(previous_clip)

    def _draw_message(self, surface: pygame.Surface, hard_disks, trace: PressureTrace):
        last = trace.last
        pressure_text = f"{last[1]:.3f}" if last is not None else "n/a"
        message = (
            f"Number of Collisions = {hard_disks.number_of_collisions}    "
            f"Temperature = {hard_disks.temperature:.3f}    "
            f"PA/NkT = {pressure_text}"
        )
        text = self._get_font().render(message, True, constants.TEXT_COLOR)
        surface.blit(text, (self.margin, self.plot_rect.top - self.margin))

    def _draw_pressure_plot(self, surface: pygame.Surface, trace: PressureTrace):
        """Polyline of PA/NkT against time, autoscaled to the samples held."""
        pygame.draw.rect(surface, constants.PLOT_AXIS_COLOR, self.plot_rect, 1)
        points = trace.points()
        if len(points) < 2:
            return
        times = [p[0] for p in points]
        values = [p[1] for p in points]
        t_min, t_max = min(times), max(times)
        v_min, v_max = min(values), max(values)
        if t_max == t_min:
            return
        if v_max == v_min:
            v_min -= 0.5
            v_max += 0.5
        rect = self.plot_rect
        pixels = [
            (
                rect.left + (t - t_min) / (t_max - t_min) * (rect.width - 1),
                rect.bottom - 1 - (v - v_min) / (v_max - v_min) * (rect.height - 1),
            )
            for t, v in points
        ]
        pygame.draw.lines(surface, constants.PLOT_LINE_COLOR, False, pixels, 1)
