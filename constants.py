# constants.py

"""
Display Constants

Static values for the pygame front end. Physical parameters of a run
(number of disks, box size, seed) live in config.json instead.

Data Contract:
- All values are immutable constants.
- Units are specified in comments where applicable.
"""

# Screen dimensions
WIDTH = 720  # Pixels
HEIGHT = 900  # Pixels

# Height of the pressure plot panel below the box
PLOT_HEIGHT = 180  # Pixels

# Empty border around the box and the plot
MARGIN = 20  # Pixels

# Framerate
FPS = 30  # Frames per second

# Colors (RGB)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
RED = (255, 0, 0)
BLUE = (0, 0, 255)
GRAY = (160, 160, 160)

DISK_COLOR = RED
BOX_COLOR = BLACK
BACKGROUND_COLOR = WHITE
TEXT_COLOR = BLACK
PLOT_LINE_COLOR = BLUE
PLOT_AXIS_COLOR = GRAY

# Text
FONT_SIZE = 18  # Points

# Window Title
TITLE = "Hard Disks"

# Maximum number of pressure samples kept for the plot
PRESSURE_HISTORY = 500
