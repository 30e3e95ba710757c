# hard_disks.py

import logging
import numba
import numpy as np

logger = logging.getLogger("hard_disks.engine")

# Sentinel for "no collision predicted". Any real collision time is smaller.
BIG_TIME = 1.0e10

# Disks have unit diameter, so two centres touch at distance 1.
DISK_DIAMETER = 1.0
DISK_RADIUS = 0.5
CONTACT_DISTANCE_SQ = DISK_DIAMETER * DISK_DIAMETER

# The minimum image of a touching pair is only unambiguous when each side of
# the box is at least two diameters long.
MIN_BOX_LENGTH = 2.0 * DISK_DIAMETER

# Tolerance used when validating that an initial configuration has no overlaps.
OVERLAP_TOLERANCE = 1.0e-9

CONFIGURATIONS = ("regular", "random")


class HardDiskError(Exception):
    """Base class for errors raised by the hard-disk engine."""


class ConfigurationError(HardDiskError, ValueError):
    """Raised when the engine is given parameters it cannot simulate."""


class PreconditionViolation(HardDiskError, RuntimeError):
    """Raised when an operation is called in a state that does not support it."""


# --- JIT-Compiled Physics Functions ---
# Kept outside the HardDisks class and restricted to NumPy arrays and scalars,
# as required by Numba's nopython mode. None of them use fastmath: the
# collision update has to conserve energy and momentum to rounding error.

@numba.jit(nopython=True)
def _separation_jit(dx, length):
    """Minimum-image separation of a coordinate difference in a periodic box."""
    return dx - length * np.floor(dx / length + 0.5)

@numba.jit(nopython=True)
def _wrap_jit(x, length):
    """Wraps a coordinate into [0, length)."""
    x = x - length * np.floor(x / length)
    if x >= length:
        # x was a tiny negative number and the addition rounded up to length
        x -= length
    return x

@numba.jit(nopython=True)
def _check_collision_jit(i, j, positions, velocities, collision_times, partners, lx, ly):
    """
    Predicts the collision between disk i and disk j or any of its 8 periodic
    images. The prediction replaces the stored entry of either disk only if it
    is earlier, so each disk keeps just its single nearest event.
    """
    dvx = velocities[i, 0] - velocities[j, 0]
    dvy = velocities[i, 1] - velocities[j, 1]
    v2 = dvx * dvx + dvy * dvy
    for x_cell in range(-1, 2):
        for y_cell in range(-1, 2):
            dx = positions[i, 0] - positions[j, 0] + x_cell * lx
            dy = positions[i, 1] - positions[j, 1] + y_cell * ly
            bij = dx * dvx + dy * dvy
            if bij < 0:
                r2 = dx * dx + dy * dy
                discriminant = bij * bij - v2 * (r2 - CONTACT_DISTANCE_SQ)
                if discriminant > 0:
                    # Earlier root: the disks touch on approach.
                    tij = (-bij - np.sqrt(discriminant)) / v2
                    if tij < 0.0:
                        # Only reachable through rounding on a pair already at contact.
                        # The event then fires at once, so step() can advance by 0.
                        tij = 0.0
                    if tij < collision_times[i]:
                        collision_times[i] = tij
                        partners[i] = j
                    if tij < collision_times[j]:
                        collision_times[j] = tij
                        partners[j] = i

@numba.jit(nopython=True)
def _build_collision_table_jit(positions, velocities, collision_times, partners, lx, ly):
    """Full O(N^2) prediction over every unordered pair."""
    num_particles = positions.shape[0]
    for k in range(num_particles):
        collision_times[k] = BIG_TIME
        partners[k] = -1
    for i in range(num_particles - 1):
        for j in range(i + 1, num_particles):
            _check_collision_jit(i, j, positions, velocities, collision_times, partners, lx, ly)

@numba.jit(nopython=True)
def _move_jit(positions, velocities, collision_times, dt, lx, ly):
    """
    Ballistic motion of every disk for dt, wrapped into the box. Entries
    holding the sentinel stay at BIG_TIME.
    """
    for k in range(positions.shape[0]):
        if collision_times[k] < BIG_TIME:
            collision_times[k] -= dt
        positions[k, 0] = _wrap_jit(positions[k, 0] + velocities[k, 0] * dt, lx)
        positions[k, 1] = _wrap_jit(positions[k, 1] + velocities[k, 1] * dt, ly)

@numba.jit(nopython=True)
def _contact_jit(collider, partner, positions, velocities, lx, ly):
    """
    Elastic collision of two equal-mass disks at contact. Only the velocity
    component along the line of centres is exchanged. Returns the virial
    contribution (impulse dotted with the separation).
    """
    dx = _separation_jit(positions[collider, 0] - positions[partner, 0], lx)
    dy = _separation_jit(positions[collider, 1] - positions[partner, 1], ly)
    dvx = velocities[collider, 0] - velocities[partner, 0]
    dvy = velocities[collider, 1] - velocities[partner, 1]
    # |d| is 1 at contact up to rounding; dividing by it keeps the update a
    # true projection so kinetic energy is conserved exactly.
    factor = (dx * dvx + dy * dvy) / (dx * dx + dy * dy)
    delvx = -factor * dx
    delvy = -factor * dy
    velocities[collider, 0] += delvx
    velocities[collider, 1] += delvy
    velocities[partner, 0] -= delvx
    velocities[partner, 1] -= delvy
    return delvx * dx + delvy * dy

@numba.jit(nopython=True)
def _new_collision_times_jit(collider, partner, stale, positions, velocities, collision_times, partners, lx, ly):
    """
    Rebuilds the schedule after a collision without a full rescan.
    Every disk is checked against the two disks that changed velocity, and
    each stale bystander (whose partner was one of them) is checked against
    every disk so that its entry again holds its earliest collision.
    """
    num_particles = positions.shape[0]
    for k in range(num_particles):
        if k != collider and k != partner:
            _check_collision_jit(k, partner, positions, velocities, collision_times, partners, lx, ly)
            _check_collision_jit(k, collider, positions, velocities, collision_times, partners, lx, ly)
    # The pair itself may meet again through a periodic image.
    _check_collision_jit(collider, partner, positions, velocities, collision_times, partners, lx, ly)
    for s in range(stale.shape[0]):
        k = stale[s]
        for j in range(num_particles):
            if j != k and j != collider and j != partner:
                _check_collision_jit(k, j, positions, velocities, collision_times, partners, lx, ly)

@numba.jit(nopython=True)
def _overlaps_any_jit(x, y, positions, count, lx, ly):
    """True if a disk at (x, y) overlaps any of the first `count` disks."""
    for j in range(count):
        dx = _separation_jit(x - positions[j, 0], lx)
        dy = _separation_jit(y - positions[j, 1], ly)
        if dx * dx + dy * dy < CONTACT_DISTANCE_SQ:
            return True
    return False

@numba.jit(nopython=True)
def _minimum_separation_jit(positions, lx, ly):
    """Smallest minimum-image centre distance over all pairs."""
    num_particles = positions.shape[0]
    min_r2 = np.inf
    for i in range(num_particles - 1):
        for j in range(i + 1, num_particles):
            dx = _separation_jit(positions[i, 0] - positions[j, 0], lx)
            dy = _separation_jit(positions[i, 1] - positions[j, 1], ly)
            r2 = dx * dx + dy * dy
            if r2 < min_r2:
                min_r2 = r2
    return np.sqrt(min_r2)


def _read_only(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


class HardDisks:
    """
    Event-driven simulation of identical hard disks of unit diameter in a
    periodic rectangular box.

    Instead of integrating with a fixed time step, each call to step() moves
    the system exactly to the next collision, resolves it elastically and
    updates the predicted collision times of the disks it affects.

    Data Contract:
    - Inputs:
        - rng (np.random.Generator): Seeded source for positions and velocities.
        - max_placement_attempts (int): Draws allowed per disk in the random layout.
    - Outputs: Positions, velocities, pressure and collision count for a renderer.
    - Side Effects: Owns and mutates all particle and schedule arrays in place.
    - Invariants: The number of disks is fixed after initialization, disks never
      overlap, and total kinetic energy and momentum are conserved by step().
    """

    def __init__(self, rng: np.random.Generator, max_placement_attempts: int = 10000):
        if max_placement_attempts < 1:
            raise ConfigurationError(f"max_placement_attempts must be positive, got {max_placement_attempts}.")
        self.rng = rng
        self.max_placement_attempts = max_placement_attempts

        self.lx = 0.0
        self.ly = 0.0
        self.temperature = 0.0
        self.t = 0.0
        self.virial_sum = 0.0
        self.number_of_collisions = 0

        # --- Structure of Arrays, allocated by initialize() ---
        self._positions = None
        self._velocities = None
        self._collision_times = None
        self._partners = None

    @classmethod
    def from_config(cls, config: dict, rng: np.random.Generator) -> "HardDisks":
        """Builds and initializes an engine from the 'simulation' config section."""
        hard_disks = cls(rng, config.get('max_placement_attempts', 10000))
        hard_disks.initialize(
            config['particle_count'],
            config['box_width'],
            config['box_height'],
            config.get('initial_configuration', 'regular')
        )
        return hard_disks

    # --- Read-only state for renderers and drivers ---

    @property
    def is_initialized(self) -> bool:
        return self._positions is not None

    @property
    def num_particles(self) -> int:
        return 0 if self._positions is None else len(self._positions)

    @property
    def bounds(self) -> tuple:
        return (self.lx, self.ly)

    @property
    def positions(self) -> np.ndarray:
        return _read_only(self._positions)

    @property
    def velocities(self) -> np.ndarray:
        return _read_only(self._velocities)

    @property
    def collision_times(self) -> np.ndarray:
        return _read_only(self._collision_times)

    @property
    def partners(self) -> np.ndarray:
        return _read_only(self._partners)

    # --- Initialization ---

    def initialize(self, num_particles: int, lx: float, ly: float, configuration: str = "regular"):
        """
        Places the disks, assigns velocities with zero total momentum and
        computes the full table of predicted collision times.

        Raises ConfigurationError for a bad disk count, box or layout name,
        for a regular lattice that does not fit in the box, and when the
        random layout runs out of placement attempts.
        """
        if configuration not in CONFIGURATIONS:
            raise ConfigurationError(f"Unknown initial configuration '{configuration}', expected one of {CONFIGURATIONS}.")
        self._check_geometry(num_particles, lx, ly)
        self.lx = float(lx)
        self.ly = float(ly)

        positions = np.zeros((num_particles, 2), dtype=np.float64)
        if configuration == "regular":
            self._set_regular_positions(positions)
            if num_particles > 1 and _minimum_separation_jit(positions, self.lx, self.ly) < DISK_DIAMETER - OVERLAP_TOLERANCE:
                raise ConfigurationError(
                    f"A regular lattice of {num_particles} disks overlaps in a {lx}x{ly} box."
                )
        else:
            self._set_random_positions(positions)

        self._install(positions, self._random_velocities(num_particles))
        logger.info(
            f"HardDisks initialized: {num_particles} disks, {configuration} configuration, "
            f"box {self.lx}x{self.ly}, temperature={self.temperature:.4f}."
        )

    def load_state(self, positions, velocities, lx: float, ly: float):
        """
        Installs an explicit configuration. Velocities are used as given, so
        the total momentum is whatever the caller supplies.
        """
        positions = np.array(positions, dtype=np.float64)
        velocities = np.array(velocities, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != 2:
            raise ConfigurationError(f"positions must have shape (N, 2), got {positions.shape}.")
        if velocities.shape != positions.shape:
            raise ConfigurationError(
                f"velocities shape {velocities.shape} does not match positions shape {positions.shape}."
            )
        num_particles = len(positions)
        self._check_geometry(num_particles, lx, ly)
        self.lx = float(lx)
        self.ly = float(ly)

        positions[:, 0] = np.mod(positions[:, 0], self.lx)
        positions[:, 1] = np.mod(positions[:, 1], self.ly)
        if num_particles > 1 and _minimum_separation_jit(positions, self.lx, self.ly) < DISK_DIAMETER - OVERLAP_TOLERANCE:
            raise ConfigurationError("Loaded configuration has overlapping disks.")

        self._install(positions, velocities)
        logger.info(
            f"HardDisks loaded explicit state: {num_particles} disks, box {self.lx}x{self.ly}, "
            f"temperature={self.temperature:.4f}."
        )

    def _check_geometry(self, num_particles: int, lx: float, ly: float):
        if num_particles < 1:
            raise ConfigurationError(f"Number of disks must be at least 1, got {num_particles}.")
        if lx < MIN_BOX_LENGTH or ly < MIN_BOX_LENGTH:
            raise ConfigurationError(
                f"Box sides must be at least {MIN_BOX_LENGTH} disk diameters, got {lx}x{ly}."
            )

    def _install(self, positions: np.ndarray, velocities: np.ndarray):
        """Adopts new particle arrays and rebuilds every derived quantity."""
        num_particles = len(positions)
        self._positions = positions
        self._velocities = velocities
        self._collision_times = np.full(num_particles, BIG_TIME, dtype=np.float64)
        self._partners = np.full(num_particles, -1, dtype=np.int64)
        self.temperature = 0.5 * float(np.sum(velocities ** 2)) / num_particles
        self.number_of_collisions = 0
        self.reset_statistics()
        _build_collision_table_jit(
            self._positions, self._velocities,
            self._collision_times, self._partners,
            self.lx, self.ly
        )

    def _set_regular_positions(self, positions: np.ndarray):
        """Fills the box row by row, with odd rows displaced by half a column."""
        num_particles = len(positions)
        dnx = np.sqrt(num_particles)
        nx = int(dnx)
        if dnx - nx > 0.00001:
            nx += 1  # N is not a perfect square
        ax = self.lx / nx  # distance between columns
        ay = self.ly / nx  # distance between rows

        i = np.arange(num_particles)
        ix = i % nx
        iy = i // nx
        positions[:, 0] = ax * (ix + 0.25 + 0.5 * (iy % 2))
        positions[:, 1] = ay * (iy + 0.5)

    def _set_random_positions(self, positions: np.ndarray):
        """
        Rejection sampling: each disk is redrawn until it clears every disk
        already placed, for at most max_placement_attempts draws.
        """
        for i in range(len(positions)):
            for _ in range(self.max_placement_attempts):
                x = self.lx * self.rng.random()
                y = self.ly * self.rng.random()
                if not _overlaps_any_jit(x, y, positions, i, self.lx, self.ly):
                    positions[i, 0] = x
                    positions[i, 1] = y
                    break
            else:
                raise ConfigurationError(
                    f"Could not place disk {i} of {len(positions)} without overlap after "
                    f"{self.max_placement_attempts} attempts in a {self.lx}x{self.ly} box."
                )

    def _random_velocities(self, num_particles: int) -> np.ndarray:
        """Uniform components in [-1, 1) with the centre-of-mass velocity removed."""
        velocities = self.rng.uniform(-1.0, 1.0, (num_particles, 2))
        velocities -= velocities.mean(axis=0)
        return velocities

    # --- Dynamics ---

    def step(self):
        """
        Advances the system to the next collision and resolves it.

        Raises PreconditionViolation if the engine is not initialized or if
        no collision is scheduled at all (for example a single disk).
        """
        if not self.is_initialized:
            raise PreconditionViolation("step() called before initialize().")

        # --- 1. Next event ---
        collider = int(np.argmin(self._collision_times))
        dt = float(self._collision_times[collider])
        partner = int(self._partners[collider])
        if dt >= 0.5 * BIG_TIME or partner < 0:
            raise PreconditionViolation("No collision is scheduled; the disks never meet.")

        # --- 2. Free flight up to contact ---
        _move_jit(self._positions, self._velocities, self._collision_times, dt, self.lx, self.ly)
        self.t += dt

        # --- 3. Collision ---
        self.virial_sum += _contact_jit(collider, partner, self._positions, self._velocities, self.lx, self.ly)

        # --- 4. Invalidate predictions involving either disk ---
        stale_mask = (self._partners == collider) | (self._partners == partner)
        stale_mask[collider] = False
        stale_mask[partner] = False
        stale = np.flatnonzero(stale_mask)
        self._collision_times[stale] = BIG_TIME
        self._partners[stale] = -1
        self._collision_times[[collider, partner]] = BIG_TIME
        self._partners[[collider, partner]] = -1

        # --- 5. Local rescan ---
        _new_collision_times_jit(
            collider, partner, stale,
            self._positions, self._velocities,
            self._collision_times, self._partners,
            self.lx, self.ly
        )

        self.number_of_collisions += 1

    def advance_to(self, time: float) -> int:
        """Steps until the clock reaches `time`. Returns the number of collisions."""
        steps = 0
        while self.t < time:
            self.step()
            steps += 1
        logger.debug(f"Advanced to t={self.t:.4f} in {steps} collisions (total {self.number_of_collisions}).")
        return steps

    # --- Statistics ---

    def pressure(self) -> float:
        """
        Virial estimate of the reduced pressure PA/NkT accumulated since the
        last reset_statistics().
        """
        if not self.is_initialized:
            raise PreconditionViolation("pressure() called before initialize().")
        if self.t <= 0.0:
            raise PreconditionViolation("pressure() needs elapsed simulation time; call step() first.")
        if self.temperature <= 0.0:
            raise PreconditionViolation("pressure() is undefined at zero temperature.")
        return 1.0 + self.virial_sum / (2.0 * self.t * self.num_particles * self.temperature)

    def reset_statistics(self):
        """Clears the clock and virial sum. The trajectory itself is untouched."""
        self.t = 0.0
        self.virial_sum = 0.0

    def total_kinetic_energy(self) -> float:
        return 0.5 * float(np.sum(self._velocities ** 2))

    def total_momentum(self) -> np.ndarray:
        return self._velocities.sum(axis=0)

    def minimum_separation(self) -> float:
        """Smallest minimum-image distance between disk centres."""
        if self.num_particles < 2:
            return np.inf
        return float(_minimum_separation_jit(self._positions, self.lx, self.ly))
