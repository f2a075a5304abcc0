"""Bounded random-walk metric simulator.

next_value() moves the last recorded value by a small delta drawn from the
injected generator and clamps the result into the metric's band. A server
with no history starts at the middle of the band.
"""

import random
import time
from dataclasses import dataclass

from server_discovery.discovery.profiles import DiscoveryProfile

# delta = (rng.randrange(_DELTA_STEPS) - _DELTA_STEPS // 2) * _DELTA_SCALE  ->  [-5.0, +4.9]
_DELTA_STEPS = 100
_DELTA_SCALE = 0.1


@dataclass(frozen=True)
class SimulatedSample:
    cpu_usage: float
    memory_usage: float
    disk_usage: float


def default_rng(seed: int | None = None) -> random.Random:
    """Build the simulator's random source; time-derived when no seed is given."""
    return random.Random(time.time_ns() if seed is None else seed)


def next_value(last: float, minimum: float, maximum: float, rng: random.Random) -> float:
    if last == 0:
        return minimum + (maximum - minimum) * 0.5

    delta = (rng.randrange(_DELTA_STEPS) - _DELTA_STEPS // 2) * _DELTA_SCALE
    return min(max(last + delta, minimum), maximum)


def simulate_sample(
    last: SimulatedSample | None,
    profile: DiscoveryProfile,
    rng: random.Random,
) -> SimulatedSample:
    """Next CPU/memory/disk sample for a server, given its previous one (or None)."""
    if last is None:
        last = SimulatedSample(0.0, 0.0, 0.0)
    return SimulatedSample(
        cpu_usage=next_value(last.cpu_usage, profile.cpu.minimum, profile.cpu.maximum, rng),
        memory_usage=next_value(
            last.memory_usage, profile.memory.minimum, profile.memory.maximum, rng
        ),
        disk_usage=next_value(last.disk_usage, profile.disk.minimum, profile.disk.maximum, rng),
    )
