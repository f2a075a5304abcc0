"""OS-family discovery profiles.

A profile decides which servers a batch covers (by ``os_type`` prefix), how
missing hardware details are seeded, and the bands simulated metrics stay in.
Profiles are plain immutable values so tests can build their own.
"""

from dataclasses import dataclass

from server_discovery.errors import ValidationError


@dataclass(frozen=True)
class MetricBand:
    minimum: float
    maximum: float


@dataclass(frozen=True)
class HardwareCatalog:
    """Lookup tables and formulas used to seed synthetic server details.

    For a server id ``n``:
      cpu_model    = cpu_models[n % len(cpu_models)]
      cpu_cores    = base_cores + n % core_spread
      memory_total = base_memory_gb + (n % memory_slots) * memory_step_gb
      disk_total   = base_disk_gb + (n % disk_slots) * disk_step_gb
      os_version   = os_versions[n % len(os_versions)]
    """

    cpu_models: tuple[str, ...]
    os_versions: tuple[str, ...]
    base_cores: int
    core_spread: int
    base_memory_gb: float
    memory_step_gb: float
    base_disk_gb: float
    disk_step_gb: float
    memory_slots: int = 32
    disk_slots: int = 8


@dataclass(frozen=True)
class DiscoveryProfile:
    name: str
    os_prefix: str
    # True: servers whose os_type starts with os_prefix; False: all others
    include_prefix: bool
    catalog: HardwareCatalog
    cpu: MetricBand
    memory: MetricBand
    disk: MetricBand


WINDOWS_CATALOG = HardwareCatalog(
    cpu_models=(
        "Intel(R) Xeon(R) E5-2680 v4 @ 2.40GHz",
        "Intel(R) Xeon(R) E5-2690 v4 @ 2.60GHz",
        "Intel(R) Xeon(R) Gold 6248R CPU @ 3.00GHz",
        "Intel(R) Xeon(R) Platinum 8280 CPU @ 2.70GHz",
    ),
    os_versions=(
        "Windows Server 2019 Datacenter",
        "Windows Server 2019 Standard",
        "Windows Server 2016 Datacenter",
        "Windows Server 2016 Standard",
    ),
    base_cores=4,
    core_spread=60,
    base_memory_gb=16.0,
    memory_step_gb=8.0,
    base_disk_gb=256.0,
    disk_step_gb=256.0,
)

LINUX_CATALOG = HardwareCatalog(
    cpu_models=(
        "AMD EPYC 7763 64-Core Processor",
        "AMD EPYC 7542 32-Core Processor",
        "Intel(R) Xeon(R) Platinum 8380 CPU @ 2.30GHz",
        "Intel(R) Xeon(R) Gold 6330 CPU @ 2.00GHz",
    ),
    os_versions=(
        "Ubuntu 22.04 LTS",
        "CentOS 7.9",
        "Red Hat Enterprise Linux 8.6",
        "SUSE Linux Enterprise Server 15 SP4",
        "Debian 11.6",
    ),
    base_cores=8,
    core_spread=56,
    base_memory_gb=32.0,
    memory_step_gb=8.0,
    base_disk_gb=512.0,
    disk_step_gb=512.0,
)

_WINDOWS_PREFIX = "Windows Server"

WINDOWS_PROFILE = DiscoveryProfile(
    name="windows",
    os_prefix=_WINDOWS_PREFIX,
    include_prefix=True,
    catalog=WINDOWS_CATALOG,
    cpu=MetricBand(40, 80),
    memory=MetricBand(50, 85),
    disk=MetricBand(40, 90),
)

LINUX_PROFILE = DiscoveryProfile(
    name="linux",
    os_prefix=_WINDOWS_PREFIX,
    include_prefix=False,
    catalog=LINUX_CATALOG,
    cpu=MetricBand(30, 70),
    memory=MetricBand(40, 75),
    disk=MetricBand(30, 80),
)

PROFILES: dict[str, DiscoveryProfile] = {
    WINDOWS_PROFILE.name: WINDOWS_PROFILE,
    LINUX_PROFILE.name: LINUX_PROFILE,
}


def get_profile(name: str) -> DiscoveryProfile:
    try:
        return PROFILES[name]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise ValidationError(f"Unknown discovery profile '{name}' (known: {known})") from None
