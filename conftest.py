"""
Pytest configuration: a memory guard for the grid sweeps and shared fixtures.

The guard limit defaults to 4 GB and can be changed with
VISCOUS_HYDRO_TEST_MEMORY_GB.
"""

import os
import signal
import threading

import psutil
import pytest

from viscous_hydro.core.config import HydroConfig
from viscous_hydro.core.eos import IdealGasEOS


class MemoryGuard:
    """Kill the test run when its resident memory passes a hard limit."""

    def __init__(self, limit_gb: float, poll_seconds: float = 0.5):
        self.limit_bytes = limit_gb * 1024**3
        self.poll_seconds = poll_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def resident_bytes(self) -> int:
        process = psutil.Process()
        total = process.memory_info().rss
        # worker threads share the process; children only appear under pytest-xdist
        for child in process.children(recursive=True):
            try:
                total += child.memory_info().rss
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return total

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._watch, name="memory-guard", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _watch(self) -> None:
        while not self._stop.wait(self.poll_seconds):
            try:
                used = self.resident_bytes()
            except psutil.Error as exc:
                print(f"memory guard: {exc}")
                continue
            if used > self.limit_bytes:
                print(
                    f"\nmemory guard: {used / 1024**3:.2f} GB in use, "
                    f"limit {self.limit_bytes / 1024**3:.1f} GB; killing the test run"
                )
                try:
                    os.killpg(os.getpgid(os.getpid()), signal.SIGKILL)
                except OSError:
                    os.kill(os.getpid(), signal.SIGKILL)


@pytest.fixture(scope="session", autouse=True)
def memory_guard():
    guard = MemoryGuard(float(os.getenv("VISCOUS_HYDRO_TEST_MEMORY_GB", "4.0")))
    guard.start()
    yield guard
    guard.stop()


@pytest.fixture
def conformal_eos():
    """P = e/3 massless gas."""
    return IdealGasEOS(cs2=1.0 / 3.0)


@pytest.fixture
def bjorken_config(tmp_path):
    """Single boost-invariant viscous cell with the analytic-profile switch (no regulation)."""
    return HydroConfig(
        nx=1,
        ny=1,
        neta=1,
        delta_tau=0.01,
        boost_invariant=True,
        initial_profile=1,
        eta_over_s=0.08,
        diagnostics_dir=tmp_path,
    )


@pytest.fixture
def small_grid_config(tmp_path):
    """4x4 transverse grid with regulation on and diagnostics written to a temp dir."""
    return HydroConfig(
        nx=4,
        ny=4,
        neta=1,
        delta_x=0.2,
        delta_y=0.2,
        delta_tau=0.01,
        initial_profile=2,
        diagnostics_dir=tmp_path,
    )
