"""
Launch strategy chain.

macOS application-launch APIs default to focusing an already running
instance. Getting a genuinely new instance means trying several OS-level
mechanisms, since how well each "new instance" flag is honoured varies by
application and OS version. Each mechanism here is a callable taking a
descriptor and returning a LaunchOutcome; LaunchChain walks an ordered
plan of them and stops at the first success.

Every mechanism starts (or asks the OS to start) exactly one process, so
none is ever retried. After a failure only the next mechanism is tried.
"""

from __future__ import annotations

import shlex
import subprocess
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from ..core.config import LauncherConfig
from .detector import RunningInstanceDetector
from .models import (
    AllMechanismsFailed,
    ApplicationDescriptor,
    LaunchMechanismName,
    LaunchOutcome,
    LaunchResult,
    LaunchSuccess,
)

try:
    from AppKit import NSURL, NSWorkspace, NSWorkspaceOpenConfiguration
    WORKSPACE_API_AVAILABLE = True
except ImportError:
    NSURL = NSWorkspace = NSWorkspaceOpenConfiguration = None
    WORKSPACE_API_AVAILABLE = False

Mechanism = Callable[[ApplicationDescriptor], LaunchOutcome]

NOT_RUNNING_PLAN = (
    LaunchMechanismName.DIRECT,
    LaunchMechanismName.SHELL_OPEN_NEW,
    LaunchMechanismName.WORKSPACE_OPEN_NEW,
    LaunchMechanismName.OPEN_COMMAND_NEW,
    LaunchMechanismName.DIRECT_FALLBACK,
)

RUNNING_PLAN = NOT_RUNNING_PLAN[1:]


def _spawn(argv: Sequence[str]) -> subprocess.Popen:
    """Start a detached process without a shell."""
    return subprocess.Popen(
        list(argv),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


# =============================================================================
# Mechanisms
# =============================================================================

def direct_launch(settings: LauncherConfig) -> Mechanism:
    """Run the bundle's executable, provided it exists."""
    name = LaunchMechanismName.DIRECT

    def run(descriptor: ApplicationDescriptor) -> LaunchOutcome:
        exe = descriptor.executable_path(settings.executable_subdir)
        if not exe.exists():
            return LaunchOutcome.failed(name, f"Executable not found: {exe}")
        try:
            proc = _spawn([str(exe)])
        except OSError as e:
            return LaunchOutcome.failed(name, f"Could not start {exe}: {e}")
        return LaunchOutcome.ok(name, pid=proc.pid)

    return run


def shell_open_new(settings: LauncherConfig) -> Mechanism:
    """Ask the shell to run ``open -n <bundle>``."""
    name = LaunchMechanismName.SHELL_OPEN_NEW

    def run(descriptor: ApplicationDescriptor) -> LaunchOutcome:
        script = f"{shlex.quote(settings.open_command)} -n {shlex.quote(descriptor.path)} 2>/dev/null"
        try:
            proc = _spawn([settings.shell, "-c", script])
        except OSError as e:
            return LaunchOutcome.failed(name, f"Could not start {settings.shell}: {e}")
        return LaunchOutcome.ok(name, pid=proc.pid)

    return run


def workspace_open_new(settings: LauncherConfig) -> Mechanism:
    """Open through NSWorkspace with createsNewApplicationInstance set."""
    name = LaunchMechanismName.WORKSPACE_OPEN_NEW

    def run(descriptor: ApplicationDescriptor) -> LaunchOutcome:
        if not WORKSPACE_API_AVAILABLE:
            return LaunchOutcome.failed(name, "NSWorkspace API not available (pyobjc-framework-Cocoa missing)")

        done = threading.Event()
        reply = {}

        def completion(app, error):
            reply["app"] = app
            reply["error"] = error
            done.set()

        try:
            configuration = NSWorkspaceOpenConfiguration.configuration()
            configuration.setCreatesNewApplicationInstance_(True)
            url = NSURL.fileURLWithPath_(descriptor.path)
            NSWorkspace.sharedWorkspace().openApplicationAtURL_configuration_completionHandler_(
                url, configuration, completion
            )
        except Exception as e:
            return LaunchOutcome.failed(name, f"NSWorkspace call failed: {e}")

        if not done.wait(settings.workspace_timeout):
            return LaunchOutcome.failed(name, f"NSWorkspace did not answer within {settings.workspace_timeout}s")

        error = reply.get("error")
        if error is not None:
            return LaunchOutcome.failed(name, str(error.localizedDescription()))

        app = reply.get("app")
        pid = int(app.processIdentifier()) if app is not None else None
        return LaunchOutcome.ok(name, pid=pid)

    return run


def open_command_new(settings: LauncherConfig) -> Mechanism:
    """Run ``open -n <bundle>`` directly, without a shell."""
    name = LaunchMechanismName.OPEN_COMMAND_NEW

    def run(descriptor: ApplicationDescriptor) -> LaunchOutcome:
        try:
            proc = _spawn([settings.open_command, "-n", descriptor.path])
        except OSError as e:
            return LaunchOutcome.failed(name, f"Could not start {settings.open_command}: {e}")
        return LaunchOutcome.ok(name, pid=proc.pid)

    return run


def direct_fallback(settings: LauncherConfig) -> Mechanism:
    """Run the bundle's executable without checking it exists first."""
    name = LaunchMechanismName.DIRECT_FALLBACK

    def run(descriptor: ApplicationDescriptor) -> LaunchOutcome:
        exe = descriptor.executable_path(settings.executable_subdir)
        try:
            proc = _spawn([str(exe)])
        except OSError as e:
            return LaunchOutcome.failed(name, f"Could not start {exe}: {e}")
        return LaunchOutcome.ok(name, pid=proc.pid)

    return run


MECHANISM_FACTORIES: Dict[LaunchMechanismName, Callable[[LauncherConfig], Mechanism]] = {
    LaunchMechanismName.DIRECT: direct_launch,
    LaunchMechanismName.SHELL_OPEN_NEW: shell_open_new,
    LaunchMechanismName.WORKSPACE_OPEN_NEW: workspace_open_new,
    LaunchMechanismName.OPEN_COMMAND_NEW: open_command_new,
    LaunchMechanismName.DIRECT_FALLBACK: direct_fallback,
}


def build_mechanisms(settings: Optional[LauncherConfig] = None) -> Dict[LaunchMechanismName, Mechanism]:
    """Default mechanism table for the given launcher settings."""
    settings = settings or LauncherConfig()
    return {mech: factory(settings) for mech, factory in MECHANISM_FACTORIES.items()}


# =============================================================================
# Driver
# =============================================================================

class LaunchChain:
    """
    Launches applications by trying mechanisms in order.

    Features:
    - Running check evaluated once per launch
    - Explicit, inspectable plan
    - One attempt per mechanism, no retries
    - Typed result instead of a log line on total failure
    """

    def __init__(
        self,
        detector: RunningInstanceDetector,
        mechanisms: Optional[Dict[LaunchMechanismName, Mechanism]] = None,
        settings: Optional[LauncherConfig] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the chain.

        Args:
            detector: Answers whether the application is already running.
            mechanisms: Mechanism table. Missing entries come from build_mechanisms().
            settings: Launcher settings used for the default mechanisms.
            executor: Executor for fire-and-forget launches.
        """
        self.settings = settings or LauncherConfig()
        self.detector = detector
        self.mechanisms = build_mechanisms(self.settings)
        if mechanisms:
            self.mechanisms.update(mechanisms)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="multilaunch-launch",
        )

    def plan(self, descriptor: ApplicationDescriptor) -> List[LaunchMechanismName]:
        """Mechanisms to try for this descriptor, in order."""
        running = self.detector.is_running(descriptor.bundle_identifier)
        if running:
            logger.info(f"{descriptor.name} is already running, forcing a new instance")
            return list(RUNNING_PLAN)
        logger.info(f"{descriptor.name} is not running, launching directly")
        return list(NOT_RUNNING_PLAN)

    def run(self, descriptor: ApplicationDescriptor) -> LaunchResult:
        """
        Launch synchronously.

        Returns:
            LaunchSuccess from the first mechanism that worked, or
            AllMechanismsFailed once each planned mechanism has failed once.
        """
        logger.info(f"Launching {descriptor.name} ({descriptor.bundle_identifier or 'no bundle id'}) from {descriptor.path}")

        attempted: List[LaunchMechanismName] = []
        last_error: Optional[str] = None

        for mech in self.plan(descriptor):
            attempted.append(mech)
            outcome = self._attempt(mech, descriptor)
            if outcome.success:
                logger.info(f"Launched {descriptor.name} via {mech.value}")
                return LaunchSuccess(
                    descriptor=descriptor,
                    mechanism=mech,
                    attempted_mechanisms=tuple(attempted),
                    pid=outcome.pid,
                )
            last_error = outcome.error
            logger.warning(f"{mech.value} failed for {descriptor.name}: {outcome.error}")

        logger.error(f"All launch mechanisms failed for {descriptor.name}")
        return AllMechanismsFailed(
            descriptor=descriptor,
            attempted_mechanisms=tuple(attempted),
            last_error=last_error,
        )

    def _attempt(self, mech: LaunchMechanismName, descriptor: ApplicationDescriptor) -> LaunchOutcome:
        mechanism = self.mechanisms.get(mech)
        if mechanism is None:
            return LaunchOutcome.failed(mech, "Mechanism not configured")

        logger.debug(f"Trying {mech.value} for {descriptor.name}")
        try:
            return mechanism(descriptor)
        except Exception as e:
            return LaunchOutcome.failed(mech, f"{e.__class__.__name__}: {e}")

    def launch(self, descriptor: ApplicationDescriptor) -> Future:
        """Launch in the background. The future resolves to a LaunchResult."""
        return self._executor.submit(self.run, descriptor)

    def shutdown(self, wait: bool = False) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
