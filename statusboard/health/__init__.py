"""Health subsystem — probe engine, flap detection, incident memory.

The cycle driver lives in ``statusboard.health.scheduler``.
"""

from .engine import ProbeOutcome, check_all, run_http_probe
from .incidents import IncidentMemory, LastIncident
from .tracker import HealthTracker, ServiceState, Transition, TransitionKind
