"""showcollect: Run read-only show commands on many network devices over SSH."""

from .config import Config, Defaults, OutputConfig, load_config
from .errors import ConnectError, ExecError, InputError, PersistError, ShowCollectError
from .executor import Executor, HostStatus
from .host_keys import HostKeyPolicy
from .models import Credentials, HostOutcome, RunReport, Stage, Target, Transcript
from .sink import DirectorySink, ResultSink
from .transport import Session, TransportOptions, open_session

__all__ = [
    "Config",
    "Defaults",
    "OutputConfig",
    "load_config",
    "ConnectError",
    "ExecError",
    "InputError",
    "PersistError",
    "ShowCollectError",
    "Executor",
    "HostStatus",
    "HostKeyPolicy",
    "Credentials",
    "HostOutcome",
    "RunReport",
    "Stage",
    "Target",
    "Transcript",
    "DirectorySink",
    "ResultSink",
    "Session",
    "TransportOptions",
    "open_session",
]
