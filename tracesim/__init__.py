"""tracesim - replay captured storage I/O traces against pluggable cache eviction policies."""

from .config import ReplacementPolicy, SimulationConfig  # noqa: F401
from .errors import ConfigError, TraceError, TraceReadError, TraceSimError  # noqa: F401
from .events import RECORD_SIZE, BlockType, IOEvent, Operation, Reason  # noqa: F401
from .memo import ResultMemo  # noqa: F401
from .simulator import SimulationResult, Simulator  # noqa: F401
from .trace_reader import TraceReader  # noqa: F401
from .trace_store import TraceMetadata, TraceStore  # noqa: F401
