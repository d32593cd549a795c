"""Step-synchronized sorting: observable, pausable, steppable sort runs."""
from .algorithms import ALGORITHM_INFO, ALGORITHMS, get_algorithm, load_custom_sorter, register_algorithm
from .commands import (EnableStepMode, ExecuteStep, Pause, Reset, Resume, SetOperationsPerStep,
                       SetSpeed, Start, Stop)
from .controller import COMPLETED, IDLE, PAUSED, RUNNING, STEPPING
from .datasets import generate_array, is_sorted
from .engine import SortingEngine
from .errors import ConfigurationError, DispatchError, SortCancelled, SortError
from .events import EventBus, EventRecorder, dispatch_event
from .settings import load_settings

__version__ = "0.1.0"
