"""
Inbound control inputs.

The closed set of commands an observer can send to the engine. They carry
no behaviour; ``SortingEngine.dispatch`` routes each type to its control
method and rejects anything else.
"""


class Command:
    __slots__ = ()

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _init(self, **fields):
        for name, value in fields.items():
            object.__setattr__(self, name, value)

    def __eq__(self, other):
        return type(self) is type(other) and all(
            getattr(self, n) == getattr(other, n) for n in self.__slots__)

    def __hash__(self):
        return hash((type(self).__name__,) + tuple(repr(getattr(self, n)) for n in self.__slots__))

    def __repr__(self):
        body = ", ".join(f"{n}={getattr(self, n)!r}" for n in self.__slots__)
        return f"{type(self).__name__}({body})"


class Start(Command):
    __slots__ = ("algorithm", "collection", "speed", "step_mode", "unit_count")

    def __init__(self, algorithm, collection=None, speed=None, step_mode=False, unit_count=None):
        self._init(algorithm=algorithm,
                   collection=tuple(collection) if collection is not None else None,
                   speed=speed, step_mode=step_mode, unit_count=unit_count)


class Pause(Command):
    __slots__ = ()


class Resume(Command):
    __slots__ = ()


class Stop(Command):
    __slots__ = ()


class EnableStepMode(Command):
    __slots__ = ()


class ExecuteStep(Command):
    __slots__ = ()


class SetSpeed(Command):
    __slots__ = ("speed",)

    def __init__(self, speed):
        self._init(speed=speed)


class SetOperationsPerStep(Command):
    __slots__ = ("count",)

    def __init__(self, count):
        self._init(count=count)


class Reset(Command):
    __slots__ = ()


COMMANDS = (Start, Pause, Resume, Stop, EnableStepMode, ExecuteStep,
            SetSpeed, SetOperationsPerStep, Reset)
