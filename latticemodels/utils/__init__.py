from .time import timed, pretty_duration
