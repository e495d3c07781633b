import time

__all__ = ['timed', 'pretty_duration']


class timed:
    """Context manager which measures the wall time of its block

    The elapsed time is available as `elapsed` (seconds) and `str()` gives a short
    readable form.

    Examples
    --------
    >>> with timed() as t:
    ...     pass
    >>> t.elapsed < 1
    True
    """
    def __init__(self):
        self.elapsed = 0.0
        self._start = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_):
        self.elapsed = time.perf_counter() - self._start

    def __str__(self):
        return pretty_duration(self.elapsed)


def pretty_duration(seconds):
    """Format a duration with a unit which suits its magnitude

    Examples
    --------
    >>> pretty_duration(4.2e-5)
    '0.04ms'
    >>> pretty_duration(0.0421)
    '42ms'
    >>> pretty_duration(3.14159)
    '3.14s'
    >>> pretty_duration(754)
    '12:34'
    >>> pretty_duration(3723)
    '1:02:03'
    """
    if seconds < 0.01:
        return "{:.2f}ms".format(seconds * 1000)
    if seconds < 1:
        return "{:.0f}ms".format(seconds * 1000)
    if seconds < 60:
        return "{:.2f}s".format(seconds)

    minutes, seconds = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return "{}:{:02}:{:02}".format(hours, minutes, seconds)
    return "{}:{:02}".format(minutes, seconds)
