import logging
from time import perf_counter
from typing import Callable


def checkpoint(time_ref: float | None = None) -> Callable[..., None]:
    """
    Closure that stores a time checkpoint that is updated at every call.
    Each call logs the time elapsed since the last checkpoint with a custom message.

    Args:
        time_ref: The time reference to start from. By default, the time of the call will be taken.
    Returns:
        The closure.
    """
    time_ref = time_ref if time_ref is not None else perf_counter()

    def _closure(message: str = "") -> None:
        """
        Logs the time elapsed since the previous call.

        Args:
            message: Custom message to log. The overall result will be: 'message: time_elapsed'.
        """
        nonlocal time_ref
        current_time = perf_counter()
        if message != "":
            logging.info(f"{message}: {current_time - time_ref:.2f} seconds")
        time_ref = current_time

    return _closure
