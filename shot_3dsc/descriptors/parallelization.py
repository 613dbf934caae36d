import os
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from types import TracebackType
from typing import Callable

import numpy as np
from tqdm import tqdm


@dataclass
class ParallelDriver:
    """
    Runs a per-point computation on a pool of threads.
    Tasks are independent: each of them writes its own row of arrays allocated beforehand by the caller, hence the
    results do not depend on the number of threads or on the order in which tasks complete.
    """

    n_threads: int = 0
    disable_progress_bar: bool = True

    def __post_init__(self):
        if self.n_threads <= 0:
            self.n_threads = os.cpu_count() or 1

    def __enter__(self):
        self.pool = ThreadPool(processes=self.n_threads)
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.pool.terminate()
        else:
            self.pool.close()
        self.pool.join()

    def run(self, task: Callable[[int], None], n_tasks: int, desc: str = "") -> None:
        """
        Calls task on every index in range(n_tasks).

        Args:
            task: The function to call on each index.
            n_tasks: The number of tasks.
            desc: The description of the progress bar.
        """
        if n_tasks == 0:
            return
        for _ in tqdm(
            self.pool.imap_unordered(
                task,
                range(n_tasks),
                chunksize=max(int(np.ceil(n_tasks / (2 * self.n_threads))), 1),
            ),
            desc=desc,
            total=n_tasks,
            disable=self.disable_progress_bar,
        ):
            ...
