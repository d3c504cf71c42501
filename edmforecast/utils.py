import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence, Tuple, Type

from tqdm import tqdm

logger = logging.getLogger(__name__)


@dataclass()
class SweepJob:
    """
    One independent forecasting call of a parameter sweep.
    :param name: label used in progress output and failure messages, e.g. 'E=3'
    :param fn: forecasting function
    :param kwargs: keyword arguments passed to fn
    """
    name: str
    fn: Callable[..., Any]
    kwargs: dict = field(default_factory=dict)

    def __call__(self):
        return self.fn(**self.kwargs)


def run_jobs(jobs: Sequence[SweepJob],
             n_workers: int = 1,
             progress: bool = False,
             skip_errors: Tuple[Type[Exception], ...] = ()) -> List[Any]:
    """
    Execute sweep jobs and return their results in job order.

    Jobs share only read-only inputs, so with n_workers > 1 they run on a thread pool.
    A job raising one of `skip_errors` is logged and gets None as its result; any
    other exception propagates to the caller.
    """
    jobs = list(jobs)
    if n_workers <= 1 or len(jobs) <= 1:
        pending = [(job, job) for job in jobs]
        return _collect(pending, len(jobs), progress, skip_errors)

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        pending = [(job, executor.submit(job).result) for job in jobs]
        return _collect(pending, len(jobs), progress, skip_errors)


def _collect(pending, total, progress, skip_errors):
    bar = tqdm(total=total, desc='sweep') if progress else None
    results = []
    try:
        for job, call in pending:
            if bar is not None:
                bar.set_postfix_str(job.name)
            try:
                results.append(call())
            except skip_errors as e:
                logger.warning(f'sweep job {job.name} failed: {e}')
                results.append(None)
            if bar is not None:
                bar.update()
    finally:
        if bar is not None:
            bar.close()
    return results


def setup_logging(level='INFO'):
    """
    Configure root logging for command line runs.
    :param level: logging level name or number
    """
    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.root.setLevel(level.upper() if isinstance(level, str) else level)
