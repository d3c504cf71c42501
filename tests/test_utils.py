import logging

import pytest

from edmforecast.utils import SweepJob, run_jobs


def square(value):
    return value * value


def fail(value):
    raise ValueError(f'bad value {value}')


@pytest.mark.parametrize('n_workers', [1, 4])
def test_results_keep_job_order(n_workers):
    jobs = [SweepJob(name=str(i), fn=square, kwargs={'value': i}) for i in range(10)]
    assert run_jobs(jobs, n_workers=n_workers) == [i * i for i in range(10)]


@pytest.mark.parametrize('n_workers', [1, 2])
def test_job_errors_propagate(n_workers):
    jobs = [SweepJob(name='ok', fn=square, kwargs={'value': 2}), SweepJob(name='bad', fn=fail, kwargs={'value': 3})]
    with pytest.raises(ValueError, match='bad value 3'):
        run_jobs(jobs, n_workers=n_workers)


@pytest.mark.parametrize('n_workers', [1, 3])
def test_progress_bar_keeps_results(n_workers):
    jobs = [SweepJob(name=f'value={i}', fn=square, kwargs={'value': i}) for i in range(5)]
    assert run_jobs(jobs, n_workers=n_workers, progress=True) == [0, 1, 4, 9, 16]


@pytest.mark.parametrize('n_workers', [1, 2])
def test_skipped_errors_give_none(n_workers, caplog):
    jobs = [SweepJob(name='ok', fn=square, kwargs={'value': 2}), SweepJob(name='bad', fn=fail, kwargs={'value': 3})]
    with caplog.at_level(logging.WARNING, logger='edmforecast.utils'):
        results = run_jobs(jobs, n_workers=n_workers, skip_errors=(ValueError,))
    assert results == [4, None]
    assert 'sweep job bad failed: bad value 3' in caplog.text
