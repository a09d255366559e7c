"""
Repeated Gibbs runs of a joint sentiment-topic model with independent seeds.

A Gibbs chain can settle in different modes from one run to the next, so the
document-level sentiment estimate is reported as mean, standard deviation,
standard error and a normal confidence interval over runs. Only pi of each
run leaves its worker; it is folded into running moments and dropped.
"""
import multiprocessing
import numbers
import os
import time
from concurrent.futures import ProcessPoolExecutor, as_completed

import numpy as np
import pandas as pd
from scipy.stats import norm

from .exceptions import AggregationError, ConfigurationError, RunCancelled
from .formatted_logger import formatted_logger
from .jst_gibbs import GibbsJST
from .matrix import as_document_term_matrix

logger = formatted_logger('MultiRunJST')


def default_n_jobs():
    return max(1, (os.cpu_count() or 1) - 1)


def _run_single(model_class, model_kwargs, dtm, lexicon, max_iter, seed, cancel_event=None):
    """ Fit one model and return only its document-sentiment distribution """
    def check_cancelled(model, iteration):
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelled('run cancelled after sweep %d' % iteration)

    model = model_class(seed=seed, **model_kwargs)
    model.fit(dtm, lexicon=lexicon, max_iter=max_iter, callback=check_cancelled)
    return model.pi


class RunningMoments:
    """ Welford accumulator of the element-wise mean and variance of equally shaped arrays """

    def __init__(self):
        self.n = 0
        self.mean = None
        self.m2 = None

    def add(self, x):
        x = np.asarray(x, dtype=float)
        if self.n == 0:
            self.mean = np.zeros_like(x)
            self.m2 = np.zeros_like(x)
        self.n += 1
        delta = x - self.mean
        self.mean += delta / self.n
        self.m2 += delta * (x - self.mean)

    @property
    def sd(self):
        if self.n < 2:
            return np.zeros_like(self.mean)
        return np.sqrt(self.m2 / (self.n - 1))


class SentimentSummary:
    """ Per-document, per-label statistics of pi over repeated runs

    Attributes
    ----------
    mean, sd, se, lower, upper: ndarray, shape (n_doc, n_sentiment)
        sd uses n - 1 degrees of freedom and is 0 for a single run;
        lower and upper are mean -/+ z * se at confidence `level`
    n_runs: int
        number of runs requested
    n_completed: int
        number of runs that contributed
    """

    def __init__(self, moments, n_runs, level, labels, docnames):
        self.n_runs = n_runs
        self.n_completed = moments.n
        self.level = level
        self.labels = tuple(labels)
        self.docnames = list(docnames)

        self.mean = moments.mean
        self.sd = moments.sd
        self.se = self.sd / np.sqrt(moments.n)
        z = norm.ppf(0.5 + level / 2.)
        self.lower = self.mean - z * self.se
        self.upper = self.mean + z * self.se

    def to_frame(self):
        """ long format DataFrame with one row per (document, sentiment) """
        n_doc, n_sentiment = self.mean.shape
        return pd.DataFrame({
            'document': np.repeat(self.docnames, n_sentiment),
            'sentiment': np.tile(self.labels, n_doc),
            'mean': self.mean.ravel(),
            'sd': self.sd.ravel(),
            'se': self.se.ravel(),
            'lower': self.lower.ravel(),
            'upper': self.upper.ravel(),
        })


def check_level(level):
    if not 0 < level < 1:
        raise ConfigurationError('confidence level must be in (0, 1), got %r' % (level,))


def summarize_runs(pis, level=0.95, labels=None, docnames=None):
    """ Summarise document-sentiment distributions of several runs

    Parameters
    ----------
    pis: iterable of ndarray, shape (n_doc, n_sentiment)
    level: float
        confidence level of the interval

    Returns
    -------
    SentimentSummary
    """
    check_level(level)
    moments = RunningMoments()
    for pi in pis:
        moments.add(pi)
    if moments.n == 0:
        raise ConfigurationError('no runs to summarise')
    n_doc, n_sentiment = moments.mean.shape
    if labels is None:
        labels = ['sentiment%d' % l for l in range(n_sentiment)]
    if docnames is None:
        docnames = ['doc%d' % di for di in range(n_doc)]
    return SentimentSummary(moments, moments.n, level, labels, docnames)


class MultiRunJST:
    """ Run a joint sentiment-topic model `n_runs` times and summarise its pi

    Parameters
    ----------
    n_runs: int
        number of independent runs
    model_class: class
        GibbsJST or GibbsReversedJST
    n_jobs: int or None
        number of worker processes, 1 runs in the calling process;
        None uses every core but one
    seed: int or None
        root seed, each run gets its own child seed
    level: float
        confidence level of the reported interval
    allow_partial: boolean
        if True, failed runs are logged and left out of the summary instead of failing the batch
    model_kwargs:
        keyword arguments of the model; n_doc and n_voca default to the matrix shape
    """

    def __init__(self, n_runs, model_class=GibbsJST, n_jobs=None, seed=None, level=0.95, allow_partial=False,
                 **model_kwargs):
        if not isinstance(n_runs, numbers.Integral) or n_runs < 1:
            raise ConfigurationError('n_runs must be a positive integer, got %r' % (n_runs,))
        if n_jobs is None:
            n_jobs = default_n_jobs()
        if not isinstance(n_jobs, numbers.Integral) or n_jobs < 1:
            raise ConfigurationError('n_jobs must be a positive integer, got %r' % (n_jobs,))
        check_level(level)

        self.n_runs = n_runs
        self.model_class = model_class
        self.n_jobs = n_jobs
        self.seed = seed
        self.level = level
        self.allow_partial = allow_partial
        self.model_kwargs = model_kwargs
        self.model_kwargs.setdefault('verbose', False)

    def run_seeds(self):
        """ seed of each run, derived from the root seed """
        return np.random.SeedSequence(self.seed).spawn(self.n_runs)

    def run(self, docs, lexicon=None, max_iter=1000):
        """ Fit `n_runs` models and summarise their document-sentiment distributions

        Raises
        ------
        ConfigurationError
            before any run starts, if the model configuration or the lexicon is invalid
        DataError
            before any run starts, if the matrix has no tokens
        AggregationError
            if a run fails (or every run fails with `allow_partial`); the
            failing run's exception is the cause
        """
        dtm = as_document_term_matrix(docs, self.model_kwargs.get('n_voca'))
        model_kwargs = dict(self.model_kwargs)
        model_kwargs.setdefault('n_doc', dtm.n_doc)
        model_kwargs.setdefault('n_voca', dtm.n_voca)
        # priors and lexicon are resolved once here so bad input fails before any run starts
        template = self.model_class(**model_kwargs)
        template._prepare(dtm, lexicon)

        seeds = self.run_seeds()
        moments = RunningMoments()
        tic = time.time()
        if self.n_jobs == 1:
            self._run_sequential(moments, model_kwargs, dtm, lexicon, max_iter, seeds)
        else:
            self._run_parallel(moments, model_kwargs, dtm, lexicon, max_iter, seeds)

        if moments.n == 0:
            raise AggregationError('all %d runs failed' % self.n_runs)
        logger.info('%d of %d runs completed,\telapsed time:%.2f', moments.n, self.n_runs, time.time() - tic)
        return SentimentSummary(moments, self.n_runs, self.level, template.labels, dtm.docnames)

    def _failed(self, ri, error):
        if self.allow_partial:
            logger.error('run %d failed and is left out: %r', ri, error)
            return
        raise AggregationError('run %d of %d failed: %s' % (ri, self.n_runs, error)) from error

    def _run_sequential(self, moments, model_kwargs, dtm, lexicon, max_iter, seeds):
        for ri, seed in enumerate(seeds):
            try:
                pi = _run_single(self.model_class, model_kwargs, dtm, lexicon, max_iter, seed)
            except Exception as e:
                self._failed(ri, e)
                continue
            moments.add(pi)
            logger.info('run %d of %d done', ri + 1, self.n_runs)

    def _run_parallel(self, moments, model_kwargs, dtm, lexicon, max_iter, seeds):
        with multiprocessing.Manager() as manager:
            cancel_event = manager.Event()
            executor = ProcessPoolExecutor(max_workers=min(self.n_jobs, self.n_runs))
            try:
                futures = dict()
                for ri, seed in enumerate(seeds):
                    future = executor.submit(_run_single, self.model_class, model_kwargs, dtm, lexicon, max_iter,
                                             seed, cancel_event)
                    futures[future] = ri

                # results are folded in run order, so the summary equals the sequential one
                finished = dict()
                next_ri = 0
                for future in as_completed(futures):
                    ri = futures[future]
                    try:
                        finished[ri] = future.result()
                        logger.info('run %d of %d done', ri + 1, self.n_runs)
                    except Exception as e:
                        if not self.allow_partial:
                            cancel_event.set()
                            for pending in futures:
                                pending.cancel()
                        self._failed(ri, e)
                        finished[ri] = None
                    while next_ri in finished:
                        pi = finished.pop(next_ri)
                        if pi is not None:
                            moments.add(pi)
                        next_ri += 1
            finally:
                executor.shutdown(wait=True, cancel_futures=True)
