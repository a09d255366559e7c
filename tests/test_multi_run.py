import time

import numpy as np
import pytest

from pjst import (AggregationError, ConfigurationError, DataError, GibbsJST, GibbsReversedJST, MultiRunJST,
                  summarize_runs)
from pjst.multi_run import RunningMoments


class FirstRunFailsJST(GibbsJST):
    """ fails in the run that received the first child seed """

    def __init__(self, n_doc, n_voca, n_topic, seed=None, **kwargs):
        super(FirstRunFailsJST, self).__init__(n_doc, n_voca, n_topic, seed=seed, **kwargs)
        self.fails = getattr(seed, 'spawn_key', (None,))[-1] == 0

    def fit(self, docs, lexicon=None, max_iter=1000, callback=None):
        if self.fails:
            raise DataError('corrupted tokens')
        return super(FirstRunFailsJST, self).fit(docs, lexicon=lexicon, max_iter=max_iter, callback=callback)


def test_single_run_matches_model(speech_dtm, speech_lexicon):
    runner = MultiRunJST(1, n_jobs=1, seed=3, n_topic=2)
    summary = runner.run(speech_dtm, lexicon=speech_lexicon, max_iter=10)

    model = GibbsJST(speech_dtm.n_doc, speech_dtm.n_voca, 2, seed=np.random.SeedSequence(3).spawn(1)[0],
                     verbose=False)
    model.fit(speech_dtm, lexicon=speech_lexicon, max_iter=10)

    np.testing.assert_array_equal(summary.mean, model.pi)
    np.testing.assert_array_equal(summary.sd, 0.)
    np.testing.assert_array_equal(summary.lower, summary.mean)
    assert summary.n_completed == 1


def test_summary_statistics(speech_dtm, speech_lexicon):
    summary = MultiRunJST(4, n_jobs=1, seed=0, n_topic=2).run(speech_dtm, lexicon=speech_lexicon, max_iter=5)

    assert summary.mean.shape == (4, 3)
    np.testing.assert_allclose(summary.mean.sum(1), 1., atol=1e-9)
    np.testing.assert_allclose(summary.se, summary.sd / 2.)
    np.testing.assert_allclose(summary.upper - summary.mean, 1.959964 * summary.se, rtol=1e-5)
    assert summary.labels == ('neutral', 'positive', 'negative')

    frame = summary.to_frame()
    assert frame.shape == (12, 7)
    assert list(frame['document'][:3]) == ['speech_a'] * 3
    assert list(frame['sentiment'][:3]) == ['neutral', 'positive', 'negative']


def test_summarize_runs_by_hand():
    summary = summarize_runs([np.array([[0.2, 0.8]]), np.array([[0.4, 0.6]])], level=0.9)

    np.testing.assert_allclose(summary.mean, [[0.3, 0.7]])
    np.testing.assert_allclose(summary.sd, [[np.sqrt(0.02)] * 2])
    np.testing.assert_allclose(summary.se, [[0.1, 0.1]])
    np.testing.assert_allclose(summary.lower, [[0.3 - 0.1644854, 0.7 - 0.1644854]], rtol=1e-5)


def test_running_moments_match_numpy():
    rng = np.random.default_rng(0)
    samples = rng.random((6, 3, 2))
    moments = RunningMoments()
    for x in samples:
        moments.add(x)

    np.testing.assert_allclose(moments.mean, samples.mean(0))
    np.testing.assert_allclose(moments.sd, samples.std(0, ddof=1))


def test_failed_run_fails_batch(speech_dtm):
    runner = MultiRunJST(3, model_class=FirstRunFailsJST, n_jobs=1, seed=0, n_topic=2)
    with pytest.raises(AggregationError) as excinfo:
        runner.run(speech_dtm, max_iter=2)

    assert isinstance(excinfo.value.__cause__, DataError)


def test_partial_results_on_request(speech_dtm):
    runner = MultiRunJST(3, model_class=FirstRunFailsJST, n_jobs=1, seed=0, allow_partial=True, n_topic=2)
    summary = runner.run(speech_dtm, max_iter=2)

    assert summary.n_runs == 3
    assert summary.n_completed == 2


def test_invalid_configuration_before_any_run(speech_dtm):
    with pytest.raises(ConfigurationError):
        MultiRunJST(0)
    with pytest.raises(ConfigurationError):
        MultiRunJST(2, n_jobs=0)
    with pytest.raises(ConfigurationError):
        MultiRunJST(2, level=1.)
    with pytest.raises(ConfigurationError):
        MultiRunJST(2, n_jobs=1, n_topic=0).run(speech_dtm, max_iter=1)


def test_invalid_priors_and_lexicon_before_any_run(speech_dtm, speech_lexicon):
    with pytest.raises(ConfigurationError):
        MultiRunJST(3, n_jobs=1, n_topic=2, alpha=[.1, .2, .3, .4]).run(speech_dtm, max_iter=1)
    with pytest.raises(ConfigurationError):
        MultiRunJST(3, n_jobs=1, n_topic=2).run(np.ones((3, 5), dtype=int), lexicon=speech_lexicon, max_iter=1)
    with pytest.raises(ConfigurationError):
        MultiRunJST(3, n_jobs=1, n_topic=2, allow_partial=True).run(speech_dtm, lexicon={42: 'positive'},
                                                                     max_iter=1)
    with pytest.raises(DataError):
        MultiRunJST(3, n_jobs=2, n_topic=2).run(np.zeros((3, 5), dtype=int), max_iter=1)


def test_parallel_runs_match_sequential(speech_dtm, speech_lexicon):
    sequential = MultiRunJST(5, n_jobs=1, seed=9, n_topic=2).run(speech_dtm, lexicon=speech_lexicon, max_iter=5)
    parallel = MultiRunJST(5, n_jobs=3, seed=9, n_topic=2).run(speech_dtm, lexicon=speech_lexicon, max_iter=5)

    np.testing.assert_array_equal(parallel.mean, sequential.mean)
    np.testing.assert_array_equal(parallel.sd, sequential.sd)
    assert parallel.n_completed == 5


def test_reversed_model_runs(speech_dtm, speech_lexicon):
    summary = MultiRunJST(2, model_class=GibbsReversedJST, n_jobs=1, seed=1, n_topic=2).run(
        speech_dtm, lexicon=speech_lexicon, max_iter=5)

    np.testing.assert_allclose(summary.mean.sum(1), 1., atol=1e-9)


def test_failed_parallel_run_cancels_the_others(speech_dtm):
    runner = MultiRunJST(4, model_class=FirstRunFailsJST, n_jobs=2, seed=0, n_topic=2)
    tic = time.time()
    with pytest.raises(AggregationError) as excinfo:
        runner.run(speech_dtm, max_iter=1000000)

    assert isinstance(excinfo.value.__cause__, DataError)
    # the surviving runs stop at their next sweep instead of finishing a million sweeps
    assert time.time() - tic < 30


def test_partial_parallel_results_follow_run_order(speech_dtm):
    sequential = MultiRunJST(4, model_class=FirstRunFailsJST, n_jobs=1, seed=0, allow_partial=True,
                             n_topic=2).run(speech_dtm, max_iter=3)
    parallel = MultiRunJST(4, model_class=FirstRunFailsJST, n_jobs=2, seed=0, allow_partial=True,
                           n_topic=2).run(speech_dtm, max_iter=3)

    assert parallel.n_completed == sequential.n_completed == 3
    np.testing.assert_array_equal(parallel.mean, sequential.mean)
    np.testing.assert_array_equal(parallel.sd, sequential.sd)
