import numpy as np

import pjst.rjst_gibbs
from pjst import GibbsReversedJST


def fit_rjst(dtm, lexicon, n_topic=2, max_iter=20, seed=0, **kwargs):
    model = GibbsReversedJST(dtm.n_doc, dtm.n_voca, n_topic, seed=seed, verbose=False, **kwargs)
    return model.fit(dtm, lexicon=lexicon, max_iter=max_iter)


def test_distributions_normalised(speech_dtm, speech_lexicon):
    model = fit_rjst(speech_dtm, speech_lexicon, n_topic=3)

    assert model.theta.shape == (4, 3)
    np.testing.assert_allclose(model.theta.sum(1), 1., atol=1e-9)
    assert model.topic_pi.shape == (4, 3, 3)
    np.testing.assert_allclose(model.topic_pi.sum(2), 1., atol=1e-9)
    assert model.pi.shape == (4, 3)
    np.testing.assert_allclose(model.pi.sum(1), 1., atol=1e-9)
    assert model.phi.shape == (3, 3, 10)
    np.testing.assert_allclose(model.phi.sum(2), 1., atol=1e-9)


def test_counts_consistent_after_every_token_update(speech_dtm, speech_lexicon, monkeypatch):
    model = GibbsReversedJST(speech_dtm.n_doc, speech_dtm.n_voca, 2, seed=3, verbose=False)
    original = pjst.rjst_gibbs.sampling_from_dist

    def checked_sampling(prob, rng):
        assert model.check_consistency(token_removed=True)
        return original(prob, rng)

    monkeypatch.setattr(pjst.rjst_gibbs, 'sampling_from_dist', checked_sampling)
    model.fit(speech_dtm, lexicon=speech_lexicon, max_iter=3)

    assert model.check_consistency()
    np.testing.assert_array_equal(model.ndz.sum(1), speech_dtm.doc_lengths)


def test_same_seed_same_result(speech_dtm, speech_lexicon):
    first = fit_rjst(speech_dtm, speech_lexicon, seed=11)
    second = fit_rjst(speech_dtm, speech_lexicon, seed=11)

    np.testing.assert_array_equal(first.nzlw, second.nzlw)
    np.testing.assert_array_equal(first.pi, second.pi)


def test_positive_speech_gets_positive_label(speech_dtm, speech_lexicon):
    model = fit_rjst(speech_dtm, speech_lexicon, max_iter=50, seed=5)

    positive = model.labels.index('positive')
    assert model.pi[0, positive] > 0.6


def test_hyperparameter_updates(speech_dtm, speech_lexicon):
    model = fit_rjst(speech_dtm, speech_lexicon, max_iter=10, update_param_step=2)

    assert model.priors.alpha.shape == (2,)
    assert np.all(model.priors.alpha > 0)
    assert model.priors.beta.shape == (2, 3, 10)
    assert np.isfinite(model.log_likelihood())


def test_frames(speech_dtm, speech_lexicon):
    model = fit_rjst(speech_dtm, speech_lexicon)

    assert model.theta_frame().shape == (4, 2)
    assert list(model.pi_frame().columns) == ['neutral', 'positive', 'negative']
    assert 'topic1_positive' in model.top_words(n_words=2).columns


def test_document_lengths_enter_consistency_check(speech_dtm, speech_lexicon):
    model = GibbsReversedJST(speech_dtm.n_doc, speech_dtm.n_voca, 2, seed=0, verbose=False)
    model.fit(speech_dtm, lexicon=speech_lexicon, max_iter=2)

    assert model.check_consistency()
    assert not model.check_consistency(token_removed=True)
    model.nd[1] += 1
    assert not model.check_consistency()
