"""
Point estimates of the multinomial parameters of JST and reversed JST.

Every estimate is `(count + prior) / (sum of counts + sum of priors)` along the
last axis. The functions only read their arguments and return new arrays, so
they can be called between any two sweeps.
"""
import numpy as np


def _smooth(counts, prior):
    smoothed = counts + prior
    return smoothed / smoothed.sum(-1, keepdims=True)


def estimate_pi(ndl, gamma):
    """ document-sentiment distribution

    Parameters
    ----------
    ndl: ndarray, shape (n_doc, n_sentiment)
    gamma: ndarray, shape (n_sentiment)

    Returns
    -------
    pi: ndarray, shape (n_doc, n_sentiment)
    """
    return _smooth(np.asarray(ndl, dtype=float), gamma[np.newaxis, :])


def estimate_theta(ndlz, alpha):
    """ topic distribution of every document-sentiment pair

    Parameters
    ----------
    ndlz: ndarray, shape (n_doc, n_sentiment, n_topic)
    alpha: ndarray, shape (n_sentiment, n_topic)

    Returns
    -------
    theta: ndarray, shape (n_doc, n_sentiment, n_topic)
    """
    return _smooth(np.asarray(ndlz, dtype=float), alpha[np.newaxis, :, :])


def estimate_phi(nlzw, beta):
    """ word distribution of every sentiment-topic pair (topic-sentiment pair for reversed JST)

    Parameters
    ----------
    nlzw: ndarray, shape (n_sentiment, n_topic, n_voca)
    beta: ndarray, same shape as nlzw

    Returns
    -------
    phi: ndarray, same shape as nlzw
    """
    return _smooth(np.asarray(nlzw, dtype=float), beta)


def estimate_doc_topic(ndz, alpha):
    """ document-topic distribution of reversed JST, shape (n_doc, n_topic) """
    return _smooth(np.asarray(ndz, dtype=float), alpha[np.newaxis, :])


def estimate_topic_sentiment(ndzl, gamma):
    """ sentiment distribution of every document-topic pair of reversed JST, shape (n_doc, n_topic, n_sentiment) """
    return _smooth(np.asarray(ndzl, dtype=float), gamma[np.newaxis, :, :])


def marginal_sentiment(doc_topic, topic_sentiment):
    """ document-sentiment distribution of reversed JST, sum_z p(z|d) p(l|d,z) """
    return np.einsum('dz,dzl->dl', doc_topic, topic_sentiment)
