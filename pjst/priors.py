import numbers

import numpy as np

from .exceptions import ConfigurationError
from .matrix import SENTIMENT_LABELS

min_lambda = 1e-6


def check_positive(name, value):
    """ a prior given as a scalar or an array must be finite and strictly positive """
    arr = np.asarray(value, dtype=float)
    if not np.all(np.isfinite(arr)) or np.any(arr <= 0):
        raise ConfigurationError('%s must be strictly positive, got %r' % (name, value))


def default_alpha(avg_doc_length, n_sentiment, n_topic):
    return avg_doc_length * 0.05 / (n_sentiment * n_topic)


def default_gamma(avg_doc_length, n_sentiment):
    return avg_doc_length * 0.05 / n_sentiment


def word_label_matrix(word_label, word_weight, n_sentiment):
    """ Sentiment-word multiplier lambda, shape (n_sentiment, n_voca)

    Unseeded words keep 1 under every label. A seeded word keeps its weight
    under its own label and shares the remainder over the other labels.
    """
    n_voca = len(word_label)
    lam = np.ones([n_sentiment, n_voca])
    seeded = np.flatnonzero(word_label >= 0)
    if len(seeded):
        rest = np.maximum((1. - word_weight[seeded]) / (n_sentiment - 1), min_lambda)
        lam[:, seeded] = rest
        lam[word_label[seeded], seeded] = word_weight[seeded]
    return lam


class Priors:
    """ Dirichlet hyper-parameters of a joint sentiment-topic model

    Attributes
    ----------
    alpha: ndarray, shape (n_sentiment, n_topic), or (n_topic) if topic_first
        prior of the topic distribution given a document (and a sentiment)
    beta: ndarray, shape (n_sentiment, n_topic, n_voca), or (n_topic, n_sentiment, n_voca) if topic_first
        prior of the word distribution of each sentiment-topic pair
    gamma: ndarray, shape (n_sentiment), or (n_topic, n_sentiment) if topic_first
        prior of the sentiment distribution of a document (and a topic)
    lam: ndarray, shape (n_sentiment, n_voca)
        lexicon multiplier, beta = beta_scale * lam broadcast over topics
    beta_scale: float
    """

    def __init__(self, alpha, beta_scale, gamma, lam, n_topic, topic_first=False):
        self.lam = lam
        self.n_topic = n_topic
        self.topic_first = topic_first
        self.alpha = alpha
        self.gamma = gamma
        self.set_beta_scale(beta_scale)

    def set_beta_scale(self, beta_scale):
        self.beta_scale = float(beta_scale)
        if self.topic_first:
            self.beta = np.repeat(self.beta_scale * self.lam[np.newaxis, :, :], self.n_topic, axis=0)
        else:
            self.beta = np.repeat(self.beta_scale * self.lam[:, np.newaxis, :], self.n_topic, axis=1)
        self.beta_sum = self.beta.sum(-1)

    @property
    def alpha(self):
        return self._alpha

    @alpha.setter
    def alpha(self, value):
        self._alpha = value
        self.alpha_sum = value.sum(-1)

    @property
    def gamma(self):
        return self._gamma

    @gamma.setter
    def gamma(self, value):
        self._gamma = value
        self.gamma_sum = value.sum(-1)


def check_dimensions(n_voca, n_topic, n_sentiment):
    if not isinstance(n_topic, numbers.Integral) or n_topic < 1:
        raise ConfigurationError('n_topic must be a positive integer, got %r' % (n_topic,))
    if n_sentiment not in SENTIMENT_LABELS:
        raise ConfigurationError('n_sentiment must be 2 or 3, got %r' % (n_sentiment,))
    if not isinstance(n_voca, numbers.Integral) or n_voca < 1:
        raise ConfigurationError('n_voca must be a positive integer, got %r' % (n_voca,))


def check_lexicon(word_label, word_weight, n_voca, n_sentiment):
    if len(word_label) != n_voca or len(word_weight) != n_voca:
        raise ConfigurationError('lexicon covers %d words but the vocabulary has %d' % (len(word_label), n_voca))
    if np.any(word_label < -1) or np.any(word_label >= n_sentiment):
        raise ConfigurationError('lexicon label outside [0, %d)' % n_sentiment)
    seeded = word_label >= 0
    if np.any(word_weight[seeded] <= 0) or np.any(word_weight[seeded] > 1):
        raise ConfigurationError('lexicon weights must be in (0, 1]')


def build_priors(n_voca, n_topic, n_sentiment, word_label, word_weight, alpha=None, beta=0.01, gamma=None,
                 avg_doc_length=1., topic_first=False):
    """ Build the priors of a JST model, or of a reversed JST model when `topic_first` is set

    Parameters
    ----------
    n_voca, n_topic, n_sentiment: int
    word_label: ndarray, shape (n_voca)
        label index of each lexicon word, -1 elsewhere
    word_weight: ndarray, shape (n_voca)
    alpha, gamma: float or None
        None selects the data-dependent default `0.05 * avg_doc_length` split
        over the sentiment-topic (alpha) or sentiment (gamma) cells
    beta: float
    avg_doc_length: float
        mean number of tokens per document
    topic_first: boolean
        if True, alpha has shape (n_topic), gamma (n_topic, n_sentiment) and
        beta (n_topic, n_sentiment, n_voca)

    Returns
    -------
    priors: Priors
    """
    check_dimensions(n_voca, n_topic, n_sentiment)
    word_label = np.asarray(word_label, dtype=np.int64)
    word_weight = np.asarray(word_weight, dtype=float)
    check_lexicon(word_label, word_weight, n_voca, n_sentiment)

    if topic_first:
        alpha_shape, gamma_shape = (n_topic,), (n_topic, n_sentiment)
        if alpha is None:
            alpha = avg_doc_length * 0.05 / n_topic
        if gamma is None:
            gamma = avg_doc_length * 0.05 / (n_topic * n_sentiment)
    else:
        alpha_shape, gamma_shape = (n_sentiment, n_topic), (n_sentiment,)
        if alpha is None:
            alpha = default_alpha(avg_doc_length, n_sentiment, n_topic)
        if gamma is None:
            gamma = default_gamma(avg_doc_length, n_sentiment)
    check_positive('alpha', alpha)
    check_positive('beta', beta)
    check_positive('gamma', gamma)

    try:
        alpha = np.broadcast_to(np.asarray(alpha, dtype=float), alpha_shape).copy()
        gamma = np.broadcast_to(np.asarray(gamma, dtype=float), gamma_shape).copy()
    except ValueError as e:
        raise ConfigurationError('prior shape mismatch: %s' % e) from e
    lam = word_label_matrix(word_label, word_weight, n_sentiment)
    return Priors(alpha, beta, gamma, lam, n_topic, topic_first)
