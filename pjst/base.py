import numbers
import time

import numpy as np
import pandas as pd
from scipy.special import gammaln

from .exceptions import ConfigurationError, DataError
from .matrix import SENTIMENT_LABELS, as_document_term_matrix, resolve_lexicon
from .priors import build_priors, check_dimensions, check_positive
from .utils import get_top_words


class BaseTopicModel():
    """
    Attributes
    ----------
    n_doc: int
        the number of total documents in the corpus
    n_voca: int
        the vocabulary size of the corpus
    verbose: boolean
        if True, log each iteration step while inference.
    """
    def __init__(self, n_doc, n_voca, **kwargs):
        self.n_doc = n_doc
        self.n_voca = n_voca
        self.verbose = kwargs.pop('verbose', True)
        if kwargs:
            raise ConfigurationError('unknown arguments: %s' % ', '.join(sorted(kwargs)))


def dirmult_log_likelihood(counts, prior):
    """ log p(counts | prior) of Dirichlet-multinomial groups along the last axis, summed over all groups """
    prior = np.broadcast_to(prior, counts.shape)
    prior_sum = prior.sum(-1)
    ll = np.sum(gammaln(prior_sum) - gammaln(prior).sum(-1))
    ll += np.sum(gammaln(counts + prior).sum(-1) - gammaln(counts.sum(-1) + prior_sum))
    return ll


class BaseGibbsJointModel(BaseTopicModel):
    """ Base class of joint sentiment-topic models with collapsed Gibbs sampling inference

    Attributes
    ----------
    n_topic: int
        number of topics
    n_sentiment: int
        number of sentiment labels, 2 (positive, negative) or 3 (neutral, positive, negative)
    labels: tuple of str
        name of each sentiment label
    priors: Priors
        Dirichlet hyper-parameters, built by `fit` once the corpus is known
    update_param_step: int
        re-estimate alpha and the beta concentration every `update_param_step` sweeps, 0 disables it
    rng: numpy.random.Generator
        random number generator of this run, seeded with `seed`
    seeded_init: boolean
        if True, tokens of lexicon words start on their lexicon label
    status: str
        'initializing', 'sampling' or 'stopped'
    sentiment_assignment, topic_assignment:
        list of label / topic assignment arrays, one per document
    """
    topic_first = False

    def __init__(self, n_doc, n_voca, n_topic, n_sentiment=3, alpha=None, beta=0.01, gamma=None,
                 update_param_step=0, seed=None, seeded_init=True, **kwargs):
        super(BaseGibbsJointModel, self).__init__(n_doc=n_doc, n_voca=n_voca, **kwargs)
        self._check_params(n_doc, n_voca, n_topic, n_sentiment, alpha, beta, gamma, update_param_step)
        self.n_topic = n_topic
        self.n_sentiment = n_sentiment
        self.labels = SENTIMENT_LABELS[n_sentiment]

        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.update_param_step = update_param_step
        self.seeded_init = seeded_init

        self.rng = np.random.default_rng(seed)
        self.status = 'initializing'
        self.priors = None
        self.word_label = None
        self.vocab = None
        self.docnames = None

        self.sentiment_assignment = list()
        self.topic_assignment = list()

    @staticmethod
    def _check_params(n_doc, n_voca, n_topic, n_sentiment, alpha, beta, gamma, update_param_step):
        if not isinstance(n_doc, numbers.Integral) or n_doc < 1:
            raise ConfigurationError('n_doc must be a positive integer, got %r' % (n_doc,))
        check_dimensions(n_voca, n_topic, n_sentiment)
        for name, value in (('alpha', alpha), ('beta', beta), ('gamma', gamma)):
            if value is not None:
                check_positive(name, value)
        if not isinstance(update_param_step, numbers.Integral) or update_param_step < 0:
            raise ConfigurationError('update_param_step must be a non-negative integer, got %r' % (update_param_step,))

    def _prepare(self, docs, lexicon):
        dtm = as_document_term_matrix(docs, self.n_voca)
        if dtm.n_doc != self.n_doc or dtm.n_voca != self.n_voca:
            raise ConfigurationError('model expects %d x %d documents x words, matrix is %d x %d'
                                     % (self.n_doc, self.n_voca, dtm.n_doc, dtm.n_voca))
        doc_lengths = dtm.doc_lengths
        if doc_lengths.sum() == 0:
            raise DataError('the document-term matrix has no tokens')

        self.word_label, word_weight = resolve_lexicon(lexicon, dtm, self.n_sentiment)
        self.priors = build_priors(self.n_voca, self.n_topic, self.n_sentiment, self.word_label, word_weight,
                                   alpha=self.alpha, beta=self.beta, gamma=self.gamma,
                                   avg_doc_length=doc_lengths.mean(), topic_first=self.topic_first)
        self.vocab = dtm.vocab
        self.docnames = dtm.docnames
        return dtm.token_lists()

    def fit(self, docs, lexicon=None, max_iter=1000, callback=None):
        """ Gibbs sampling

        Parameters
        ----------
        docs: DocumentTermMatrix, count matrix of shape (n_doc, n_voca), or list of word index lists
        lexicon: SentimentLexicon, dict {word index: label or (label, weight)} or None
        max_iter: int
            number of Gibbs sweeps
        callback: callable or None
            called as `callback(model, iteration)` after every sweep; an exception
            raised by the callback stops the run and propagates

        Returns
        -------
        self
        """
        if not isinstance(max_iter, numbers.Integral) or max_iter < 0:
            raise ConfigurationError('max_iter must be a non-negative integer, got %r' % (max_iter,))
        docs = self._prepare(docs, lexicon)
        self.random_init(docs)

        self.status = 'sampling'
        try:
            for iteration in range(max_iter):
                tic = time.time()
                for di in range(self.n_doc):
                    self._sample_doc(di, docs[di])

                if self.update_param_step and (iteration + 1) % self.update_param_step == 0:
                    self.update_hyperparameters()

                if self.verbose:
                    self.logger.info('[ITER] %d,\telapsed time:%.2f,\tlog_likelihood:%.2f', iteration,
                                     time.time() - tic, self.log_likelihood())
                if callback is not None:
                    callback(self, iteration)
        finally:
            self.status = 'stopped'
        return self

    def random_init(self, docs):
        """ Random initialization of sentiment labels and topics

        Parameters
        ----------
        docs: list of word index arrays, size=n_doc
        """
        self._allocate_counts()
        self.sentiment_assignment = list()
        self.topic_assignment = list()

        for di in range(len(docs)):
            doc = docs[di]
            sentiments = self.rng.integers(self.n_sentiment, size=len(doc))
            topics = self.rng.integers(self.n_topic, size=len(doc))
            if self.seeded_init:
                seeded = self.word_label[doc]
                sentiments = np.where(seeded >= 0, seeded, sentiments)

            self.sentiment_assignment.append(sentiments)
            self.topic_assignment.append(topics)
            self._add_counts(di, doc, sentiments, topics)

    def _allocate_counts(self):
        raise NotImplementedError

    def _add_counts(self, di, doc, sentiments, topics):
        raise NotImplementedError

    def _sample_doc(self, di, doc):
        raise NotImplementedError

    def update_hyperparameters(self):
        raise NotImplementedError

    def log_likelihood(self):
        raise NotImplementedError

    @property
    def pi(self):
        raise NotImplementedError

    def pi_frame(self):
        """ document-sentiment distribution as a DataFrame indexed by document name """
        return pd.DataFrame(self.pi, index=pd.Index(self.docnames, name='document'), columns=list(self.labels))

    def top_words(self, n_words=10):
        """ most probable words of every word distribution, one column per (sentiment, topic) pair

        Returns
        -------
        DataFrame, shape (n_words, n_sentiment * n_topic)
        """
        if self.vocab is None:
            raise ConfigurationError('top words need a matrix with a vocabulary')
        phi = self.phi
        columns = dict()
        for i in range(phi.shape[0]):
            for j in range(phi.shape[1]):
                columns[self._phi_name(i, j)] = get_top_words(phi, self.vocab, (i, j), n_words)
        return pd.DataFrame(columns)
