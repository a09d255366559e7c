import numpy as np
import pandas as pd

from .base import BaseGibbsJointModel, dirmult_log_likelihood
from .dirichlet import collapsed_parameter_estimation, collapsed_scale_estimation
from .estimate import estimate_doc_topic, estimate_phi, estimate_topic_sentiment, marginal_sentiment
from .formatted_logger import formatted_logger
from .utils import sampling_from_dist

logger = formatted_logger('GibbsReversedJST')


class GibbsReversedJST(BaseGibbsJointModel):
    """ Reversed joint sentiment/topic model (Lin, He, Everson and Rueger, 2012)

    Same latent (topic, sentiment) pair per token as JST but topics are drawn
    first: a document draws a topic from theta, a sentiment label from pi given
    that topic, then a word from phi of the topic-sentiment pair.

    Attributes
    ----------
    ndz: ndarray, shape (n_doc, n_topic)
    ndzl: ndarray, shape (n_doc, n_topic, n_sentiment)
    nzlw: ndarray, shape (n_topic, n_sentiment, n_voca)
    nzl: ndarray, shape (n_topic, n_sentiment)
    nd: ndarray, shape (n_doc)
    """
    topic_first = True
    logger = logger

    def _allocate_counts(self):
        self.ndz = np.zeros([self.n_doc, self.n_topic], dtype=np.int64)
        self.ndzl = np.zeros([self.n_doc, self.n_topic, self.n_sentiment], dtype=np.int64)
        self.nzlw = np.zeros([self.n_topic, self.n_sentiment, self.n_voca], dtype=np.int64)
        self.nzl = np.zeros([self.n_topic, self.n_sentiment], dtype=np.int64)
        self.nd = np.zeros(self.n_doc, dtype=np.int64)

    def _add_counts(self, di, doc, sentiments, topics):
        np.add.at(self.ndz[di], topics, 1)
        np.add.at(self.ndzl[di], (topics, sentiments), 1)
        np.add.at(self.nzlw, (topics, sentiments, doc), 1)
        np.add.at(self.nzl, (topics, sentiments), 1)
        self.nd[di] += len(doc)

    def _sample_doc(self, di, doc):
        priors = self.priors
        sentiments = self.sentiment_assignment[di]
        topics = self.topic_assignment[di]
        ndz = self.ndz[di]
        ndzl = self.ndzl[di]

        for wi in range(len(doc)):
            word = doc[wi]
            old_z = topics[wi]
            old_l = sentiments[wi]

            ndz[old_z] -= 1
            ndzl[old_z, old_l] -= 1
            self.nzlw[old_z, old_l, word] -= 1
            self.nzl[old_z, old_l] -= 1

            prob = ((ndz + priors.alpha)[:, np.newaxis]
                    * (ndzl + priors.gamma) / (ndz + priors.gamma_sum)[:, np.newaxis]
                    * (self.nzlw[:, :, word] + priors.beta[:, :, word]) / (self.nzl + priors.beta_sum))

            new_z, new_l = divmod(sampling_from_dist(prob, self.rng), self.n_sentiment)

            topics[wi] = new_z
            sentiments[wi] = new_l
            ndz[new_z] += 1
            ndzl[new_z, new_l] += 1
            self.nzlw[new_z, new_l, word] += 1
            self.nzl[new_z, new_l] += 1

    def check_consistency(self, token_removed=False):
        """ True if the count tables agree with each other, see GibbsJST.check_consistency """
        missing = self.nd - self.ndz.sum(1)
        return bool(np.array_equal(self.nzlw.sum(2), self.nzl)
                    and np.array_equal(self.ndzl.sum(2), self.ndz)
                    and self.nzl.sum() == self.ndz.sum()
                    and missing.min() >= 0 and missing.sum() == int(token_removed)
                    and self.nzlw.min() >= 0 and self.ndzl.min() >= 0)

    def update_hyperparameters(self):
        """ Re-estimate alpha from ndz and the concentration of beta """
        priors = self.priors
        priors.alpha = collapsed_parameter_estimation(self.ndz, priors.alpha)
        base = priors.lam[np.newaxis, :, :]
        priors.set_beta_scale(collapsed_scale_estimation(self.nzlw, base, priors.beta_scale))
        self.logger.debug('hyper-parameters updated, mean alpha:%.4f, beta scale:%.4f',
                          priors.alpha.mean(), priors.beta_scale)

    def log_likelihood(self):
        priors = self.priors
        ll = dirmult_log_likelihood(self.nzlw, priors.beta)
        ll += dirmult_log_likelihood(self.ndzl, priors.gamma[np.newaxis, :, :])
        ll += dirmult_log_likelihood(self.ndz, priors.alpha[np.newaxis, :])
        return ll

    @property
    def theta(self):
        """ document-topic distribution, shape (n_doc, n_topic) """
        return estimate_doc_topic(self.ndz, self.priors.alpha)

    @property
    def topic_pi(self):
        """ sentiment distribution of every document and topic, shape (n_doc, n_topic, n_sentiment) """
        return estimate_topic_sentiment(self.ndzl, self.priors.gamma)

    @property
    def pi(self):
        """ document-sentiment distribution with topics summed out, shape (n_doc, n_sentiment) """
        return marginal_sentiment(self.theta, self.topic_pi)

    @property
    def phi(self):
        """ word distribution of every topic-sentiment pair, shape (n_topic, n_sentiment, n_voca) """
        return estimate_phi(self.nzlw, self.priors.beta)

    def _phi_name(self, z, l):
        return 'topic%d_%s' % (z + 1, self.labels[l])

    def theta_frame(self):
        """ theta as a DataFrame indexed by document, one column per topic """
        return pd.DataFrame(self.theta, index=pd.Index(self.docnames, name='document'),
                            columns=pd.Index(range(1, self.n_topic + 1), name='topic'))
