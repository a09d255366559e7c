import numpy as np
import pandas as pd

from .base import BaseGibbsJointModel, dirmult_log_likelihood
from .dirichlet import collapsed_parameter_estimation, collapsed_scale_estimation
from .estimate import estimate_phi, estimate_pi, estimate_theta
from .formatted_logger import formatted_logger
from .utils import sampling_from_dist

logger = formatted_logger('GibbsJST')


class GibbsJST(BaseGibbsJointModel):
    """
    Joint sentiment/topic model,
    Lin, Chenghua and He, Yulan, CIKM 2009

    Every word token carries a (sentiment, topic) pair; a document draws a
    sentiment label from pi, a topic from theta given that label, then a word
    from phi of the sentiment-topic pair. Lexicon words get most of their
    word prior under their lexicon label.

    Attributes
    ----------
    ndl: ndarray, shape (n_doc, n_sentiment)
        number of word tokens of each document assigned to each sentiment label
    ndlz: ndarray, shape (n_doc, n_sentiment, n_topic)
        number of word tokens of each document assigned to each sentiment-topic pair
    nlzw: ndarray, shape (n_sentiment, n_topic, n_voca)
        number of tokens of each word assigned to each sentiment-topic pair
    nlz: ndarray, shape (n_sentiment, n_topic)
        number of word tokens assigned to each sentiment-topic pair
    nd: ndarray, shape (n_doc)
        number of word tokens of each document
    """
    logger = logger

    def __init__(self, n_doc, n_voca, n_topic, n_sentiment=3, alpha=None, beta=0.01, gamma=None, **kwargs):
        super(GibbsJST, self).__init__(n_doc=n_doc, n_voca=n_voca, n_topic=n_topic, n_sentiment=n_sentiment,
                                       alpha=alpha, beta=beta, gamma=gamma, **kwargs)

    def _allocate_counts(self):
        self.ndl = np.zeros([self.n_doc, self.n_sentiment], dtype=np.int64)
        self.ndlz = np.zeros([self.n_doc, self.n_sentiment, self.n_topic], dtype=np.int64)
        self.nlzw = np.zeros([self.n_sentiment, self.n_topic, self.n_voca], dtype=np.int64)
        self.nlz = np.zeros([self.n_sentiment, self.n_topic], dtype=np.int64)
        self.nd = np.zeros(self.n_doc, dtype=np.int64)

    def _add_counts(self, di, doc, sentiments, topics):
        np.add.at(self.ndl[di], sentiments, 1)
        np.add.at(self.ndlz[di], (sentiments, topics), 1)
        np.add.at(self.nlzw, (sentiments, topics, doc), 1)
        np.add.at(self.nlz, (sentiments, topics), 1)
        self.nd[di] += len(doc)

    def _sample_doc(self, di, doc):
        priors = self.priors
        sentiments = self.sentiment_assignment[di]
        topics = self.topic_assignment[di]
        ndl = self.ndl[di]
        ndlz = self.ndlz[di]

        for wi in range(len(doc)):
            word = doc[wi]
            old_l = sentiments[wi]
            old_z = topics[wi]

            ndl[old_l] -= 1
            ndlz[old_l, old_z] -= 1
            self.nlzw[old_l, old_z, word] -= 1
            self.nlz[old_l, old_z] -= 1

            # conditional probability of every (sentiment, topic) pair of the current word
            prob = ((ndl + priors.gamma)[:, np.newaxis]
                    * (ndlz + priors.alpha) / (ndl + priors.alpha_sum)[:, np.newaxis]
                    * (self.nlzw[:, :, word] + priors.beta[:, :, word]) / (self.nlz + priors.beta_sum))

            new_l, new_z = divmod(sampling_from_dist(prob, self.rng), self.n_topic)

            sentiments[wi] = new_l
            topics[wi] = new_z
            ndl[new_l] += 1
            ndlz[new_l, new_z] += 1
            self.nlzw[new_l, new_z, word] += 1
            self.nlz[new_l, new_z] += 1

    def check_consistency(self, token_removed=False):
        """ True if the count tables agree with each other

        With `token_removed`, exactly one token is expected to be missing from
        the tables, as between the decrement and the increment of an update.
        """
        missing = self.nd - self.ndl.sum(1)
        return bool(np.array_equal(self.nlzw.sum(2), self.nlz)
                    and np.array_equal(self.ndlz.sum(2), self.ndl)
                    and self.nlz.sum() == self.ndl.sum()
                    and missing.min() >= 0 and missing.sum() == int(token_removed)
                    and self.nlzw.min() >= 0 and self.ndlz.min() >= 0)

    def update_hyperparameters(self):
        """ Re-estimate alpha of every sentiment label and the concentration of beta

        alpha[l] is the Minka fixed point of the Dirichlet-multinomial likelihood
        of ndlz[:, l, :]. beta keeps its lexicon shape lambda and only its
        scale is re-estimated, so seeded words stay seeded.
        """
        priors = self.priors
        alpha = np.empty_like(priors.alpha)
        for l in range(self.n_sentiment):
            alpha[l] = collapsed_parameter_estimation(self.ndlz[:, l, :], priors.alpha[l])
        priors.alpha = alpha
        base = priors.lam[:, np.newaxis, :]
        priors.set_beta_scale(collapsed_scale_estimation(self.nlzw, base, priors.beta_scale))
        self.logger.debug('hyper-parameters updated, mean alpha:%.4f, beta scale:%.4f', alpha.mean(), priors.beta_scale)

    def log_likelihood(self):
        """
        log joint probability of words, topics and sentiment labels with pi, theta and phi integrated out
        """
        priors = self.priors
        ll = dirmult_log_likelihood(self.nlzw, priors.beta)
        ll += dirmult_log_likelihood(self.ndlz, priors.alpha[np.newaxis, :, :])
        ll += dirmult_log_likelihood(self.ndl, priors.gamma[np.newaxis, :])
        return ll

    @property
    def pi(self):
        """ document-sentiment distribution, shape (n_doc, n_sentiment) """
        return estimate_pi(self.ndl, self.priors.gamma)

    @property
    def theta(self):
        """ topic distribution of every document and sentiment label, shape (n_doc, n_sentiment, n_topic) """
        return estimate_theta(self.ndlz, self.priors.alpha)

    @property
    def phi(self):
        """ word distribution of every sentiment-topic pair, shape (n_sentiment, n_topic, n_voca) """
        return estimate_phi(self.nlzw, self.priors.beta)

    def _phi_name(self, l, z):
        return '%s_topic%d' % (self.labels[l], z + 1)

    def theta_frame(self):
        """ theta as a DataFrame indexed by document, columns (sentiment, topic) """
        columns = pd.MultiIndex.from_product([list(self.labels), range(1, self.n_topic + 1)],
                                             names=['sentiment', 'topic'])
        return pd.DataFrame(self.theta.reshape(self.n_doc, -1), index=pd.Index(self.docnames, name='document'),
                            columns=columns)
