import fnmatch

import numpy as np
import scipy.sparse as sp

from .exceptions import ConfigurationError, DataError
from .formatted_logger import formatted_logger
from .utils import convert_cnt_to_list

logger = formatted_logger('pjst.matrix', 'info')

SENTIMENT_LABELS = {
    2: ('positive', 'negative'),
    3: ('neutral', 'positive', 'negative'),
}

default_word_weight = 0.9


class DocumentTermMatrix:
    """ Read-only sparse document-term count matrix

    Attributes
    ----------
    counts: scipy.sparse.csr_matrix, shape (n_doc, n_voca)
        non-negative integer counts, zero entries are not stored
    vocab: ndarray of str or None
        term of each column
    docnames: list
        identifier of each row, `doc0`, `doc1`, ... when not given
    """

    def __init__(self, counts, vocab=None, docnames=None):
        if sp.issparse(counts):
            counts = sp.csr_matrix(counts, copy=True)
        else:
            dense = np.asarray(counts)
            if dense.ndim != 2:
                raise DataError('document-term matrix must be two dimensional, got shape %s' % (dense.shape,))
            counts = sp.csr_matrix(dense)

        data = counts.data
        if data.size and np.any(data < 0):
            raise DataError('document-term matrix contains negative counts')
        if data.size and not np.all(np.equal(np.mod(data, 1), 0)):
            raise DataError('document-term matrix contains non-integer counts')
        counts = counts.astype(np.int64)
        counts.eliminate_zeros()
        counts.sort_indices()
        for arr in (counts.data, counts.indices, counts.indptr):
            arr.flags.writeable = False
        self.counts = counts

        n_doc, n_voca = counts.shape
        if vocab is not None:
            vocab = np.array(vocab, dtype=object)
            if len(vocab) != n_voca:
                raise ConfigurationError('vocabulary has %d terms but the matrix has %d columns' % (len(vocab), n_voca))
        self.vocab = vocab

        if docnames is None:
            docnames = ['doc%d' % di for di in range(n_doc)]
        elif len(docnames) != n_doc:
            raise ConfigurationError('%d document names given for %d documents' % (len(docnames), n_doc))
        self.docnames = list(docnames)

    @classmethod
    def from_ids_cnt(cls, doc_ids, doc_cnt, n_voca, vocab=None, docnames=None):
        """ Build a matrix from per-document word id and word count arrays

        Parameters
        ----------
        doc_ids: list
            list of word id arrays, one per document
        doc_cnt: list
            list of count arrays aligned with `doc_ids`
        n_voca: int
            vocabulary size
        """
        if len(doc_ids) != len(doc_cnt):
            raise DataError('doc_ids and doc_cnt have different lengths')
        rows, cols, vals = list(), list(), list()
        for di in range(len(doc_ids)):
            ids = np.asarray(doc_ids[di], dtype=np.int64)
            cnt = np.asarray(doc_cnt[di])
            if len(ids) != len(cnt):
                raise DataError('document %d: %d word ids but %d counts' % (di, len(ids), len(cnt)))
            if len(ids) and (ids.min() < 0 or ids.max() >= n_voca):
                raise DataError('document %d references a word index outside [0, %d)' % (di, n_voca))
            rows.append(np.full(len(ids), di, dtype=np.int64))
            cols.append(ids)
            vals.append(cnt)
        if rows:
            rows, cols, vals = np.concatenate(rows), np.concatenate(cols), np.concatenate(vals)
        counts = sp.coo_matrix((vals, (rows, cols)), shape=(len(doc_ids), n_voca))
        return cls(counts.tocsr(), vocab=vocab, docnames=docnames)

    @property
    def n_doc(self):
        return self.counts.shape[0]

    @property
    def n_voca(self):
        return self.counts.shape[1]

    @property
    def doc_lengths(self):
        return np.asarray(self.counts.sum(axis=1)).ravel()

    def tokens(self, di):
        """ word index of every token of document `di`, in column order """
        start, end = self.counts.indptr[di], self.counts.indptr[di + 1]
        return convert_cnt_to_list([self.counts.indices[start:end]], [self.counts.data[start:end]])[0]

    def token_lists(self):
        return [self.tokens(di) for di in range(self.n_doc)]


class SentimentLexicon:
    """ Seed dictionary mapping terms to a polarity label and a prior weight

    Terms are expected to be normalised the same way as the matrix vocabulary.
    A trailing `*` matches every vocabulary term with that prefix.

    Parameters
    ----------
    entries: dict
        term -> label, label one of 'neutral', 'positive', 'negative'
    weights: dict or float
        term -> weight in (0, 1], or a single weight for every term
    """

    def __init__(self, entries, weights=default_word_weight):
        valid = SENTIMENT_LABELS[3]
        self.entries = dict()
        for term, label in entries.items():
            if label not in valid:
                raise ConfigurationError('unknown sentiment label %r for term %r' % (label, term))
            self.entries[term] = label

        if isinstance(weights, dict):
            self.weights = dict((term, float(weights.get(term, default_word_weight))) for term in self.entries)
        else:
            self.weights = dict((term, float(weights)) for term in self.entries)
        for term, weight in self.weights.items():
            if not 0 < weight <= 1:
                raise ConfigurationError('weight of term %r must be in (0, 1], got %r' % (term, weight))

    @classmethod
    def from_word_lists(cls, positive=(), negative=(), neutral=(), weights=default_word_weight):
        entries = dict()
        for label, words in (('positive', positive), ('negative', negative), ('neutral', neutral)):
            for word in words:
                if word in entries and entries[word] != label:
                    raise ConfigurationError('term %r is listed as both %s and %s' % (word, entries[word], label))
                entries[word] = label
        return cls(entries, weights)

    def __len__(self):
        return len(self.entries)

    def _match(self, term, vocab_index, vocab):
        """ vocabulary indices matched by a lexicon term """
        if term.endswith('*'):
            return [wi for wi, word in enumerate(vocab) if fnmatch.fnmatchcase(word, term)]
        if term in vocab_index:
            return [vocab_index[term]]
        return []

    def index(self, vocab, n_sentiment):
        """ Resolve the lexicon against a vocabulary

        Parameters
        ----------
        vocab: sequence of str
        n_sentiment: int
            2 or 3; neutral entries are dropped in 2-class mode

        Returns
        -------
        word_label: ndarray, shape (n_voca)
            sentiment label index of each word, -1 for words not in the lexicon
        word_weight: ndarray, shape (n_voca)
            prior weight of each word's label, 0 for words not in the lexicon
        """
        if n_sentiment not in SENTIMENT_LABELS:
            raise ConfigurationError('n_sentiment must be 2 or 3, got %r' % (n_sentiment,))
        labels = SENTIMENT_LABELS[n_sentiment]
        vocab = [str(word) for word in vocab]
        vocab_index = dict((word, wi) for wi, word in enumerate(vocab))

        word_label = np.full(len(vocab), -1, dtype=np.int64)
        word_weight = np.zeros(len(vocab))
        dropped = 0
        for term, label in self.entries.items():
            if label not in labels:
                dropped += 1
                continue
            for wi in self._match(term, vocab_index, vocab):
                if word_label[wi] != -1 and word_label[wi] != labels.index(label):
                    raise ConfigurationError('word %r matches lexicon entries with different labels' % vocab[wi])
                word_label[wi] = labels.index(label)
                word_weight[wi] = self.weights[term]

        if dropped:
            logger.warning('%d neutral lexicon entries ignored with %d sentiment labels', dropped, n_sentiment)
        logger.info('lexicon matched %d of %d vocabulary words', np.sum(word_label >= 0), len(vocab))
        return word_label, word_weight


def resolve_lexicon(lexicon, dtm, n_sentiment):
    """ Turn any supported lexicon form into (word_label, word_weight) arrays over the matrix vocabulary

    `lexicon` may be None, a SentimentLexicon (needs `dtm.vocab`), or a dict
    mapping word index to a label name or label index, or to a (label, weight)
    pair with weight in (0, 1].
    """
    n_voca = dtm.n_voca
    if lexicon is None:
        return np.full(n_voca, -1, dtype=np.int64), np.zeros(n_voca)
    if isinstance(lexicon, SentimentLexicon):
        if dtm.vocab is None:
            raise ConfigurationError('a SentimentLexicon needs a matrix with a vocabulary')
        return lexicon.index(dtm.vocab, n_sentiment)

    labels = SENTIMENT_LABELS[n_sentiment]
    word_label = np.full(n_voca, -1, dtype=np.int64)
    word_weight = np.zeros(n_voca)
    for wi, label in lexicon.items():
        if not 0 <= wi < n_voca:
            raise ConfigurationError('lexicon word index %r outside [0, %d)' % (wi, n_voca))
        weight = default_word_weight
        if isinstance(label, tuple):
            if len(label) != 2:
                raise ConfigurationError('lexicon entry of word %r must be a label or a (label, weight) pair' % wi)
            label, weight = label[0], float(label[1])
            if not 0 < weight <= 1:
                raise ConfigurationError('weight of word %r must be in (0, 1], got %r' % (wi, weight))
        if isinstance(label, str):
            if label not in labels:
                raise ConfigurationError('label %r not available with %d sentiment labels' % (label, n_sentiment))
            label = labels.index(label)
        if not 0 <= label < n_sentiment:
            raise ConfigurationError('label index %r outside [0, %d)' % (label, n_sentiment))
        word_label[wi] = label
        word_weight[wi] = weight
    return word_label, word_weight


def as_document_term_matrix(docs, n_voca):
    """ Accept a DocumentTermMatrix, a 2-d count matrix (sparse or dense) or a list of token index lists """
    if isinstance(docs, DocumentTermMatrix):
        return docs
    if sp.issparse(docs) or (isinstance(docs, np.ndarray) and docs.ndim == 2):
        return DocumentTermMatrix(docs)

    if n_voca is None:
        raise ConfigurationError('n_voca is needed to read documents given as token lists')
    doc_ids, doc_cnt = list(), list()
    for di, doc in enumerate(docs):
        doc = np.asarray(doc)
        if doc.size and not np.issubdtype(doc.dtype, np.integer):
            raise DataError('document %d contains non-integer word indices' % di)
        doc = doc.astype(np.int64)
        if doc.size and (doc.min() < 0 or doc.max() >= n_voca):
            raise DataError('document %d references a word index outside [0, %d)' % (di, n_voca))
        ids, cnt = np.unique(doc, return_counts=True)
        doc_ids.append(ids)
        doc_cnt.append(cnt)
    return DocumentTermMatrix.from_ids_cnt(doc_ids, doc_cnt, n_voca)
