import numpy as np


def sampling_from_dist(prob, rng):
    """ Sample index from an unnormalised probability distribution
        same as rng.multinomial(1, prob/np.sum(prob)).argmax()

    Parameters
    ----------
    prob: ndarray
        array of unnormalised probability distribution, flattened if multi-dimensional
    rng: numpy.random.Generator
        random number generator owned by the caller

    Returns
    -------
    index: int
        sampled (flat) index
    """
    c_sum = np.cumsum(prob, axis=None)
    thr = c_sum[-1] * rng.random()
    return min(int(np.count_nonzero(c_sum <= thr)), len(c_sum) - 1)


def convert_cnt_to_list(word_ids, word_cnt):
    """ Expand (word id, count) pairs of each document into token lists """
    corpus = list()

    for di in range(len(word_ids)):
        doc_ids = np.asarray(word_ids[di], dtype=np.int64)
        doc_cnt = np.asarray(word_cnt[di], dtype=np.int64)
        corpus.append(np.repeat(doc_ids, doc_cnt))
    return corpus


def get_top_words(word_matrix, vocab, index, n_words=20):
    """ Return the `n_words` most probable words of row `index` of `word_matrix`

    Parameters
    ----------
    word_matrix: ndarray, shape (..., n_voca)
        distributions over the vocabulary, e.g. phi
    vocab: sequence of str
    index: int or tuple
        row to read, e.g. (sentiment, topic) for a JST phi
    """
    if not isinstance(vocab, np.ndarray):
        vocab = np.array(vocab)
    row = np.asarray(word_matrix[index])
    return vocab[row.argsort()[::-1][:n_words]]
