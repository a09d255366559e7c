import numpy as np
import pytest

from pjst import DocumentTermMatrix, SentimentLexicon

vocab = ['good', 'great', 'bad', 'awful', 'tax', 'budget', 'school', 'road', 'health', 'farm']


@pytest.fixture
def speech_dtm():
    """ 4 speeches x 10 words; the first speech only uses positive lexicon words """
    counts = np.array([
        [10, 10, 0, 0, 0, 0, 0, 0, 0, 0],
        [0, 0, 8, 8, 3, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 4, 5, 3, 2, 4, 2],
        [3, 0, 3, 0, 0, 5, 0, 4, 0, 5],
    ])
    return DocumentTermMatrix(counts, vocab=vocab, docnames=['speech_a', 'speech_b', 'speech_c', 'speech_d'])


@pytest.fixture
def speech_lexicon():
    return SentimentLexicon.from_word_lists(positive=['good', 'great'], negative=['bad', 'awful'])
