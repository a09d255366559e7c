class PJSTError(Exception):
    """ Base class of every error raised by pjst """


class ConfigurationError(PJSTError, ValueError):
    """ Invalid model configuration: topic/sentiment counts, priors, dimensions, lexicon """


class DataError(PJSTError, ValueError):
    """ Malformed document-term data, e.g. negative counts or a word index outside the vocabulary """


class RunCancelled(PJSTError):
    """ A sampling run stopped at a sweep boundary because cancellation was requested """


class AggregationError(PJSTError):
    """ A multi-run batch failed; the failing run's exception is chained as __cause__ """
