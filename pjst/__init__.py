from .jst_gibbs import GibbsJST
from .rjst_gibbs import GibbsReversedJST
from .matrix import DocumentTermMatrix, SentimentLexicon, SENTIMENT_LABELS
from .priors import build_priors
from .multi_run import MultiRunJST, summarize_runs
from .exceptions import PJSTError, ConfigurationError, DataError, RunCancelled, AggregationError
