"""
Text Preprocessor Module

This module turns raw tweets into the token sequences the transition table builder
consumes. Every tweet becomes one `Document`: an identifier plus an ordered list of
tokens in which sentence-ending punctuation has been replaced by the reserved
`TERMINATOR` token.

### Features:
1. **Cleaning**:
    - Removing HTML tags
    - Removing URLs
    - Converting emojis to words
    - Normalizing accents and special characters
    - Lowercasing
    - Expanding contractions
    - Normalizing social media text (mentions, hashtags, repeated characters)
    - Handling whitespace

2. **Segmentation**:
    - Tweet-aware tokenization
    - Sentence terminator insertion
    - Corpus segmentation into identified documents

### Token guarantees:
- Tokens never contain whitespace.
- Word tokens only contain word characters, apostrophes and hyphens, so they can
  never be equal to `TERMINATOR` ("</s>").
- Every non-empty document ends with `TERMINATOR` and never starts with it.

### Dependencies:
- `nltk`: `TweetTokenizer` for tweet-aware tokenization.
- `emoji`: For converting emojis to their textual names.
- `bs4 (BeautifulSoup)`: For removing HTML tags.
- `unicodedata`: For folding accented characters to ASCII.

### Example Usage:

```python
preprocessor = TextPreprocessor()
preprocessor.segment("Loving this weather!! See you @bob")
# ['loving', 'this', 'weather', '</s>', 'see', 'you', '</s>']
```
"""

import math
import re
import unicodedata
from collections import namedtuple

from bs4 import BeautifulSoup
from emoji import demojize
from nltk.tokenize import TweetTokenizer

from tweet_markov.utils.loggers.json_logger import get_logger

# Reserved sentence terminator; "<" and ">" never survive word cleanup
TERMINATOR = "</s>"

Document = namedtuple("Document", ["doc_id", "tokens"])

CONTRACTIONS = {
    "can't": "cannot",
    "won't": "will not",
    "shan't": "shall not",
    "let's": "let us",
    "it's": "it is",
    "that's": "that is",
    "what's": "what is",
    "there's": "there is",
    "here's": "here is",
    "he's": "he is",
    "she's": "she is",
    "who's": "who is",
}

CONTRACTION_SUFFIXES = {
    "n't": " not",
    "'re": " are",
    "'ll": " will",
    "'ve": " have",
    "'m": " am",
    "'d": " would",
}

SENTENCE_END = re.compile(r"^(?:[.!?]+|…)$")
NON_WORD = re.compile(r"[^\w'\-]")


class TextPreprocessor:
    def __init__(self, terminator=TERMINATOR):
        """
        Initializes the TextPreprocessor.

        Args:
            terminator (str): Token emitted wherever a sentence ends (default is TERMINATOR).
        """
        self.terminator = terminator
        self.tokenizer = TweetTokenizer(
            preserve_case=False, reduce_len=True, strip_handles=True)
        self._contractions = re.compile(
            r"\b(" + "|".join(re.escape(c) for c in CONTRACTIONS) + r")\b")
        self._suffixes = re.compile(
            r"(\w)(" + "|".join(re.escape(s) for s in CONTRACTION_SUFFIXES) + r")\b")

    def to_lowercase(self, text):
        """Converts text to lowercase."""
        return text.lower()

    def handle_missing_data(self, text):
        """Handles missing data by replacing None or NaN with an empty string."""
        if text is None or (isinstance(text, float) and math.isnan(text)):
            return ""
        return str(text)

    def remove_html_tags(self, text):
        """Removes HTML tags from text."""
        return BeautifulSoup(text, "html.parser").get_text()

    def handle_urls(self, text):
        """Removes URLs from text."""
        return re.sub(r"http\S+|www\S+|https\S+", "", text, flags=re.MULTILINE)

    def handle_emojis(self, text):
        """Converts emojis to their textual representation as standalone words."""
        return demojize(text, delimiters=(" ", " "))

    def normalize(self, text):
        """Normalizes text by removing accents and converting to ASCII."""
        text = text.replace("’", "'").replace("‘", "'")
        return (
            unicodedata.normalize("NFKD", text)
            .encode("ascii", "ignore")
            .decode("utf-8", "ignore")
        )

    def handle_contractions(self, text):
        """Expands contractions in lowercase text."""
        text = self._contractions.sub(
            lambda m: CONTRACTIONS[m.group()], text)
        return self._suffixes.sub(
            lambda m: m.group(1) + CONTRACTION_SUFFIXES[m.group(2)], text)

    def normalize_social_media_text(self, text):
        """
        Normalizes text from social media by handling hashtags, mentions, and repeated characters.

        Mentions are dropped, hashtags keep their word, and runs of three or more
        identical characters collapse to one ("soooo" -> "so", "!!!" -> "!").

        Args:
            text (str): The input text.

        Returns:
            str: The normalized text.
        """
        text = re.sub(r"@\w+", "", text)
        text = re.sub(r"#(\w+)", r"\1", text)
        text = re.sub(r"(.)\1{2,}", r"\1", text)
        return text.strip()

    def handle_whitespace(self, text):
        """Removes extra whitespace from text."""
        return " ".join(text.split())

    def preprocess(self, text):
        """
        Runs the full cleanup pipeline on a single tweet.

        Emojis are named before accent folding so that the ASCII conversion
        does not discard them.

        Args:
            text (str): Raw tweet text (None and NaN are treated as empty).

        Returns:
            str: Cleaned text ready for tokenization.
        """
        text = self.handle_missing_data(text)
        text = self.remove_html_tags(text)
        text = self.handle_urls(text)
        text = self.handle_emojis(text)
        text = self.normalize(text)
        text = self.to_lowercase(text)
        text = self.handle_contractions(text)
        text = self.normalize_social_media_text(text)
        return self.handle_whitespace(text)

    def tokenize(self, text):
        """Tokenizes text into words and punctuation using the tweet tokenizer."""
        return self.tokenizer.tokenize(text)

    def segment(self, text):
        """
        Converts one tweet into its token sequence.

        Runs of sentence-ending punctuation become a single terminator, all other
        punctuation is stripped from word tokens, and the sequence is closed with
        a terminator when the tweet does not end a sentence itself.

        Args:
            text (str): Raw tweet text.

        Returns:
            list: Tokens of the tweet; empty when the tweet has no words.
        """
        tokens = []
        for raw in self.tokenize(self.preprocess(text)):
            if SENTENCE_END.match(raw):
                if tokens and tokens[-1] != self.terminator:
                    tokens.append(self.terminator)
                continue
            word = NON_WORD.sub("", raw).strip("'-")
            if word:
                tokens.append(word)

        if tokens and tokens[-1] != self.terminator:
            tokens.append(self.terminator)
        return tokens


def segment_corpus(texts, preprocessor=None, ids=None, logger=None):
    """
    Segments a collection of tweets into documents.

    Args:
        texts (iterable): Raw tweet texts.
        preprocessor (TextPreprocessor, optional): Preprocessor to use; a default one is created if omitted.
        ids (iterable, optional): Document identifiers aligned with `texts`; defaults to "tweet-<index>".
        logger (logging.Logger, optional): Logger for segmentation statistics.

    Returns:
        list: `Document` tuples for every tweet that produced at least one token.

    Raises:
        ValueError: If `ids` is given with a different length than `texts` or contains duplicates.
    """
    if preprocessor is None:
        preprocessor = TextPreprocessor()
    if logger is None:
        logger = get_logger("tweet_segmenter")

    texts = list(texts)
    if ids is None:
        ids = [f"tweet-{i}" for i in range(len(texts))]
    else:
        ids = list(ids)
        if len(ids) != len(texts):
            raise ValueError(
                f"Expected {len(texts)} document ids, got {len(ids)}")
        if len(set(ids)) != len(ids):
            raise ValueError("Document ids must be unique")

    documents = []
    skipped = 0
    for doc_id, text in zip(ids, texts):
        tokens = preprocessor.segment(text)
        if not tokens:
            skipped += 1
            continue
        documents.append(Document(doc_id, tokens))

    logger.info("Corpus segmented", extra={
        "metrics": {
            "input_texts": len(texts),
            "documents": len(documents),
            "skipped_empty": skipped,
            "tokens": sum(len(doc.tokens) for doc in documents)
        }
    })
    return documents
