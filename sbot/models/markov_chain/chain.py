"""
Chain - bidirectional Markov Chain text model.

The chain learns, for every context of ``prefix_len`` consecutive words,
which words followed it (forward mapping) and which word preceded it
(backward mapping). Both mappings are filled by the same left-to-right scan
of each corpus unit.

Generation samples uniformly from the stored candidate lists. Candidates are
kept with duplicates, so a word seen twice after a context is twice as likely
to be picked.

Two generation modes are available:
    - ``generate``: walk forward from the empty context.
    - ``generate_with_keyword``: find a context containing a keyword and grow
      the text around it in both directions.

Absence of data is never an error: a cold chain, an unknown keyword or a
context without continuation simply yield shorter (possibly empty) text.

Example:
    >>> chain = Chain(2)
    >>> chain.build("the cat sat on the mat")
    >>> chain.generate(3)
    'the cat sat'

Notes:
    - The chain is not thread-safe. Callers that build and generate from
      different threads must serialise access themselves.
    - Keyword matching works on the space-joined context text, so a
      multi-word keyword can match across a word boundary.
"""

import logging
import random

from sbot.models.markov_chain.prefix import EMPTY, Prefix, iter_tokens


class Chain:
    """
    A Markov Chain over word contexts of fixed length.

    Attributes:
        forward (dict): Maps a ``Prefix`` to the list of words observed right
            after it.
        backward (dict): Maps a ``Prefix`` to the list of words observed
            right before it. Entries may be ``EMPTY`` when the context sits
            at the start of a corpus unit.
    """

    def __init__(self, prefix_len, rng=None, logger=None):
        """
        Args:
            prefix_len (int): Number of words in a context, at least 1.
            rng: Source of randomness with a ``choice`` method. Defaults to
                the shared ``random`` module.
            logger (logging.Logger, optional): Logger for model activity.

        Raises:
            ValueError: If ``prefix_len`` is not a positive integer.
        """
        if isinstance(prefix_len, bool) or not isinstance(prefix_len, int) or prefix_len < 1:
            raise ValueError(
                f"prefix_len must be a positive integer, got {prefix_len!r}")

        self._prefix_len = prefix_len
        self.rng = rng if rng is not None else random
        self.logger = logger if logger is not None else logging.getLogger(
            __name__)
        self.forward = {}
        self.backward = {}

    @property
    def prefix_len(self):
        return self._prefix_len

    def build(self, source):
        """
        Learn from one corpus unit.

        Every call starts from an empty context, so windows never span two
        corpus units; the learned entries accumulate in the shared mappings.

        Args:
            source: A string, a text stream, or an iterable of strings. The
                scan stops at the end of the input. A stream that fails to
                decode ends the scan at that point.
        """
        prefix = Prefix.empty(self._prefix_len)
        words = 0
        try:
            for word in iter_tokens(source):
                self.forward.setdefault(prefix, []).append(word)
                previous, prefix = prefix.shift(word)
                self.backward.setdefault(prefix, []).append(previous)
                words += 1
        except UnicodeDecodeError as e:
            self.logger.warning("Corpus unit ended on undecodable input", extra={
                "metrics": {"words": words, "error": str(e)}
            })

        self.logger.debug("Corpus unit built", extra={
            "metrics": {"words": words, "contexts": len(self.forward)}
        })

    def generate(self, n):
        """
        Generate up to ``n`` words starting from the empty context.

        Args:
            n (int): Maximum number of words.

        Returns:
            str: The generated words joined by spaces. Empty when ``n`` is not
            positive or nothing was learned.
        """
        start = Prefix.empty(self._prefix_len)
        return " ".join(self._walk(self.forward, start, n, Prefix.shift))

    def find_anchor(self, keyword):
        """
        Find a learned context whose text contains ``keyword``.

        The comparison is case-insensitive. When several contexts match, the
        last one in the forward mapping's iteration order wins; mappings
        iterate in insertion order, so this is the matching context that was
        first seen most recently.

        Args:
            keyword (str): Text to look for.

        Returns:
            Prefix or None: The anchor context, or None if nothing matches.
        """
        needle = keyword.lower()
        anchor = None
        for prefix in self.forward:
            if needle in str(prefix).lower():
                anchor = prefix
        return anchor

    def generate_with_keyword(self, keyword, n):
        """
        Generate text around a context that contains ``keyword``.

        The anchor context's words form the seed. Up to ``n`` words are added
        after it using the forward mapping, then, starting again from the
        anchor, up to ``n`` words are added before it using the backward
        mapping. Each direction stops on its own when a context has no
        candidates.

        Args:
            keyword (str): Text the anchor context must contain.
            n (int): Maximum number of words added in each direction.

        Returns:
            str: The generated text, or an empty string when no context
            matches the keyword.
        """
        anchor = self.find_anchor(keyword)
        if anchor is None:
            self.logger.debug("No context matches keyword", extra={
                "metrics": {"keyword": keyword}
            })
            return ""

        after = list(self._walk(self.forward, anchor, n, Prefix.shift))
        before = list(self._walk(self.backward, anchor, n, Prefix.left_shift))
        before.reverse()

        return " ".join(before + anchor.tokens() + after).strip()

    def stats(self):
        """Return the size of both mappings."""
        return {
            "prefix_len": self._prefix_len,
            "forward_contexts": len(self.forward),
            "forward_entries": sum(len(words) for words in self.forward.values()),
            "backward_contexts": len(self.backward),
            "backward_entries": sum(len(words) for words in self.backward.values()),
        }

    def _walk(self, mapping, prefix, n, shift):
        # An EMPTY candidate only comes from the backward mapping and marks
        # the start of a corpus unit.
        for _ in range(n):
            choices = mapping.get(prefix)
            if not choices:
                return
            word = self.rng.choice(choices)
            if word is EMPTY:
                return
            yield word
            _, prefix = shift(prefix, word)
