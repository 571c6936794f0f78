"""
Prefix - fixed-length word window used as a Markov Chain state.

A prefix is an immutable window of exactly ``prefix_len`` words. Shifting a
prefix never modifies it; it returns the evicted word together with a new
prefix, so the same prefix can be reused as a starting point any number of
times.

Positions before the first word of a corpus unit are filled with the
``EMPTY`` sentinel rather than with an empty-string token.

Example:
    >>> p = Prefix.empty(2)
    >>> evicted, p = p.shift("the")
    >>> evicted is EMPTY, str(p)
    (True, ' the')
"""

from dataclasses import dataclass


class _EmptySlot:
    """Placeholder for a window position that holds no word yet."""

    __slots__ = ()

    def __repr__(self):
        return "EMPTY"

    def __str__(self):
        return ""

    def __reduce__(self):
        # Copies and unpickled values resolve to the module-level singleton
        return "EMPTY"


EMPTY = _EmptySlot()


@dataclass(frozen=True)
class Prefix:
    """
    An immutable window of words.

    Attributes:
        words (tuple): The words of the window, oldest first. Slots that
            precede the start of the corpus unit hold ``EMPTY``.
    """

    words: tuple

    @classmethod
    def empty(cls, length):
        """Return a window of ``length`` empty slots."""
        return cls((EMPTY,) * length)

    def shift(self, word):
        """
        Slide the window one word to the right.

        Args:
            word: The word entering at the newest end.

        Returns:
            tuple: ``(evicted, prefix)`` where ``evicted`` is the oldest word
            that fell out and ``prefix`` is the new window.
        """
        return self.words[0], Prefix(self.words[1:] + (word,))

    def left_shift(self, word):
        """
        Slide the window one word to the left.

        Args:
            word: The word entering at the oldest end.

        Returns:
            tuple: ``(evicted, prefix)`` where ``evicted`` is the newest word
            that fell out and ``prefix`` is the new window.
        """
        return self.words[-1], Prefix((word,) + self.words[:-1])

    def tokens(self):
        """Return the real words of the window, without empty slots."""
        return [word for word in self.words if word is not EMPTY]

    def __len__(self):
        return len(self.words)

    def __str__(self):
        return " ".join(str(word) for word in self.words)


def iter_tokens(source):
    """
    Yield whitespace-delimited tokens from a corpus unit.

    Args:
        source: A string, a text stream, or any iterable of strings. Streams
            and iterables are split item by item, so a stream is consumed
            line by line.

    Yields:
        str: The next token.
    """
    if isinstance(source, str):
        yield from source.split()
        return

    for chunk in source:
        yield from chunk.split()
