"""
Messages of the ticket system and the filters applied to them.

Service messages are generated by the ticket system itself (assignments,
closures, notifications). They carry no human text and are neither used as
corpus nor relayed to the chat.
"""

from dataclasses import dataclass

from sbot.models.markov_chain.chain import Chain

SERVICE_PREFIXES = (
    "Назначен ответственный",
    "Назначен исполнитель",
    "Ответственный ",
    "Закрытие заявки",
    "Инцидент",
    "Заявка",
    "Клиенту отправлено сообщение:",
)


@dataclass
class TTSMessage:
    """A single message of the ticket system."""

    id: int
    text: str
    author: str
    section_id: int
    subsection_id: int


def is_service_message(text):
    return text.startswith(SERVICE_PREFIXES)


def filter_messages(messages, min_words=3):
    """
    Drop messages without text, service messages and messages that are too
    short.

    Words are counted by splitting on single spaces, so consecutive spaces
    count as extra parts.

    Args:
        messages (iterable): ``TTSMessage`` instances
        min_words (int): Minimum number of space-separated parts

    Returns:
        list: The remaining messages, in their original order
    """
    return [
        message for message in messages
        if message.text
        and not is_service_message(message.text)
        and len(message.text.split(" ")) >= min_words
    ]


def format_relay(message):
    return f"{message.author}:\n{message.text}"


def build_chain(messages, prefix_len=3, rng=None, logger=None):
    """
    Build a chain with one corpus unit per message.

    Args:
        messages (iterable): ``TTSMessage`` instances, already filtered
        prefix_len (int): Context length of the chain
        rng: Optional source of randomness for the chain
        logger (logging.Logger, optional): Logger passed to the chain

    Returns:
        Chain: The trained chain
    """
    chain = Chain(prefix_len, rng=rng, logger=logger)
    for message in messages:
        chain.build(message.text)
    return chain
