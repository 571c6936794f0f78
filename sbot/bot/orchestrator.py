"""
ChainBot - owns the Markov Chain and decides what the bot says.

The orchestrator has no Telegram code: it turns incoming chat text into reply
text and polled store messages into relay texts. A rebuild trains a fresh
chain and swaps the reference, so replies generated while it runs in another
thread keep using the previous, complete chain.
"""

import logging
from datetime import datetime, timedelta

from sbot.bot.messages import build_chain, filter_messages, format_relay
from sbot.utils.system_monitoring import ResourceMonitor


class ChainBot:
    """
    Glue between the message store, the chain and the chat.

    Attributes:
        chain (Chain): The current model. Replaced as a whole on rebuild.
        last_processed_id (int): Id of the last store message already relayed.
    """

    def __init__(self, chain, store, chat_id, reply_words=100,
                 fallback_reply="Что?", last_processed_id=0, logger=None,
                 prefix_len=3, corpus_days=730):
        self.chain = chain
        self.store = store
        self.chat_id = chat_id
        self.reply_words = reply_words
        self.fallback_reply = fallback_reply
        self.last_processed_id = last_processed_id
        self.prefix_len = prefix_len
        self.corpus_days = corpus_days
        self.logger = logger if logger is not None else logging.getLogger(
            __name__)

    @classmethod
    def from_store(cls, store, config, logger=None):
        """
        Create a bot whose chain is trained on the store's recent corpus.

        Args:
            store: Message store adapter
            config (BotConfig): Bot configuration
            logger (logging.Logger, optional): Logger for bot activity

        Returns:
            ChainBot: The ready bot

        Raises:
            RuntimeError: If the corpus or the latest message id cannot be read
        """
        bot = cls(
            chain=None,
            store=store,
            chat_id=config.chat_id,
            reply_words=config.reply_words,
            fallback_reply=config.fallback_reply,
            logger=logger,
            prefix_len=config.prefix_len,
            corpus_days=config.corpus_days,
        )

        chain = bot._train_chain()
        if chain is None:
            raise RuntimeError("Cannot read corpus messages from the store")
        bot.chain = chain

        last_id = store.latest_message_id()
        if last_id is None:
            raise RuntimeError("Cannot read the latest message id from the store")
        bot.last_processed_id = last_id

        return bot

    def rebuild(self):
        """
        Re-ingest the whole corpus into a fresh chain.

        Returns:
            bool: True if the chain was replaced, False if the store failed
            and the previous chain was kept
        """
        chain = self._train_chain()
        if chain is None:
            self.logger.warning("Chain rebuild skipped, keeping previous chain")
            return False
        self.chain = chain
        return True

    def reply_to(self, chat_id, text):
        """
        Decide the reply to an incoming chat message.

        Only single-word messages in the configured chat get an answer.

        Args:
            chat_id (int): Chat the message came from
            text (str): Raw message text

        Returns:
            str or None: Reply text, or None when the bot stays silent
        """
        if chat_id != self.chat_id:
            return None
        if len(text.split(" ")) != 1:
            return None

        reply = self.chain.generate_with_keyword(text, self.reply_words)
        if not reply:
            self.logger.info("No context for keyword, sending fallback", extra={
                "metrics": {"keyword": text}
            })
            return self.fallback_reply
        return reply

    def poll_relay(self):
        """
        Fetch new store messages and format the ones worth relaying.

        Returns:
            list: Relay texts in store order
        """
        if self.chat_id == 0:
            return []

        messages = self.store.fetch_messages_after(self.last_processed_id)
        if messages is None:
            self.logger.warning("Polling the message store failed", extra={
                "metrics": {"last_processed_id": self.last_processed_id}
            })
            return []
        if not messages:
            return []

        relay_texts = [format_relay(message) for message in filter_messages(messages)]
        # Advance only once the whole batch is formatted
        self.last_processed_id = messages[-1].id
        self.logger.info(f"got {len(messages)} messages, last ID: {self.last_processed_id}", extra={
            "metrics": {
                "messages": len(messages),
                "last_processed_id": self.last_processed_id,
            }
        })
        return relay_texts

    def _train_chain(self):
        since = datetime.now() - timedelta(days=self.corpus_days)
        messages = self.store.fetch_corpus_messages(since)
        if messages is None:
            return None

        corpus = filter_messages(messages)
        chain = build_chain(corpus, prefix_len=self.prefix_len, logger=self.logger)

        ResourceMonitor(self.logger).log_usage("Chain built", extra_metrics={
            "corpus_messages": len(corpus),
            "skipped_messages": len(messages) - len(corpus),
            "chain": chain.stats(),
        })
        return chain
