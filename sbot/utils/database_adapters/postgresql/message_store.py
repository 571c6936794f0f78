#!/usr/bin/env python3
"""
MessageStorePostgreSqlAdapter - PostgreSQL adapter for the ticket message store

This module reads ticket-system messages that feed the bot:
- the corpus used to train the Markov Chain at startup
- new messages polled afterwards and relayed to the chat

Database errors never escape the adapter: they are logged and reported to
the caller as ``None`` so that a single failed poll does not stop the bot.
"""

import psycopg2
from psycopg2 import pool

from sbot.bot.messages import TTSMessage

DEFAULT_CORPUS_CREATORS = (10,)
DEFAULT_RELAY_CREATORS = (10, 109)
DEFAULT_SECTIONS = (3, 6, 10)

# NULL texts and authors come back as empty strings
_COLUMNS = (
    "msgid, COALESCE(msgtext, ''), COALESCE(msgauthor, ''), "
    "msgsectionid, msgsubsectionid"
)


class MessageStorePostgreSqlAdapter:
    """
    PostgreSQL adapter for the ticket message store.

    The ``msgs`` table is expected to hold at least the columns ``msgid``,
    ``msgtext``, ``msgauthor``, ``msgsectionid``, ``msgsubsectionid``,
    ``createdby`` and ``msgdate``.
    """

    def __init__(self, db_config, logger=None):
        """
        Initialize the PostgreSQL adapter.

        Args:
            db_config (dict): Connection settings (``host``, ``port``,
                ``dbname``, ``user``, ``password``) and optional filters
                (``corpus_creators``, ``relay_creators``, ``sections``)
            logger: Logger instance for logging database operations
        """
        self.db_config = db_config or {}
        self.logger = logger
        self.conn_pool = None

        self.corpus_creators = list(
            self.db_config.get("corpus_creators", DEFAULT_CORPUS_CREATORS))
        self.relay_creators = list(
            self.db_config.get("relay_creators", DEFAULT_RELAY_CREATORS))
        self.sections = list(self.db_config.get("sections", DEFAULT_SECTIONS))

        self.is_available = self._initialize_connection_pool()

    def _initialize_connection_pool(self):
        """
        Initialize the database connection pool based on configuration.

        Returns:
            bool: True if connection pool was successfully initialized, False otherwise
        """
        required_params = ["host", "dbname", "user"]
        for param in required_params:
            if param not in self.db_config:
                if self.logger:
                    self.logger.warning(
                        f"Missing required database parameter: {param}")
                return False

        try:
            self.conn_pool = pool.ThreadedConnectionPool(
                1,  # min connections
                4,  # max connections
                host=self.db_config["host"],
                port=self.db_config.get("port", 5432),
                dbname=self.db_config["dbname"],
                user=self.db_config["user"],
                password=self.db_config.get("password", ""),
            )
        except psycopg2.Error as e:
            if self.logger:
                self.logger.warning("Database connection failed", extra={
                    "metrics": {
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                })
            return False

        if self.logger:
            self.logger.info("Database connection established", extra={
                "metrics": {
                    "host": self.db_config["host"],
                    "port": self.db_config.get("port", 5432),
                    "dbname": self.db_config["dbname"],
                }
            })
        return True

    def is_usable(self):
        """
        Check if this adapter is usable (properly configured and connected).

        Returns:
            bool: True if the adapter can be used, False otherwise
        """
        return self.is_available and self.conn_pool is not None

    def get_connection(self):
        if self.conn_pool:
            try:
                return self.conn_pool.getconn()
            except psycopg2.Error as e:
                if self.logger:
                    self.logger.error(f"Error getting connection from pool: {e}")
        return None

    def return_connection(self, conn):
        if self.conn_pool and conn:
            try:
                self.conn_pool.putconn(conn)
            except psycopg2.Error as e:
                if self.logger:
                    self.logger.error(f"Error returning connection to pool: {e}")

    def fetch_corpus_messages(self, since):
        """
        Get the messages used to train the chain.

        Args:
            since (datetime): Only messages dated after this moment

        Returns:
            list or None: ``TTSMessage`` instances ordered by id, or None on error
        """
        return self._select_messages(
            f"""
            SELECT {_COLUMNS} FROM msgs
            WHERE createdby = ANY(%s) AND msgsectionid = ANY(%s) AND msgdate > %s
            ORDER BY msgid ASC
            """,
            (self.corpus_creators, self.sections, since),
            "corpus",
        )

    def fetch_messages_after(self, last_id):
        """
        Get the messages to relay that arrived after ``last_id``.

        Args:
            last_id (int): Id of the last processed message

        Returns:
            list or None: ``TTSMessage`` instances ordered by id, or None on error
        """
        return self._select_messages(
            f"""
            SELECT {_COLUMNS} FROM msgs
            WHERE createdby = ANY(%s) AND msgsectionid = ANY(%s) AND msgid > %s
            ORDER BY msgid ASC
            """,
            (self.relay_creators, self.sections, last_id),
            "relay",
        )

    def latest_message_id(self):
        """
        Get the highest message id in the store.

        Returns:
            int or None: The id, 0 for an empty store, or None on error
        """
        conn = self.get_connection()
        if not conn:
            return None

        try:
            with conn.cursor() as cur:
                cur.execute("SELECT msgid FROM msgs ORDER BY msgid DESC LIMIT 1")
                row = cur.fetchone()
            conn.rollback()
            return row[0] if row else 0

        except psycopg2.Error as e:
            conn.rollback()
            if self.logger:
                self.logger.error(f"Error getting latest message id: {e}")
            return None

        finally:
            self.return_connection(conn)

    def _select_messages(self, query, params, purpose):
        conn = self.get_connection()
        if not conn:
            return None

        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
            # Read-only session: end the transaction opened by the SELECT
            conn.rollback()
            return [TTSMessage(*row) for row in rows]

        except psycopg2.Error as e:
            conn.rollback()
            if self.logger:
                self.logger.error(f"Error fetching {purpose} messages: {e}", extra={
                    "metrics": {"error_type": type(e).__name__}
                })
            return None

        finally:
            self.return_connection(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.conn_pool:
            try:
                self.conn_pool.closeall()
                if self.logger:
                    self.logger.info("Database connections closed")
            except psycopg2.Error as e:
                if self.logger:
                    self.logger.error(f"Error closing database connections: {e}")
