"""
Telegram wiring for ChainBot.

Store access (relay polling and chain rebuilds) runs in worker threads so the
event loop keeps answering chat messages meanwhile. Replies only read the
current chain reference, which a rebuild replaces as a whole.
"""

import asyncio

from telegram.error import TelegramError
from telegram.ext import Application, MessageHandler, filters


def make_message_handler(chain_bot):
    async def on_message(update, context):
        message = update.effective_message
        if message is None or message.text is None:
            return

        reply = chain_bot.reply_to(update.effective_chat.id, message.text)
        if reply is None:
            return

        try:
            await context.bot.send_message(chat_id=update.effective_chat.id, text=reply)
        except TelegramError as e:
            chain_bot.logger.error(f"Error sending reply: {e}")

    return on_message


def make_relay_job(chain_bot):
    async def relay(context):
        texts = await asyncio.to_thread(chain_bot.poll_relay)
        for text in texts:
            try:
                await context.bot.send_message(chat_id=chain_bot.chat_id, text=text)
            except TelegramError as e:
                chain_bot.logger.error(f"Error relaying message: {e}")

    return relay


def make_rebuild_job(chain_bot):
    async def rebuild(context):
        await asyncio.to_thread(chain_bot.rebuild)

    return rebuild


def build_application(chain_bot, config):
    """
    Create the Telegram application for a bot.

    Args:
        chain_bot (ChainBot): The bot answering messages
        config (BotConfig): Token and scheduling settings

    Returns:
        telegram.ext.Application: Application ready for ``run_polling``
    """
    application = Application.builder().token(config.token).build()
    application.add_handler(MessageHandler(
        filters.TEXT & ~filters.COMMAND, make_message_handler(chain_bot)))

    application.job_queue.run_repeating(
        make_relay_job(chain_bot),
        interval=config.poll_interval,
        first=config.poll_interval,
        name="relay",
    )
    if config.rebuild_interval > 0:
        application.job_queue.run_repeating(
            make_rebuild_job(chain_bot),
            interval=config.rebuild_interval,
            first=config.rebuild_interval,
            name="rebuild",
        )

    return application
