"""
Delivery of a freshly created session string to the user's own WhatsApp.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List

from pairing_api.logger import logger, mask_phone
from pairing_api.whatsapp.client import LinkedDeviceClient

DIVIDER = "━━━━━━━━━━━━━━━━━━━━"


def build_delivery_messages(session_string: str, brand: str) -> List[str]:
    """Success notice, the session string itself, then usage instructions."""
    success = (
        f"✅ *{brand} — Pairing Successful!*\n\n"
        "🎉 Your bot has been linked successfully!\n\n"
        "Your session string is coming right up 👇\n\n"
        f"{DIVIDER}"
    )
    instructions = (
        "📋 *How to use your session string:*\n\n"
        "1️⃣ Go to your *Pterodactyl Panel*\n"
        "2️⃣ Open your bot server\n"
        "3️⃣ Go to *Startup* tab\n"
        "4️⃣ Find *SESSION_DATA* variable\n"
        "5️⃣ Paste the string above\n"
        "6️⃣ Click *Start* → Bot is live! 🚀\n\n"
        f"{DIVIDER}\n"
        "⚠️ *Keep this string private! Anyone with it can control your bot.*\n\n"
        f"🤖 *Powered by {brand}*"
    )
    return [success, session_string, instructions]


async def deliver_session(
    client: LinkedDeviceClient,
    phone: str,
    session_string: str,
    brand: str,
    interval: float = 1.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """
    Send the session string to ``phone`` as three consecutive messages.

    Failures are logged and reported through the return value only; the
    session stays connected either way.
    """
    messages = build_delivery_messages(session_string, brand)
    try:
        for index, text in enumerate(messages):
            if index:
                await sleep(interval)
            await client.send_text(phone, text)
    except Exception as e:
        logger.error("session_delivery_failed", phone=mask_phone(phone), error=str(e))
        return False

    logger.info("session_delivered", phone=mask_phone(phone))
    return True
