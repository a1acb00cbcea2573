"""Interactive login for the Telethon publishing session.

Only the "client" publishing method needs this; the resulting .session file
is reused by ``cargoscope run`` and ``cargoscope console``.
"""

import asyncio
import logging
import os
from getpass import getpass

import qrcode
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

QR_ATTEMPTS = 3
QR_TIMEOUT_SECONDS = 120


def _show_qr(url: str) -> None:
    code = qrcode.QRCode(border=1)
    code.add_data(url)
    code.make(fit=True)
    code.print_ascii(invert=True)
    print("Scan with Telegram: Settings > Devices > Link Desktop Device")


def _two_factor_password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    qr_login = await client.qr_login()
    for attempt in range(1, QR_ATTEMPTS + 1):
        _show_qr(qr_login.url)
        try:
            await qr_login.wait(timeout=QR_TIMEOUT_SECONDS)
            return
        except asyncio.TimeoutError:
            if attempt == QR_ATTEMPTS:
                raise RuntimeError("QR code was not scanned in time")
            LOGGER.info("QR code expired, generating a new one (%s/%s)", attempt + 1, QR_ATTEMPTS)
            await qr_login.recreate()


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    await client.sign_in(phone=phone, code=code)


def _choose_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    options = {"1": "qr", "2": "phone"}
    while True:
        print("")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        choice = input("cargoscope > ").strip()
        if choice in options:
            return options[choice]
        if choice == "3":
            raise SystemExit(0)
        print("Choose 1, 2 or 3.")


async def authorize(client: TelegramClient) -> None:
    """Sign the client in unless its session is already authorized."""

    if await client.is_user_authorized():
        LOGGER.info("Session is already authorized")
        return

    login = _login_with_phone if _choose_method() == "phone" else _login_with_qr
    try:
        await login(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_two_factor_password())

    me = await client.get_me()
    LOGGER.info("Logged in as: %s", getattr(me, "first_name", None) or getattr(me, "id", "?"))


async def login(client: TelegramClient) -> None:
    await client.connect()
    try:
        await authorize(client)
    finally:
        await client.disconnect()
