"""End-to-end channel flow against a live clearnode and custody contract.

Connects, authenticates with WALLET_PRIVATE_KEY, makes sure an open channel
holds the requested amount, and optionally closes it and withdraws.

    python run_channel_flow.py --token 0x1c7D...7238 --amount 20 --decimals 6 --close
"""

import argparse
import logging
import sys

import uvloop

from config.settings import settings
from src.pm_channel.application.coordinator import ChannelLifecycleCoordinator
from src.pm_channel.infrastructure.custody import Web3CustodyGateway
from src.pm_common.errors import AppError
from src.pm_common.units import format_balance_with_symbol, to_base_units
from src.pm_session.application.schemas import AuthParams
from src.pm_session.application.session import ChannelSessionManager
from src.pm_session.infrastructure.local_signer import LocalWalletSigner
from src.pm_session.infrastructure.websocket_transport import WebSocketTransport
from src.pm_session.protocol.messages import Allowance

logger = logging.getLogger("run_channel_flow")

SEPOLIA_USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"


def section(title):
    print(f"\n{'='*60}")
    print(f"### {title} ###")
    print('='*60)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--token", default=SEPOLIA_USDC)
    parser.add_argument("--symbol", default="usdc", help="asset symbol for the session allowance")
    parser.add_argument("--amount", default="20", help="human-readable amount to hold in the channel")
    parser.add_argument("--decimals", type=int, default=6)
    parser.add_argument("--chain-id", type=int, default=settings.CHAIN_ID)
    parser.add_argument("--close", action="store_true", help="close the channel and withdraw afterwards")
    return parser.parse_args(argv)


async def run(args) -> int:
    if not settings.WALLET_PRIVATE_KEY:
        logger.error("WALLET_PRIVATE_KEY is not set")
        return 2

    signer = LocalWalletSigner.from_key(settings.WALLET_PRIVATE_KEY)
    amount = to_base_units(args.amount, args.decimals)
    session = ChannelSessionManager(
        lambda: WebSocketTransport(settings.CLEARNODE_WS_URL, open_timeout=settings.CONNECT_TIMEOUT_SECONDS)
    )
    session.on_error(lambda exc: logger.warning("session error [%s]: %s", exc.kind, exc.message))

    section("CONNECT")
    await session.connect()
    try:
        section("AUTHENTICATE")
        await session.authenticate(
            signer,
            AuthParams(allowances=[Allowance(asset=args.symbol, amount=args.amount)]),
        )
        print(f"wallet {signer.address} / session key {session.session_key.address}")

        ledger = Web3CustodyGateway.connect(signer.account, args.chain_id)
        coordinator = ChannelLifecycleCoordinator(session, ledger)
        await coordinator.request_ledger_balances()

        section("ENSURE FUNDED CHANNEL")
        channel = await coordinator.ensure_funded_channel(args.token, amount, args.chain_id)
        held = format_balance_with_symbol(channel.amount_for(signer.address), args.symbol.upper(), args.decimals)
        print(f"channel {channel.channel_id}: {channel.status.value}, holding {held}")
        print("history:", " -> ".join(s.value for s in channel.history) or "(adopted)")

        if args.close:
            section("CLOSE + WITHDRAW")
            channel = await coordinator.close_channel(channel.channel_id)
            print(f"channel {channel.channel_id}: {channel.status.value}")

        balance = coordinator.unified_balance()
        for asset, value in balance.assets.items():
            print(f"unified balance {asset}: {value}")
    except AppError as exc:
        logger.error("%s (%d): %s", exc.kind, exc.code, exc.message)
        if exc.reason:
            logger.error("clearnode reason: %s", exc.reason)
        return 1
    finally:
        await session.disconnect()
    return 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return uvloop.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
