"""ChannelLifecycleCoordinator — drives channels through the clearnode and the ledger.

Every operation follows the same shape:

    protocol request → co-signed proposal from the clearnode
      → ledger submission awaited to a receipt
      → authoritative state re-read from the ledger
      → status advanced

The clearnode only proposes; a status moves past CREATING/RESIZING/CLOSING
once the ledger has confirmed the matching transaction. Responses are matched
against the current PendingOperation; anything else is dropped unapplied.
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import TypeVar

from config.settings import settings
from src.pm_channel.domain.ledger import LedgerGateway
from src.pm_channel.domain.models import Channel, PendingOperation, Receipt, UnifiedBalance
from src.pm_channel.domain.retry import RetryPolicy, poll_until
from src.pm_channel.domain.transitions import (
    RESPONSE_HANDLERS,
    TERMINAL_STATUSES,
    ChannelView,
    Outcome,
    SubmitClose,
    SubmitCreate,
    SubmitResize,
    Transition,
    can_transition,
    pending_key,
)
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import ChannelStatus, OperationKind
from src.pm_common.errors import (
    AppError,
    ChannelCloseError,
    ChannelCreationError,
    ChannelNotFoundError,
    ChannelResizeError,
    FundingTimeoutError,
    InternalError,
    InvalidArgumentError,
    InvalidChannelStateError,
    NotAuthenticatedError,
    OperationAbandonedError,
    OperationInProgressError,
    ProtocolTimeoutError,
)
from src.pm_session.application.session import ChannelSessionManager
from src.pm_session.protocol.messages import (
    BalanceUpdate,
    ChannelInfo,
    ChannelsUpdate,
    CloseChannelRequest,
    CreateChannelRequest,
    ErrorMessage,
    GetLedgerBalancesRequest,
    InboundMessage,
    LedgerBalances,
    OutboundMessage,
    ResizeChannelRequest,
)

logger = logging.getLogger(__name__)

PendingKey = tuple[str | None, OperationKind]
ErrorFactory = Callable[[str], AppError]
E = TypeVar("E")

_FUNDABLE = (ChannelStatus.AWAITING_FUNDING, ChannelStatus.OPEN)
_CLOSABLE = (ChannelStatus.OPEN, ChannelStatus.AWAITING_FUNDING)


class ChannelLifecycleCoordinator:
    """Owns the channel mirror for one authenticated session.

    Construct after ``session.connect()``: it subscribes to the session's
    inbound stream immediately.
    """

    def __init__(
        self,
        session: ChannelSessionManager,
        ledger: LedgerGateway,
        *,
        retry_policy: RetryPolicy | None = None,
        protocol_timeout: float = settings.PROTOCOL_TIMEOUT_SECONDS,
        confirmation_timeout: float = settings.CONFIRMATION_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.FUNDING_POLL_MAX_ATTEMPTS,
            interval=settings.FUNDING_POLL_INTERVAL_SECONDS,
        )
        self._protocol_timeout = protocol_timeout
        self._confirmation_timeout = confirmation_timeout

        self._channels: dict[str, Channel] = {}
        self._pending: dict[PendingKey, PendingOperation] = {}
        self._directory: dict[str, ChannelInfo] = {}
        self._balances: dict[str, Decimal] = {}
        self._unsubscribe = session.listen(self._on_message)

    def detach(self) -> None:
        """Stop consuming session messages."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def channels(self) -> list[Channel]:
        return list(self._channels.values())

    @property
    def counterparty_channels(self) -> list[ChannelInfo]:
        """Channel directory as last pushed by the clearnode."""
        return list(self._directory.values())

    @property
    def pending_operations(self) -> list[PendingOperation]:
        return list(self._pending.values())

    def get_channel(self, channel_id: str) -> Channel:
        channel = self._channels.get(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        return channel

    def unified_balance(self) -> UnifiedBalance:
        return UnifiedBalance(assets=dict(self._balances))

    async def request_ledger_balances(self) -> None:
        """Ask the clearnode for the unified balance; the answer lands via ``unified_balance``."""
        user = self._require_user()
        await self._session.send_message(GetLedgerBalancesRequest(participant=user))

    async def refresh_channel(self, channel_id: str) -> Channel:
        """Re-read a tracked channel's allocations from the ledger."""
        channel = self.get_channel(channel_id)
        await self._reconcile(channel)
        return channel

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_channel(
        self,
        token: str,
        initial_amount: int = 0,
        chain_id: int = settings.CHAIN_ID,
    ) -> Channel:
        """Open a channel with the clearnode; funds it when ``initial_amount > 0``.

        Returns once the channel is AWAITING_FUNDING (no initial amount) or
        OPEN (funded). Never jumps from CREATING straight to OPEN.
        """
        user = self._require_user()
        if initial_amount < 0:
            raise InvalidArgumentError("initial_amount must be non-negative")
        if self._pending:
            raise OperationInProgressError("create_channel")

        key: PendingKey = (None, OperationKind.CREATE)
        pending = self._open_pending(key, None, initial_amount)
        channel: Channel | None = None
        try:
            transition = await self._exchange(pending, CreateChannelRequest(chain_id=chain_id, token=token))
            if transition.outcome is Outcome.REJECT:
                raise ChannelCreationError("rejected by clearnode", reason=transition.reason)
            effect = _effect(transition, SubmitCreate)

            channel = Channel(
                channel_id=effect.channel_id,
                chain_id=chain_id,
                token=token,
                participants=effect.definition.participants,
                allocations=effect.state.allocations,
            )
            self._channels[channel.channel_id] = channel
            pending.channel_id = channel.channel_id
            self._advance(channel, ChannelStatus.CREATING)

            await self._confirm(
                self._ledger.submit_create_channel(effect.definition, effect.state, effect.server_signature),
                f"create of {channel.channel_id}",
                ChannelCreationError,
            )
            self._ensure_current(pending)
            await self._reconcile(channel)
            self._advance(channel, ChannelStatus.AWAITING_FUNDING)
        except OperationAbandonedError:
            raise
        except AppError:
            if channel is not None:
                self._advance(channel, ChannelStatus.FAILED)
            raise
        except Exception as exc:
            if channel is not None:
                self._advance(channel, ChannelStatus.FAILED)
            raise ChannelCreationError(str(exc)) from exc
        finally:
            self._release(key, pending)

        logger.info("Channel %s created for %s on chain %d", channel.channel_id, user, chain_id)
        if initial_amount > 0:
            return await self.resize_channel(channel.channel_id, initial_amount)
        return channel

    # ------------------------------------------------------------------
    # Resize (funding)
    # ------------------------------------------------------------------

    async def resize_channel(self, channel_id: str, amount: int) -> Channel:
        """Move ``amount`` from the unified balance into the channel.

        Waits (bounded by the retry policy) for the custody balance to cover
        the co-signed allocation before ratifying the resize on-chain. Any
        failure restores the status the channel had before the call.
        """
        user = self._require_user()
        channel = self.get_channel(channel_id)
        if amount <= 0:
            raise InvalidArgumentError("resize amount must be positive")
        key: PendingKey = (channel_id, OperationKind.RESIZE)
        if key in self._pending:
            raise OperationInProgressError("resize_channel", channel_id)
        if channel.status not in _FUNDABLE:
            raise InvalidChannelStateError(channel_id, channel.status.value, "resize")

        previous = channel.status
        pending = self._open_pending(key, channel_id, amount)
        self._advance(channel, ChannelStatus.RESIZING)
        submitted = False
        try:
            transition = await self._exchange(
                pending,
                ResizeChannelRequest(channel_id=channel_id, funds_destination=user, allocate_amount=amount),
            )
            if transition.outcome is Outcome.REJECT:
                raise ChannelResizeError(channel_id, "rejected by clearnode", reason=transition.reason)
            signed = _effect(transition, SubmitResize).signed_state

            on_chain = await self._ledger.get_channel_data(channel_id)
            proofs = [on_chain.last_valid_state] if on_chain.last_valid_state is not None else []
            await self._await_funds(channel, user, signed.state.total_for(channel.token))
            self._ensure_current(pending)

            submitted = True
            await self._confirm(
                self._ledger.submit_resize(signed, proofs),
                f"resize of {channel_id}",
                functools.partial(ChannelResizeError, channel_id),
            )
            self._ensure_current(pending)
            await self._reconcile(channel)
            self._advance(channel, ChannelStatus.OPEN)
        except OperationAbandonedError:
            # once submitted the ledger may still ratify it: leave the mirror for refresh_channel
            if not submitted:
                self._revert(channel, previous)
            raise
        except AppError:
            self._revert(channel, previous)
            raise
        except Exception as exc:
            self._revert(channel, previous)
            raise ChannelResizeError(channel_id, str(exc)) from exc
        finally:
            self._release(key, pending)

        logger.info("Channel %s funded: %s now allocated to %s", channel_id, channel.amount_for(user), user)
        return channel

    async def _await_funds(self, channel: Channel, user: str, required: int) -> None:
        observed, attempts = await poll_until(
            functools.partial(self._ledger.get_account_balance, user, channel.token),
            lambda balance: balance >= required,
            self._retry_policy,
            label=f"custody balance for {channel.channel_id}",
        )
        if observed < required:
            raise FundingTimeoutError(channel.channel_id, required, observed, attempts)
        logger.info("Custody balance %d covers required %d (%d attempts)", observed, required, attempts)

    # ------------------------------------------------------------------
    # Close + withdraw
    # ------------------------------------------------------------------

    async def close_channel(self, channel_id: str) -> Channel:
        """Finalize the channel on-chain, then withdraw whatever custody holds.

        CLOSED is reached only after the withdrawal succeeds or the custody
        balance is zero. If the close landed but the withdrawal failed, the
        channel stays CLOSING and calling this again retries the withdrawal.
        """
        user = self._require_user()
        channel = self.get_channel(channel_id)
        key: PendingKey = (channel_id, OperationKind.CLOSE)
        if key in self._pending:
            raise OperationInProgressError("close_channel", channel_id)

        if channel.status is ChannelStatus.CLOSING and channel.close_confirmed:
            pending = self._open_pending(key, channel_id, 0)
            try:
                await self._withdraw(channel, user, pending)
            finally:
                self._release(key, pending)
            return channel

        if channel.status not in _CLOSABLE:
            raise InvalidChannelStateError(channel_id, channel.status.value, "close")

        previous = channel.status
        pending = self._open_pending(key, channel_id, channel.amount_for(user))
        self._advance(channel, ChannelStatus.CLOSING)
        submitted = False
        try:
            try:
                transition = await self._exchange(
                    pending, CloseChannelRequest(channel_id=channel_id, funds_destination=user)
                )
                if transition.outcome is Outcome.REJECT:
                    raise ChannelCloseError(channel_id, "rejected by clearnode", reason=transition.reason)
                signed = _effect(transition, SubmitClose).signed_state

                submitted = True
                await self._confirm(
                    self._ledger.submit_close(signed),
                    f"close of {channel_id}",
                    functools.partial(ChannelCloseError, channel_id),
                )
                self._ensure_current(pending)
                channel.close_confirmed = True
                channel.allocations = signed.state.allocations
            except OperationAbandonedError:
                if not submitted:
                    self._revert(channel, previous)
                raise
            except AppError:
                self._revert(channel, previous)
                raise
            except Exception as exc:
                self._revert(channel, previous)
                raise ChannelCloseError(channel_id, str(exc)) from exc

            # the close is ratified: from here a failure leaves the channel CLOSING
            await self._withdraw(channel, user, pending)
        finally:
            self._release(key, pending)
        return channel

    async def _withdraw(self, channel: Channel, user: str, pending: PendingOperation) -> None:
        try:
            balance = await self._ledger.get_account_balance(user, channel.token)
            if balance > 0:
                await self._confirm(
                    self._ledger.submit_withdrawal(channel.token, balance),
                    f"withdrawal of {balance} from custody",
                    functools.partial(ChannelCloseError, channel.channel_id),
                )
            else:
                logger.info("Custody balance is zero, nothing to withdraw for %s", channel.channel_id)
        except AppError:
            logger.warning("Withdrawal failed; channel %s stays CLOSING", channel.channel_id)
            raise
        except Exception as exc:
            raise ChannelCloseError(channel.channel_id, f"withdrawal failed: {exc}") from exc

        self._ensure_current(pending)
        channel.allocations = ()
        self._advance(channel, ChannelStatus.CLOSED)
        logger.info("Channel %s closed", channel.channel_id)

    # ------------------------------------------------------------------
    # Ensure funded (reuse or create)
    # ------------------------------------------------------------------

    async def ensure_funded_channel(
        self,
        token: str,
        amount: int,
        chain_id: int = settings.CHAIN_ID,
    ) -> Channel:
        """Return a channel holding at least ``amount`` of ``token`` for the user.

        Reuses a tracked channel first, then one the clearnode or the ledger
        reports as open, topping it up when short; creates a new channel
        otherwise. A funded channel comes back OPEN. With ``amount == 0`` an
        unfunded channel satisfies the request and is returned as it is,
        AWAITING_FUNDING when it was just created.
        """
        user = self._require_user()
        if amount < 0:
            raise InvalidArgumentError("amount must be non-negative")

        channel = self._find_open(token, chain_id) or await self._adopt_open(user, token, chain_id)
        if channel is None:
            logger.info("No open %s channel for %s, creating one", token, user)
            return await self.create_channel(token, amount, chain_id)

        funded = channel.amount_for(user)
        if funded >= amount:
            logger.info("Channel %s already funded with %d (need %d)", channel.channel_id, funded, amount)
            return channel
        return await self.resize_channel(channel.channel_id, amount - funded)

    def _find_open(self, token: str, chain_id: int) -> Channel | None:
        for channel in self._channels.values():
            if (
                channel.status in _FUNDABLE
                and channel.chain_id == chain_id
                and channel.token.lower() == token.lower()
            ):
                return channel
        return None

    async def _adopt_open(self, user: str, token: str, chain_id: int) -> Channel | None:
        candidates = [
            info.channel_id
            for info in self._directory.values()
            if info.status == ChannelStatus.OPEN.value
            and (info.token is None or info.token.lower() == token.lower())
            and (info.chain_id is None or info.chain_id == chain_id)
        ]
        candidates += [cid for cid in await self._ledger.get_open_channels(user) if cid not in candidates]

        for channel_id in candidates:
            if channel_id in self._channels:
                continue
            on_chain = await self._ledger.get_channel_data(channel_id)
            state = on_chain.last_valid_state
            if state is None or not any(a.token.lower() == token.lower() for a in state.allocations):
                continue
            channel = Channel(channel_id=channel_id, chain_id=chain_id, token=token)
            self._channels[channel_id] = channel
            await self._reconcile(channel)
            self._advance(channel, ChannelStatus.OPEN)
            logger.info("Adopted open channel %s from the ledger", channel_id)
            return channel
        return None

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def abandon(self, channel_id: str | None, kind: OperationKind) -> bool:
        """Drop the pending operation; its caller gets OperationAbandonedError.

        A response arriving afterwards finds no current operation and is
        ignored. Returns False when nothing was pending.
        """
        key = pending_key(kind, channel_id)
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending.abandoned = True
        if not pending.response.done():
            pending.response.set_exception(OperationAbandonedError(kind.value.lower(), pending.channel_id))
        logger.info("Abandoned %s for %s", kind.value, pending.channel_id or "new channel")
        return True

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    def _on_message(self, message: InboundMessage) -> None:
        if isinstance(message, ErrorMessage):
            self._on_error_message(message)
            return
        if isinstance(message, ChannelsUpdate):
            for info in message.channels:
                self._directory[info.channel_id] = info
            logger.debug("Channel directory now holds %d entries", len(self._directory))
            return
        if isinstance(message, LedgerBalances):
            self._balances = {b.asset: b.amount for b in message.ledger_balances}
            return
        if isinstance(message, BalanceUpdate):
            for balance in message.balance_updates:
                self._balances[balance.asset] = balance.amount
            return

        entry = RESPONSE_HANDLERS.get(type(message))
        if entry is None:
            return
        kind, handler = entry
        pending = self._pending.get(pending_key(kind, message.channel_id))
        view = ChannelView(
            user=self._session.wallet_address or "",
            channel=self._channels.get(message.channel_id),
            pending=pending,
        )
        transition = handler(view, message)
        if transition.outcome is Outcome.IGNORE or pending is None or pending.response.done():
            logger.info("Ignoring %s for %s: %s", message.method, message.channel_id, transition.reason)
            return
        pending.response.set_result(transition)

    def _on_error_message(self, message: ErrorMessage) -> None:
        for pending in self._pending.values():
            if (
                message.request_id is not None
                and pending.request_id == message.request_id
                and not pending.response.done()
            ):
                pending.response.set_result(Transition(Outcome.REJECT, reason=message.error))
                return
        logger.warning("Clearnode error not tied to a pending operation: %s", message.error)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self) -> str:
        user = self._session.wallet_address
        if not self._session.is_authenticated or user is None:
            raise NotAuthenticatedError()
        return user

    def _open_pending(self, key: PendingKey, channel_id: str | None, amount: int) -> PendingOperation:
        pending = PendingOperation(
            kind=key[1],
            channel_id=channel_id,
            expected_amount=amount,
            requested_at=utc_now(),
            response=asyncio.get_running_loop().create_future(),
        )
        self._pending[key] = pending
        return pending

    def _release(self, key: PendingKey, pending: PendingOperation) -> None:
        if self._pending.get(key) is pending:
            del self._pending[key]

    def _ensure_current(self, pending: PendingOperation) -> None:
        if pending.abandoned:
            raise OperationAbandonedError(pending.kind.value.lower(), pending.channel_id)

    async def _exchange(self, pending: PendingOperation, message: OutboundMessage) -> Transition:
        pending.request_id = await self._session.send_message(message)
        try:
            return await asyncio.wait_for(pending.response, self._protocol_timeout)
        except TimeoutError as exc:
            logger.warning("No %s response within %ss", message.method, self._protocol_timeout)
            raise ProtocolTimeoutError(message.method, self._protocol_timeout, pending.channel_id) from exc

    async def _confirm(self, submission: Awaitable[Receipt], what: str, error: ErrorFactory) -> Receipt:
        try:
            receipt = await asyncio.wait_for(submission, self._confirmation_timeout)
        except TimeoutError as exc:
            raise error(f"{what} not confirmed within {self._confirmation_timeout}s") from exc
        if not receipt.succeeded:
            raise error(f"{what} reverted in {receipt.tx_hash}")
        logger.info("%s confirmed in %s (block %s)", what, receipt.tx_hash, receipt.block_number)
        return receipt

    async def _reconcile(self, channel: Channel) -> None:
        on_chain = await self._ledger.get_channel_data(channel.channel_id)
        if on_chain.participants:
            channel.participants = on_chain.participants
        if on_chain.last_valid_state is not None:
            channel.allocations = on_chain.last_valid_state.allocations

    def _advance(self, channel: Channel, status: ChannelStatus) -> None:
        if not can_transition(channel.status, status):
            raise InternalError(
                f"illegal channel transition {channel.status.value} -> {status.value} for {channel.channel_id}"
            )
        logger.info("Channel %s: %s -> %s", channel.channel_id, channel.status.value, status.value)
        channel.status = status
        channel.history.append(status)

    def _revert(self, channel: Channel, previous: ChannelStatus) -> None:
        if channel.status is not previous and channel.status not in TERMINAL_STATUSES:
            self._advance(channel, previous)


def _effect(transition: Transition, expected: type[E]) -> E:
    if not isinstance(transition.effect, expected):
        raise InternalError(f"expected {expected.__name__}, got {transition.effect!r}")
    return transition.effect
