"""Core types for the wrapped alpha bridge."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, NewType, Optional, Tuple

from core.errors import ChainNotBridgeableError, ConfigurationError, InputError

# Type aliases
Address = NewType("Address", str)  # 0x-prefixed, EIP-55 checksummed
TxHash = NewType("TxHash", str)  # 0x-prefixed hex


@dataclass(frozen=True)
class Network:
    """A chain reachable through one or more RPC endpoints."""
    id: str
    rpc_urls: Tuple[str, ...]
    aliases: Tuple[str, ...] = ()
    explorer_tx_url: Optional[str] = None  # contains "{hash}"
    native_symbol: str = "TAO"

    def explorer_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_tx_url:
            return None
        return self.explorer_tx_url.format(hash=tx_hash)


@dataclass(frozen=True)
class BalanceRecord:
    """Token balance of one owner on one contract."""
    symbol: str
    balance: int  # smallest unit
    decimals: int
    contract: Optional[str] = None

    @classmethod
    def unknown(cls, contract: Optional[str] = None) -> "BalanceRecord":
        return cls(symbol="Unknown", balance=0, decimals=18, contract=contract)


@dataclass(frozen=True)
class MessagingFee:
    """Fee quoted by the OFT contract for one send."""
    native_fee: int
    lz_token_fee: int = 0

    @classmethod
    def from_quote(cls, result: Any) -> "MessagingFee":
        """Normalize a quoteSend result.

        Some ABIs decode the fee as a struct with named fields, others as a
        positional tuple. Both are accepted here so nothing downstream has to
        care which one the contract returned.
        """
        if isinstance(result, Mapping):
            native = result.get("nativeFee")
            lz_token = result.get("lzTokenFee", 0)
        elif hasattr(result, "nativeFee"):
            native = result.nativeFee
            lz_token = getattr(result, "lzTokenFee", 0)
        else:
            native = result[0]
            lz_token = result[1] if len(result) > 1 else 0

        if native is None:
            raise ValueError(f"Quote result has no native fee: {result!r}")
        return cls(native_fee=int(native), lz_token_fee=int(lz_token or 0))

    def as_tuple(self) -> Tuple[int, int]:
        return (self.native_fee, self.lz_token_fee)


@dataclass(frozen=True)
class TransferRequest:
    """A validated cross-chain send. Build a new one for any retry."""
    netuid: str
    source_chain: str
    destination_chain: str
    destination_eid: int
    token_contract: str
    amount: int  # smallest unit
    recipient: str
    min_amount: int = 0  # no slippage protection
    extra_options: bytes = b""  # default executor options
    compose_msg: bytes = b""
    oft_cmd: bytes = b""

    @classmethod
    def build(
        cls,
        eids: Mapping[str, int],
        *,
        netuid: str,
        source_chain: str,
        destination_chain: str,
        token_contract: str,
        amount: int,
        observed_balance: int,
        recipient: str,
    ) -> "TransferRequest":
        """Validate every field and construct the request.

        Raises:
            ConfigurationError: If the chains are equal
            ChainNotBridgeableError: If a chain has no endpoint id
            InputError: If the amount is not positive or exceeds the balance
        """
        if source_chain == destination_chain:
            raise ConfigurationError("Source and destination chains must differ")
        for chain in (source_chain, destination_chain):
            if chain not in eids:
                raise ChainNotBridgeableError(chain)
        if amount <= 0:
            raise InputError("Amount must be greater than zero")
        if amount > observed_balance:
            raise InputError("Insufficient balance")

        return cls(
            netuid=netuid,
            source_chain=source_chain,
            destination_chain=destination_chain,
            destination_eid=int(eids[destination_chain]),
            token_contract=token_contract,
            amount=amount,
            recipient=recipient,
        )

    def recipient_bytes32(self) -> bytes:
        raw = bytes.fromhex(self.recipient[2:] if self.recipient.startswith("0x") else self.recipient)
        return raw.rjust(32, b"\0")

    def to_send_param(self) -> Tuple[int, bytes, int, int, bytes, bytes, bytes]:
        """SendParam struct in ABI order."""
        return (
            self.destination_eid,
            self.recipient_bytes32(),
            self.amount,
            self.min_amount,
            self.extra_options,
            self.compose_msg,
            self.oft_cmd,
        )


class TransferStatus(Enum):
    """Lifecycle of a submitted transfer."""
    SUBMITTED = "submitted"
    PENDING_CONFIRMATION = "pending_confirmation"
    DELIVERED = "delivered"
    DELIVERED_ALT = "delivered_alt"
    FAILED_TIMEOUT = "failed_timeout"
    FAILED_ERROR = "failed_error"

    @property
    def is_terminal(self) -> bool:
        return self not in (TransferStatus.SUBMITTED, TransferStatus.PENDING_CONFIRMATION)


@dataclass
class TransferOutcome:
    """Final report of a transfer."""
    status: TransferStatus
    transaction_hash: str
    explorer_url: str
    polls: int = 0
    last_status_name: Optional[str] = None
    native_fee: Optional[int] = None
    error: Optional[str] = None
    source_explorer_url: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status is TransferStatus.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delivered": self.delivered,
            "transaction_hash": self.transaction_hash,
            "explorer_url": self.explorer_url,
            "status": self.status.value,
            "last_status_name": self.last_status_name,
        }


@dataclass
class TransferDraft:
    """Parameters known so far while resolving a transfer."""
    netuid: Optional[str] = None
    from_chain: Optional[str] = None
    to_chain: Optional[str] = None
    amount: Optional[str] = None
    destination: Optional[str] = None
    balances: Dict[str, BalanceRecord] = field(default_factory=dict)  # netuid -> record
    after_wrap: bool = False  # resumed by a wrap hand-off

    def saved_parameters(self) -> Dict[str, Any]:
        """Parameters carried across a workflow hand-off."""
        return {
            "netuid": self.netuid,
            "from_chain": self.from_chain,
            "to_chain": self.to_chain,
        }
