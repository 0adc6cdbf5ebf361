"""
transparency/ledgers.py

Contract adapters for the two on-chain ledgers.

- SpendingLedger wraps GovernmentSpending.
- FeedbackLedger wraps CitizenFeedback.

Reads are side-effect free and safe to retry. Failure mapping:
- transport / RPC / decoding failure -> ChainUnavailable
- revert on a get-by-id read         -> RecordNotFound
- arguments that do not fit the ABI -> ValidationError (nothing is sent)
- any other failure on a write       -> TransactionRejected (never retried)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Tuple

import aiohttp
from web3 import AsyncWeb3
from web3.exceptions import (
    ContractLogicError,
    MismatchedABI,
    TimeExhausted,
    Web3Exception,
    Web3ValidationError,
)

from .abi import CITIZEN_FEEDBACK_ABI, GOVERNMENT_SPENDING_ABI
from .errors import ChainUnavailable, RecordNotFound, TransactionRejected, ValidationError
from .records import FeedbackRecord, SpendingRecord

logger = logging.getLogger(__name__)

# Failures that mean "the node could not answer", as opposed to a contract revert.
TRANSPORT_ERRORS = (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)

# Raised locally by web3 when arguments do not fit the ABI; nothing reached the node.
ABI_INPUT_ERRORS = (MismatchedABI, Web3ValidationError)


def _as_count(value: Any, operation: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ChainUnavailable(operation, f"malformed counter {value!r}")
    return value


def _as_id_list(value: Any, operation: str) -> List[int]:
    if not isinstance(value, (list, tuple)):
        raise ChainUnavailable(operation, f"malformed id list {value!r}")
    return [_as_count(v, operation) for v in value]


def _as_pair(value: Any, operation: str) -> Tuple[int, int]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ChainUnavailable(operation, f"malformed pair {value!r}")
    return _as_count(value[0], operation), _as_count(value[1], operation)


class LedgerContract:
    """Shared call/transact plumbing around one web3 contract."""

    name = "Ledger"

    def __init__(self, w3: AsyncWeb3, contract, account=None):
        self.w3 = w3
        self.contract = contract
        self.account = account

    @property
    def address(self) -> str:
        return self.contract.address

    async def _call(self, fn_name: str, *args, not_found: Optional[str] = None):
        """
        Run a view function.

        not_found: record kind to report when the contract reverts, for
        get-by-id reads where a revert means "no such id".
        """
        try:
            return await getattr(self.contract.functions, fn_name)(*args).call()
        except ContractLogicError as exc:
            if not_found is not None:
                raise RecordNotFound(not_found, args[0] if args else None) from exc
            logger.error("%s.%s reverted: %s", self.name, fn_name, exc)
            raise ChainUnavailable(f"{self.name}.{fn_name}", str(exc)) from exc
        except TRANSPORT_ERRORS as exc:
            logger.error("%s.%s failed: %s", self.name, fn_name, exc)
            raise ChainUnavailable(f"{self.name}.{fn_name}", str(exc)) from exc

    # ------------------------------------------------------------------
    # Write plumbing
    # ------------------------------------------------------------------
    async def submit(self, fn_name: str, *args) -> str:
        """
        Sign, send and wait for one confirmation. Returns the 0x tx hash.

        Raises TransactionRejected on missing signer, node rejection or revert.
        """
        if self.account is None:
            raise TransactionRejected(fn_name, "no signer configured")

        tx_hash = None
        try:
            fn = getattr(self.contract.functions, fn_name)(*args)
            nonce = await self.w3.eth.get_transaction_count(self.account.address, "pending")
            tx = await fn.build_transaction({"from": self.account.address, "nonce": nonce})
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        except ContractLogicError as exc:
            raise TransactionRejected(fn_name, f"execution reverted: {exc}") from exc
        except ABI_INPUT_ERRORS as exc:
            raise ValidationError(f"Invalid arguments for {fn_name}: {exc}", field="args") from exc
        except TimeExhausted as exc:
            raise TransactionRejected(
                fn_name, "no receipt before timeout", AsyncWeb3.to_hex(tx_hash)
            ) from exc
        except TRANSPORT_ERRORS as exc:
            raise TransactionRejected(fn_name, str(exc)) from exc

        hex_hash = AsyncWeb3.to_hex(tx_hash)
        if receipt.get("status") != 1:
            raise TransactionRejected(fn_name, "execution reverted", hex_hash)

        logger.info("%s.%s confirmed in block %s: %s", self.name, fn_name, receipt.get("blockNumber"), hex_hash)
        return hex_hash

    async def estimate_gas(self, fn_name: str, *args) -> int:
        params = {"from": self.account.address} if self.account is not None else {}
        try:
            fn = getattr(self.contract.functions, fn_name)(*args)
            return int(await fn.estimate_gas(params))
        except ContractLogicError as exc:
            raise TransactionRejected(fn_name, f"execution would revert: {exc}") from exc
        except ABI_INPUT_ERRORS as exc:
            raise ValidationError(f"Invalid arguments for {fn_name}: {exc}", field="args") from exc
        except TRANSPORT_ERRORS as exc:
            raise ChainUnavailable(f"{self.name}.{fn_name} estimate", str(exc)) from exc

    async def gas_price(self) -> int:
        try:
            return int(await self.w3.eth.gas_price)
        except TRANSPORT_ERRORS as exc:
            raise ChainUnavailable("gas_price", str(exc)) from exc

    async def is_connected(self) -> bool:
        try:
            return bool(await self.w3.is_connected())
        except TRANSPORT_ERRORS:
            return False


class SpendingLedger(LedgerContract):
    """GovernmentSpending reads (+ recordTransaction)."""

    name = "GovernmentSpending"

    async def count(self) -> int:
        return _as_count(await self._call("transactionCount"), "transactionCount")

    async def get_by_id(self, record_id: int) -> SpendingRecord:
        raw = await self._call("getTransaction", record_id, not_found="Transaction")
        return SpendingRecord.from_chain(raw)

    async def all_department_ids(self) -> List[str]:
        raw = await self._call("getAllDepartments")
        if not isinstance(raw, (list, tuple)) or not all(isinstance(v, str) for v in raw):
            raise ChainUnavailable("getAllDepartments", f"malformed department list {raw!r}")
        return list(raw)

    async def totals_by_department(self, department_id: str) -> Tuple[int, int]:
        raw = await self._call("getTotalSpendingByDepartment", department_id)
        return _as_pair(raw, "getTotalSpendingByDepartment")

    async def ids_between(self, start_ts: int, end_ts: int) -> List[int]:
        raw = await self._call("getTransactionsByDateRange", start_ts, end_ts)
        return _as_id_list(raw, "getTransactionsByDateRange")


class FeedbackLedger(LedgerContract):
    """CitizenFeedback reads (+ submitFeedback)."""

    name = "CitizenFeedback"

    async def count(self) -> int:
        return _as_count(await self._call("feedbackCount"), "feedbackCount")

    async def feedback_ids_for_transaction(self, transaction_id: int) -> List[int]:
        raw = await self._call("getTransactionFeedbacks", transaction_id)
        return _as_id_list(raw, "getTransactionFeedbacks")

    async def get_by_id(self, feedback_id: int) -> FeedbackRecord:
        raw = await self._call("getFeedback", feedback_id, not_found="Feedback")
        return FeedbackRecord.from_chain(raw)

    async def rating_summary(self, transaction_id: int) -> Tuple[int, int]:
        """(average rating x 100, number of feedbacks)."""
        raw = await self._call("getTransactionRating", transaction_id)
        return _as_pair(raw, "getTransactionRating")


def connect(rpc_url: str, spending_address: str, feedback_address: str, private_key: Optional[str] = None):
    """
    Build both adapters on one AsyncWeb3 connection.

    No network I/O happens here; the first read opens the HTTP session.
    """
    w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
    account = w3.eth.account.from_key(private_key) if private_key else None

    spending = w3.eth.contract(
        address=AsyncWeb3.to_checksum_address(spending_address),
        abi=GOVERNMENT_SPENDING_ABI,
    )
    feedback = w3.eth.contract(
        address=AsyncWeb3.to_checksum_address(feedback_address),
        abi=CITIZEN_FEEDBACK_ABI,
    )
    return SpendingLedger(w3, spending, account), FeedbackLedger(w3, feedback, account)
