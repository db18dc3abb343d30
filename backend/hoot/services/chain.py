"""On-chain access for prize payouts.

``PrizeContract`` is the seam the distribution flow talks to. Transaction
helpers never raise: they return a ``TxResult`` whose ``status`` tells the
caller what happened. Read helpers raise ``ChainReadError`` so the treasury
resolver can fall back to its defaults.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound

logger = logging.getLogger(__name__)

TX_SUBMITTED = 'submitted'
TX_CONFIRMED = 'confirmed'
TX_REVERTED = 'reverted'
TX_PENDING = 'pending'
TX_ERROR = 'error'


def _fn(name, inputs, outputs=(), mutability='nonpayable'):
    return {
        'type': 'function',
        'name': name,
        'inputs': [{'name': n, 'type': t, 'internalType': t} for n, t in inputs],
        'outputs': [{'name': n, 'type': t, 'internalType': t} for n, t in outputs],
        'stateMutability': mutability,
    }


_FEE_GETTERS = [
    _fn('getTreasuryFeePercent', [], [('', 'uint256')], 'view'),
    _fn('getFeePrecision', [], [('', 'uint256')], 'view'),
]

ERC20_ABI = [_fn('decimals', [], [('', 'uint8')], 'view')]

QUIZ_MANAGER_ABI = _FEE_GETTERS + [
    _fn('distributePrize', [('quizId', 'string'), ('winners', 'address[]'), ('amounts', 'uint256[]')]),
]

BONUS_QUIZ_MANAGER_ABI = _FEE_GETTERS + [
    _fn('setGoldenQuestionsResult', [('quizId', 'string'), ('allCorrect', 'bool')]),
    _fn('distributePrize', [('quizId', 'string'), ('winners', 'address[]'), ('amounts', 'uint256[]')]),
]

PROGRESSIVE_QUIZ_MANAGER_ABI = _FEE_GETTERS + [
    _fn('distributeQuestionPrize', [('quizId', 'string'), ('winners', 'address[3]')]),
]

SURVIVAL_QUIZ_MANAGER_ABI = _FEE_GETTERS + [
    _fn('setSurvivors', [('quizId', 'string'), ('survivors', 'address[]')]),
    _fn('distributePrize', [('quizId', 'string')]),
]

ABI_BY_MODE = {
    'standard': QUIZ_MANAGER_ABI,
    'bonus': BONUS_QUIZ_MANAGER_ABI,
    'progressive': PROGRESSIVE_QUIZ_MANAGER_ABI,
    'survival': SURVIVAL_QUIZ_MANAGER_ABI,
}


class ChainReadError(Exception):
    pass


@dataclass(frozen=True)
class TxResult:
    status: str
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.status == TX_CONFIRMED

    @property
    def submitted(self) -> bool:
        return self.status == TX_SUBMITTED


class PrizeContract:
    """Interface of the on-chain collaborator."""

    def read_token_decimals(self, token_address: str) -> int:
        raise NotImplementedError

    def read_fee_settings(self, contract_address: str, mode: str) -> Tuple[int, int]:
        raise NotImplementedError

    def submit(self, contract_address: str, mode: str, function_name: str, args: Sequence) -> TxResult:
        raise NotImplementedError

    def wait_for_receipt(self, tx_hash: str) -> TxResult:
        raise NotImplementedError

    def check_receipt(self, tx_hash: str) -> TxResult:
        raise NotImplementedError


def _is_address(value) -> bool:
    return isinstance(value, str) and len(value) == 42 and value[:2].lower() == '0x'


def _checksum_args(args: Sequence):
    """web3 only accepts checksummed addresses; wallet addresses are stored as entered."""
    converted = []
    for arg in args:
        if _is_address(arg):
            converted.append(Web3.to_checksum_address(arg))
        elif isinstance(arg, (list, tuple)):
            converted.append([Web3.to_checksum_address(a) if _is_address(a) else a for a in arg])
        else:
            converted.append(arg)
    return converted


def _receipt_result(tx_hash: str, receipt) -> TxResult:
    if receipt['status'] == 1:
        return TxResult(TX_CONFIRMED, tx_hash)
    return TxResult(TX_REVERTED, tx_hash, 'Transaction failed')


class Web3PrizeContract(PrizeContract):
    """``PrizeContract`` backed by a JSON-RPC node and a distributor key."""

    def __init__(self, rpc_url: str, private_key: Optional[str] = None, receipt_timeout: int = 120):
        self.w3 = Web3(Web3.HTTPProvider(rpc_url))
        self.private_key = private_key
        self.receipt_timeout = receipt_timeout

    def _contract(self, address: str, abi):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def read_token_decimals(self, token_address):
        try:
            return int(self._contract(token_address, ERC20_ABI).functions.decimals().call())
        except Exception as exc:
            raise ChainReadError(f'decimals() failed for {token_address}: {exc}') from exc

    def read_fee_settings(self, contract_address, mode):
        try:
            contract = self._contract(contract_address, ABI_BY_MODE[mode])
            fee_percent = contract.functions.getTreasuryFeePercent().call()
            fee_precision = contract.functions.getFeePrecision().call()
        except Exception as exc:
            raise ChainReadError(f'fee settings unavailable for {contract_address}: {exc}') from exc
        return int(fee_percent), int(fee_precision)

    def submit(self, contract_address, mode, function_name, args):
        if not self.private_key:
            return TxResult(TX_ERROR, error='PRIZE_DISTRIBUTOR_PRIVATE_KEY is required for contract transactions')
        try:
            account = self.w3.eth.account.from_key(self.private_key)
            contract = self._contract(contract_address, ABI_BY_MODE[mode])
            call = getattr(contract.functions, function_name)(*_checksum_args(args))
            tx = call.build_transaction({
                'from': account.address,
                'nonce': self.w3.eth.get_transaction_count(account.address, 'pending'),
            })
            signed = account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as exc:
            logger.warning('[tx-error] %s on %s failed before submission: %s', function_name, contract_address, exc)
            return TxResult(TX_ERROR, error=str(exc))
        tx_hex = Web3.to_hex(tx_hash)
        logger.info('[tx-sent] %s on %s hash=%s', function_name, contract_address, tx_hex)
        return TxResult(TX_SUBMITTED, tx_hex)

    def wait_for_receipt(self, tx_hash):
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except TimeExhausted:
            return TxResult(TX_PENDING, tx_hash, f'No receipt after {self.receipt_timeout}s')
        except Exception as exc:
            # Outcome unknown; the caller must treat the transaction as possibly mined
            return TxResult(TX_PENDING, tx_hash, str(exc))
        return _receipt_result(tx_hash, receipt)

    def check_receipt(self, tx_hash):
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return TxResult(TX_PENDING, tx_hash)
        except Exception as exc:
            return TxResult(TX_PENDING, tx_hash, str(exc))
        return _receipt_result(tx_hash, receipt)
